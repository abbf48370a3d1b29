"""
Test suite for the Clinic Booking Service.

Contains unit and integration tests for the scheduling engine and its API.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
