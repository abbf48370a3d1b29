"""
Clinic Booking Service

A FastAPI-based system for booking clinic appointments against doctors,
patients and clinics without double-booking.
"""

__version__ = "1.0.0"
