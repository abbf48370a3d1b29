from dataclasses import dataclass
from datetime import datetime, time
from typing import Callable, Optional
import logging

from ..core.exceptions import (
    ConflictError, ReferentialError, TemporalPolicyError, ValidationError
)
from ..repositories.directory_repository import DirectoryRepository
from .conflict_checker import ConflictChecker
from .time_interval import TimeInterval

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Matches the appointments.category column
MAX_CATEGORY_LENGTH = 100


@dataclass(frozen=True)
class BookingCandidate:
    start: datetime
    duration_minutes: int
    category: Optional[str]
    patient_id: int
    doctor_id: int
    clinic_id: int

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.from_duration(self.start, self.duration_minutes)


def local_now() -> datetime:
    return datetime.now()


class BookingPolicy:
    """Ordered booking rules; the first failing rule raises.

    1. category is present and fits the column
    2. duration is positive, bounded, and the end time is representable
    3. patient, doctor and clinic exist
    4. start is not in the past
    5. start time-of-day is within business hours (inclusive, start only)
    6. the patient has no overlapping booking
    7. the doctor has no overlapping booking

    Evaluation only reads; nothing is written.
    """

    def __init__(
        self,
        directory: DirectoryRepository,
        conflicts: ConflictChecker,
        clock: Clock = local_now,
        day_start: time = time(8, 0),
        day_end: time = time(18, 0),
        max_duration_minutes: int = 24 * 60,
    ):
        self.directory = directory
        self.conflicts = conflicts
        self.clock = clock
        self.day_start = day_start
        self.day_end = day_end
        self.max_duration_minutes = max_duration_minutes

    def validate(
        self,
        candidate: BookingCandidate,
        exclude_appointment_id: Optional[int] = None,
        check_patient_exists: bool = True,
    ) -> None:
        self.check_structure(candidate)
        self.check_references(candidate, check_patient_exists=check_patient_exists)
        self.check_temporal(candidate)
        self.check_availability(candidate, exclude_appointment_id)

    def check_structure(self, candidate: BookingCandidate) -> None:
        if candidate.category is None or not candidate.category.strip():
            raise ValidationError("Category is required.")
        if len(candidate.category) > MAX_CATEGORY_LENGTH:
            raise ValidationError(f"Category must be at most {MAX_CATEGORY_LENGTH} characters.")
        if candidate.duration_minutes <= 0:
            raise ValidationError("Duration must be greater than zero.")
        if candidate.duration_minutes > self.max_duration_minutes:
            raise ValidationError(f"Duration must not exceed {self.max_duration_minutes} minutes.")
        try:
            candidate.interval
        except OverflowError:
            raise ValidationError("Appointment end time is out of range.")

    def check_references(self, candidate: BookingCandidate, check_patient_exists: bool = True) -> None:
        if check_patient_exists and not self.directory.patient_exists(candidate.patient_id):
            raise ReferentialError("Patient ID does not exist.")
        if not self.directory.doctor_exists(candidate.doctor_id):
            raise ReferentialError("Doctor ID does not exist.")
        if not self.directory.clinic_exists(candidate.clinic_id):
            raise ReferentialError("Clinic ID does not exist.")

    def check_temporal(self, candidate: BookingCandidate) -> None:
        start = candidate.start
        now = self.clock()
        if start.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone(start.tzinfo)
        if start < now:
            raise TemporalPolicyError("You cannot book an appointment in the past.")

        time_of_day = start.time()
        if time_of_day < self.day_start or time_of_day > self.day_end:
            raise TemporalPolicyError(
                f"Appointments must be booked between {self.day_start:%H:%M} and {self.day_end:%H:%M}."
            )

    def check_availability(self, candidate: BookingCandidate, exclude_appointment_id: Optional[int] = None) -> None:
        report = self.conflicts.check(
            candidate.doctor_id,
            candidate.patient_id,
            candidate.interval,
            exclude_appointment_id=exclude_appointment_id,
        )
        if report.patient_conflict:
            raise ConflictError("Patient already has an overlapping appointment.", scope="patient")
        if report.doctor_conflict:
            raise ConflictError("Doctor is already booked at this time.", scope="doctor")
