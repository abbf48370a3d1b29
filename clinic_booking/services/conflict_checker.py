from dataclasses import dataclass
from typing import Optional

from ..repositories.appointment_repository import AppointmentRepository
from .time_interval import TimeInterval


@dataclass(frozen=True)
class ConflictReport:
    patient_conflict: bool = False
    doctor_conflict: bool = False

    @property
    def has_conflict(self) -> bool:
        return self.patient_conflict or self.doctor_conflict


class ConflictChecker:
    """Compare a candidate interval with the doctor's and patient's bookings.

    Must run while the booking locks for both ids are held, otherwise the
    answer can be stale by the time the caller commits.
    """

    def __init__(self, appointments: AppointmentRepository):
        self.appointments = appointments

    def check(
        self,
        doctor_id: int,
        patient_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
    ) -> ConflictReport:
        patient_conflict = False
        doctor_conflict = False

        for existing in self.appointments.find_overlapping(
            doctor_id, patient_id, candidate, exclude_id=exclude_appointment_id
        ):
            if existing.id == exclude_appointment_id:
                continue
            window = TimeInterval.from_duration(existing.appointment_date, existing.duration_minutes)
            if not window.overlaps(candidate):
                continue
            if existing.patient_id == patient_id:
                patient_conflict = True
            if existing.doctor_id == doctor_id:
                doctor_conflict = True

        return ConflictReport(patient_conflict=patient_conflict, doctor_conflict=doctor_conflict)
