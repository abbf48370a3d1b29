from datetime import datetime
from typing import Optional

from pydantic import field_validator

from .common import CamelModel, to_local_naive
from .patient import PatientCreate


class AppointmentSubCreate(CamelModel):
    """Appointment fields of the combined booking request."""
    appointment_date_time: datetime
    category: Optional[str] = None
    doctor_id: int
    clinic_id: int
    duration_in_minutes: int

    @field_validator("appointment_date_time")
    @classmethod
    def normalize_start(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class AppointmentCreate(AppointmentSubCreate):
    patient_id: int


class AppointmentWithPatientCreate(CamelModel):
    patient: PatientCreate
    appointment: AppointmentSubCreate


class AppointmentRead(CamelModel):
    """Flat read-model with the joined display names."""
    id: int
    appointment_date_time: datetime
    category: str
    duration_in_minutes: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    clinic_name: Optional[str] = None


class AppointmentUpdateResponse(CamelModel):
    message: str
    appointment: AppointmentRead
