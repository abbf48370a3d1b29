from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.appointment import Appointment
from ..models.clinic import Clinic
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.speciality import Speciality  # noqa: F401  (mapper registry)
from ..schemas.appointment import AppointmentRead
from ..services.time_interval import TimeInterval


class AppointmentRepository:
    """Appointment persistence bound to one session / transaction."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.get(Appointment, appointment_id)

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def update(self, appointment: Appointment) -> Appointment:
        self.db.flush()
        return appointment

    def delete(self, appointment: Appointment) -> None:
        self.db.delete(appointment)
        self.db.flush()

    def find_overlapping(
        self,
        doctor_id: int,
        patient_id: int,
        interval: TimeInterval,
        exclude_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Bookings of the doctor or the patient whose stored window meets the interval."""
        query = self.db.query(Appointment).filter(
            or_(
                Appointment.doctor_id == doctor_id,
                Appointment.patient_id == patient_id,
            ),
            Appointment.appointment_date < interval.end,
            Appointment.end_time > interval.start,
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.appointment_date).all()

    def read_model(self, appointment_id: int) -> Optional[AppointmentRead]:
        row = self._joined().filter(Appointment.id == appointment_id).first()
        return _to_read_model(*row) if row else None

    def list_read_models(self) -> List[AppointmentRead]:
        rows = self._joined().order_by(Appointment.appointment_date, Appointment.id).all()
        return [_to_read_model(*row) for row in rows]

    def _joined(self):
        return (
            self.db.query(Appointment, Patient, Doctor, Clinic)
            .outerjoin(Patient, Appointment.patient_id == Patient.id)
            .outerjoin(Doctor, Appointment.doctor_id == Doctor.id)
            .outerjoin(Clinic, Appointment.clinic_id == Clinic.id)
        )


def _to_read_model(
    appointment: Appointment,
    patient: Optional[Patient],
    doctor: Optional[Doctor],
    clinic: Optional[Clinic],
) -> AppointmentRead:
    return AppointmentRead(
        id=appointment.id,
        appointment_date_time=appointment.appointment_date,
        category=appointment.category,
        duration_in_minutes=appointment.duration_minutes,
        patient_name=patient.full_name if patient else None,
        doctor_name=doctor.full_name if doctor else None,
        clinic_name=clinic.name if clinic else None,
    )
