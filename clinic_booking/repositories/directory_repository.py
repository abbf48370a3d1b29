from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.appointment import Appointment
from ..models.clinic import Clinic
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.speciality import Speciality
from ..schemas.directory import ClinicCreate, DoctorCreate, SpecialityCreate
from ..schemas.patient import PatientCreate


class DirectoryRepository:
    """Clinics, specialities, doctors and patients.

    The scheduling core only relies on the existence checks and on the
    patient identity lookup / creation; the rest backs the directory routes.
    """

    def __init__(self, db: Session):
        self.db = db

    # Existence checks
    def patient_exists(self, patient_id: int) -> bool:
        return self.db.query(Patient.id).filter(Patient.id == patient_id).first() is not None

    def doctor_exists(self, doctor_id: int) -> bool:
        return self.db.query(Doctor.id).filter(Doctor.id == doctor_id).first() is not None

    def clinic_exists(self, clinic_id: int) -> bool:
        return self.db.query(Clinic.id).filter(Clinic.id == clinic_id).first() is not None

    def speciality_exists(self, speciality_id: int) -> bool:
        return self.db.query(Speciality.id).filter(Speciality.id == speciality_id).first() is not None

    # Patients
    def find_patient_by_identity(self, first_name: str, last_name: str, email: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(
            Patient.first_name == first_name,
            Patient.last_name == last_name,
            Patient.email == email,
        ).order_by(Patient.id).first()

    def create_patient(self, info: PatientCreate) -> Patient:
        patient = Patient(
            first_name=info.first_name,
            last_name=info.last_name,
            email=info.email,
            birth_date=info.birth_date,
            gender=info.gender,
        )
        self.db.add(patient)
        self.db.flush()
        return patient

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self.db.get(Patient, patient_id)

    def list_patients(self) -> List[Patient]:
        return self.db.query(Patient).order_by(Patient.last_name, Patient.first_name).all()

    def patient_email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Patient.id).filter(Patient.email == email)
        if exclude_id is not None:
            query = query.filter(Patient.id != exclude_id)
        return query.first() is not None

    def patient_has_appointments(self, patient_id: int) -> bool:
        return self.db.query(Appointment.id).filter(Appointment.patient_id == patient_id).first() is not None

    # Clinics
    def create_clinic(self, data: ClinicCreate) -> Clinic:
        clinic = Clinic(name=data.name, address=data.address)
        self.db.add(clinic)
        self.db.flush()
        return clinic

    def get_clinic(self, clinic_id: int) -> Optional[Clinic]:
        return self.db.get(Clinic, clinic_id)

    def list_clinics(self) -> List[Clinic]:
        return self.db.query(Clinic).order_by(Clinic.name).all()

    def clinic_name_exists(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Clinic.id).filter(Clinic.name == name)
        if exclude_id is not None:
            query = query.filter(Clinic.id != exclude_id)
        return query.first() is not None

    def clinic_in_use(self, clinic_id: int) -> bool:
        """True while doctors or appointments still point at the clinic."""
        if self.db.query(Doctor.id).filter(Doctor.clinic_id == clinic_id).first() is not None:
            return True
        return self.db.query(Appointment.id).filter(Appointment.clinic_id == clinic_id).first() is not None

    # Specialities
    def create_speciality(self, data: SpecialityCreate) -> Speciality:
        speciality = Speciality(name=data.name)
        self.db.add(speciality)
        self.db.flush()
        return speciality

    def get_speciality(self, speciality_id: int) -> Optional[Speciality]:
        return self.db.get(Speciality, speciality_id)

    def list_specialities(self) -> List[Speciality]:
        return self.db.query(Speciality).order_by(Speciality.name).all()

    def speciality_name_exists(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Speciality.id).filter(Speciality.name == name)
        if exclude_id is not None:
            query = query.filter(Speciality.id != exclude_id)
        return query.first() is not None

    def speciality_in_use(self, speciality_id: int) -> bool:
        return self.db.query(Doctor.id).filter(Doctor.speciality_id == speciality_id).first() is not None

    # Doctors
    def create_doctor(self, data: DoctorCreate) -> Doctor:
        doctor = Doctor(
            first_name=data.first_name,
            last_name=data.last_name,
            clinic_id=data.clinic_id,
            speciality_id=data.speciality_id,
        )
        self.db.add(doctor)
        self.db.flush()
        return doctor

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.get(Doctor, doctor_id)

    def list_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.last_name, Doctor.first_name).all()

    def doctor_exists_in_clinic(
        self, first_name: str, last_name: str, clinic_id: int, exclude_id: Optional[int] = None
    ) -> bool:
        query = self.db.query(Doctor.id).filter(
            Doctor.first_name == first_name,
            Doctor.last_name == last_name,
            Doctor.clinic_id == clinic_id,
        )
        if exclude_id is not None:
            query = query.filter(Doctor.id != exclude_id)
        return query.first() is not None

    def doctor_has_appointments(self, doctor_id: int) -> bool:
        return self.db.query(Appointment.id).filter(Appointment.doctor_id == doctor_id).first() is not None

    def search_doctors(self, first_name: Optional[str], last_name: Optional[str]) -> List[Doctor]:
        query = self.db.query(Doctor)
        if first_name:
            query = query.filter(func.lower(Doctor.first_name).contains(first_name.lower(), autoescape=True))
        if last_name:
            query = query.filter(func.lower(Doctor.last_name).contains(last_name.lower(), autoescape=True))
        return query.order_by(Doctor.last_name, Doctor.first_name).all()

    def delete(self, record) -> None:
        self.db.delete(record)
        self.db.flush()
