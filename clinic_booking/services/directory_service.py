from sqlalchemy.orm import Session
from typing import List
import logging

from ..core.exceptions import NotFoundError, ReferentialError, ValidationError
from ..models.clinic import Clinic
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.speciality import Speciality
from ..repositories.directory_repository import DirectoryRepository
from ..schemas.directory import (
    ClinicCreate, ClinicRead, DoctorCreate, DoctorRead,
    DoctorSearchRequest, DoctorSearchResult, SpecialityCreate, SpecialityRead
)
from ..schemas.patient import PatientCreate, PatientRead

logger = logging.getLogger(__name__)

class DirectoryService:
    """Plain record keeping for clinics, specialities, doctors and patients.

    Records that appointments (or doctors) still point at cannot be deleted.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = DirectoryRepository(db)

    # Clinics
    def create_clinic(self, data: ClinicCreate) -> ClinicRead:
        if not data.name.strip():
            raise ValidationError("Clinic name is required.")
        if self.repository.clinic_name_exists(data.name):
            raise ValidationError("A clinic with the same name already exists.")

        clinic = self.repository.create_clinic(data)
        self.db.commit()
        return ClinicRead.model_validate(clinic)

    def get_clinic(self, clinic_id: int) -> ClinicRead:
        return ClinicRead.model_validate(self._clinic(clinic_id))

    def list_clinics(self) -> List[ClinicRead]:
        return [ClinicRead.model_validate(c) for c in self.repository.list_clinics()]

    def update_clinic(self, clinic_id: int, data: ClinicCreate) -> ClinicRead:
        clinic = self._clinic(clinic_id)
        if not data.name.strip():
            raise ValidationError("Clinic name is required.")
        if self.repository.clinic_name_exists(data.name, exclude_id=clinic_id):
            raise ValidationError("A clinic with the same name already exists.")

        clinic.name = data.name
        clinic.address = data.address
        self.db.commit()
        logger.info(f"Updated clinic {clinic_id}")
        return ClinicRead.model_validate(clinic)

    def delete_clinic(self, clinic_id: int) -> None:
        clinic = self._clinic(clinic_id)
        if self.repository.clinic_in_use(clinic_id):
            raise ReferentialError("Cannot delete a clinic with doctors or appointments.")

        self.repository.delete(clinic)
        self.db.commit()
        logger.info(f"Deleted clinic {clinic_id}")

    # Specialities
    def create_speciality(self, data: SpecialityCreate) -> SpecialityRead:
        if not data.name.strip():
            raise ValidationError("Speciality name is required.")
        if self.repository.speciality_name_exists(data.name):
            raise ValidationError("Speciality with this name already exists.")

        speciality = self.repository.create_speciality(data)
        self.db.commit()
        return SpecialityRead.model_validate(speciality)

    def get_speciality(self, speciality_id: int) -> SpecialityRead:
        return SpecialityRead.model_validate(self._speciality(speciality_id))

    def list_specialities(self) -> List[SpecialityRead]:
        return [SpecialityRead.model_validate(s) for s in self.repository.list_specialities()]

    def update_speciality(self, speciality_id: int, data: SpecialityCreate) -> SpecialityRead:
        speciality = self._speciality(speciality_id)
        if not data.name.strip():
            raise ValidationError("Speciality name is required.")
        if self.repository.speciality_name_exists(data.name, exclude_id=speciality_id):
            raise ValidationError("Speciality with this name already exists.")

        speciality.name = data.name
        self.db.commit()
        logger.info(f"Updated speciality {speciality_id}")
        return SpecialityRead.model_validate(speciality)

    def delete_speciality(self, speciality_id: int) -> None:
        speciality = self._speciality(speciality_id)
        if self.repository.speciality_in_use(speciality_id):
            raise ReferentialError("Cannot delete a speciality that is assigned to doctors.")

        self.repository.delete(speciality)
        self.db.commit()
        logger.info(f"Deleted speciality {speciality_id}")

    # Doctors
    def create_doctor(self, data: DoctorCreate) -> DoctorRead:
        self._check_doctor(data)
        if self.repository.doctor_exists_in_clinic(data.first_name, data.last_name, data.clinic_id):
            raise ValidationError("A doctor with the same name already exists in this clinic.")

        doctor = self.repository.create_doctor(data)
        self.db.commit()
        return _doctor_read(doctor)

    def get_doctor(self, doctor_id: int) -> DoctorRead:
        return _doctor_read(self._doctor(doctor_id))

    def list_doctors(self) -> List[DoctorRead]:
        return [_doctor_read(d) for d in self.repository.list_doctors()]

    def update_doctor(self, doctor_id: int, data: DoctorCreate) -> DoctorRead:
        doctor = self._doctor(doctor_id)
        self._check_doctor(data)
        if self.repository.doctor_exists_in_clinic(
            data.first_name, data.last_name, data.clinic_id, exclude_id=doctor_id
        ):
            raise ValidationError("A doctor with the same name already exists in this clinic.")

        doctor.first_name = data.first_name
        doctor.last_name = data.last_name
        doctor.clinic_id = data.clinic_id
        doctor.speciality_id = data.speciality_id
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Updated doctor {doctor_id}")
        return _doctor_read(doctor)

    def delete_doctor(self, doctor_id: int) -> None:
        doctor = self._doctor(doctor_id)
        if self.repository.doctor_has_appointments(doctor_id):
            raise ReferentialError("Cannot delete doctor with active appointments.")

        self.repository.delete(doctor)
        self.db.commit()
        logger.info(f"Deleted doctor {doctor_id}")

    def search_doctors(self, request: DoctorSearchRequest) -> List[DoctorSearchResult]:
        """Case-insensitive substring search on first and/or last name."""
        first_name = (request.first_name or "").strip()
        last_name = (request.last_name or "").strip()
        if not first_name and not last_name:
            raise ValidationError("Please provide at least a first name or last name to search.")

        doctors = self.repository.search_doctors(first_name, last_name)
        if not doctors:
            raise NotFoundError("No doctors found matching the search criteria.")

        return [
            DoctorSearchResult(
                full_name=doctor.full_name,
                clinic_name=doctor.clinic.name if doctor.clinic else None,
                speciality_name=doctor.speciality.name if doctor.speciality else None,
            )
            for doctor in doctors
        ]

    # Patients
    def create_patient(self, data: PatientCreate) -> PatientRead:
        if not data.first_name.strip() or not data.last_name.strip() or not data.email.strip():
            raise ValidationError("Please provide valid patient data.")
        if self.repository.patient_email_exists(data.email):
            raise ValidationError("A patient with the same email already exists.")

        patient = self.repository.create_patient(data)
        self.db.commit()
        return PatientRead.model_validate(patient)

    def get_patient(self, patient_id: int) -> PatientRead:
        return PatientRead.model_validate(self._patient(patient_id))

    def list_patients(self) -> List[PatientRead]:
        return [PatientRead.model_validate(p) for p in self.repository.list_patients()]

    def update_patient(self, patient_id: int, data: PatientCreate) -> PatientRead:
        patient = self._patient(patient_id)
        if not data.first_name.strip() or not data.last_name.strip() or not data.email.strip():
            raise ValidationError("Please provide valid updated information.")
        if self.repository.patient_email_exists(data.email, exclude_id=patient_id):
            raise ValidationError("A patient with the same email already exists.")

        patient.first_name = data.first_name
        patient.last_name = data.last_name
        patient.email = data.email
        patient.birth_date = data.birth_date
        patient.gender = data.gender
        self.db.commit()
        logger.info(f"Updated patient {patient_id}")
        return PatientRead.model_validate(patient)

    def delete_patient(self, patient_id: int) -> None:
        patient = self._patient(patient_id)
        if self.repository.patient_has_appointments(patient_id):
            raise ReferentialError("Cannot delete patient with active appointments.")

        self.repository.delete(patient)
        self.db.commit()
        logger.info(f"Deleted patient {patient_id}")

    # Lookups
    def _clinic(self, clinic_id: int) -> Clinic:
        clinic = self.repository.get_clinic(clinic_id)
        if not clinic:
            raise NotFoundError("Clinic not found.")
        return clinic

    def _speciality(self, speciality_id: int) -> Speciality:
        speciality = self.repository.get_speciality(speciality_id)
        if not speciality:
            raise NotFoundError("Speciality not found.")
        return speciality

    def _doctor(self, doctor_id: int) -> Doctor:
        doctor = self.repository.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found.")
        return doctor

    def _patient(self, patient_id: int) -> Patient:
        patient = self.repository.get_patient(patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        return patient

    def _check_doctor(self, data: DoctorCreate) -> None:
        if not data.first_name.strip() or not data.last_name.strip():
            raise ValidationError("First name and last name are required.")
        if not self.repository.clinic_exists(data.clinic_id):
            raise ReferentialError("Clinic ID does not exist.")
        if not self.repository.speciality_exists(data.speciality_id):
            raise ReferentialError("Speciality ID does not exist.")

def _doctor_read(doctor: Doctor) -> DoctorRead:
    return DoctorRead(
        id=doctor.id,
        first_name=doctor.first_name,
        last_name=doctor.last_name,
        clinic_name=doctor.clinic.name if doctor.clinic else None,
        speciality_name=doctor.speciality.name if doctor.speciality else None,
    )
