from fastapi import APIRouter, Depends, status
from typing import List

from ...api.deps import get_directory_service
from ...services.directory_service import DirectoryService
from ...schemas.common import MessageResponse
from ...schemas.directory import (
    ClinicCreate, ClinicRead, ClinicUpdateResponse, DoctorCreate, DoctorRead,
    DoctorSearchRequest, DoctorSearchResult, DoctorUpdateResponse,
    SpecialityCreate, SpecialityRead, SpecialityUpdateResponse
)
from ...schemas.patient import PatientCreate, PatientRead, PatientUpdateResponse

router = APIRouter(tags=["Directory"])

# Clinics
@router.get("/clinics", response_model=List[ClinicRead])
def list_clinics(service: DirectoryService = Depends(get_directory_service)):
    return service.list_clinics()

@router.get("/clinics/{clinic_id}", response_model=ClinicRead)
def get_clinic(clinic_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_clinic(clinic_id)

@router.post("/clinics", response_model=ClinicRead, status_code=status.HTTP_201_CREATED)
def create_clinic(clinic_data: ClinicCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_clinic(clinic_data)

@router.put("/clinics/{clinic_id}", response_model=ClinicUpdateResponse)
def update_clinic(
    clinic_id: int,
    clinic_data: ClinicCreate,
    service: DirectoryService = Depends(get_directory_service)
):
    clinic = service.update_clinic(clinic_id, clinic_data)
    return ClinicUpdateResponse(message="Clinic updated successfully.", clinic=clinic)

@router.delete("/clinics/{clinic_id}", response_model=MessageResponse)
def delete_clinic(clinic_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.delete_clinic(clinic_id)
    return MessageResponse(message="Clinic deleted successfully.")

# Specialities
@router.get("/specialities", response_model=List[SpecialityRead])
def list_specialities(service: DirectoryService = Depends(get_directory_service)):
    return service.list_specialities()

@router.get("/specialities/{speciality_id}", response_model=SpecialityRead)
def get_speciality(speciality_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_speciality(speciality_id)

@router.post("/specialities", response_model=SpecialityRead, status_code=status.HTTP_201_CREATED)
def create_speciality(speciality_data: SpecialityCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_speciality(speciality_data)

@router.put("/specialities/{speciality_id}", response_model=SpecialityUpdateResponse)
def update_speciality(
    speciality_id: int,
    speciality_data: SpecialityCreate,
    service: DirectoryService = Depends(get_directory_service)
):
    speciality = service.update_speciality(speciality_id, speciality_data)
    return SpecialityUpdateResponse(message="Speciality updated successfully.", speciality=speciality)

@router.delete("/specialities/{speciality_id}", response_model=MessageResponse)
def delete_speciality(speciality_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.delete_speciality(speciality_id)
    return MessageResponse(message="Speciality deleted successfully.")

# Doctors
@router.get("/doctors", response_model=List[DoctorRead])
def list_doctors(service: DirectoryService = Depends(get_directory_service)):
    return service.list_doctors()

@router.get("/doctors/{doctor_id}", response_model=DoctorRead)
def get_doctor(doctor_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_doctor(doctor_id)

@router.post("/doctors", response_model=DoctorRead, status_code=status.HTTP_201_CREATED)
def create_doctor(doctor_data: DoctorCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_doctor(doctor_data)

@router.put("/doctors/{doctor_id}", response_model=DoctorUpdateResponse)
def update_doctor(
    doctor_id: int,
    doctor_data: DoctorCreate,
    service: DirectoryService = Depends(get_directory_service)
):
    doctor = service.update_doctor(doctor_id, doctor_data)
    return DoctorUpdateResponse(message="Doctor updated successfully.", doctor=doctor)

@router.delete("/doctors/{doctor_id}", response_model=MessageResponse)
def delete_doctor(doctor_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.delete_doctor(doctor_id)
    return MessageResponse(message="Doctor deleted successfully.")

@router.post("/search/doctors", response_model=List[DoctorSearchResult])
def search_doctors(request: DoctorSearchRequest, service: DirectoryService = Depends(get_directory_service)):
    """Search doctors by (partial, case-insensitive) first and/or last name."""
    return service.search_doctors(request)

# Patients
@router.get("/patients", response_model=List[PatientRead])
def list_patients(service: DirectoryService = Depends(get_directory_service)):
    return service.list_patients()

@router.get("/patients/{patient_id}", response_model=PatientRead)
def get_patient(patient_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_patient(patient_id)

@router.post("/patients", response_model=PatientRead, status_code=status.HTTP_201_CREATED)
def create_patient(patient_data: PatientCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_patient(patient_data)

@router.put("/patients/{patient_id}", response_model=PatientUpdateResponse)
def update_patient(
    patient_id: int,
    patient_data: PatientCreate,
    service: DirectoryService = Depends(get_directory_service)
):
    patient = service.update_patient(patient_id, patient_data)
    return PatientUpdateResponse(message="Patient updated successfully.", patient=patient)

@router.delete("/patients/{patient_id}", response_model=MessageResponse)
def delete_patient(patient_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.delete_patient(patient_id)
    return MessageResponse(message="Patient deleted successfully.")
