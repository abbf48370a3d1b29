from typing import Optional

from .common import CamelModel


class ClinicCreate(CamelModel):
    name: str = ""
    address: Optional[str] = None


class ClinicRead(CamelModel):
    id: int
    name: str
    address: Optional[str] = None


class SpecialityCreate(CamelModel):
    name: str = ""


class SpecialityRead(CamelModel):
    id: int
    name: str


class DoctorCreate(CamelModel):
    first_name: str = ""
    last_name: str = ""
    clinic_id: int
    speciality_id: int


class DoctorRead(CamelModel):
    id: int
    first_name: str
    last_name: str
    clinic_name: Optional[str] = None
    speciality_name: Optional[str] = None


class DoctorSearchRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class DoctorSearchResult(CamelModel):
    full_name: str
    clinic_name: Optional[str] = None
    speciality_name: Optional[str] = None


class ClinicUpdateResponse(CamelModel):
    message: str
    clinic: ClinicRead


class SpecialityUpdateResponse(CamelModel):
    message: str
    speciality: SpecialityRead


class DoctorUpdateResponse(CamelModel):
    message: str
    doctor: DoctorRead
