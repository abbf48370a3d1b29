from datetime import date
from typing import Optional

from .common import CamelModel


class PatientCreate(CamelModel):
    # Blank names / email are rejected by the resolver, not at parse time
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    birth_date: Optional[date] = None
    gender: Optional[str] = None


class PatientRead(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    birth_date: Optional[date] = None
    gender: Optional[str] = None


class PatientUpdateResponse(CamelModel):
    message: str
    patient: PatientRead
