from dataclasses import dataclass
import logging

from ..core.exceptions import ValidationError
from ..models.patient import Patient
from ..repositories.directory_repository import DirectoryRepository
from ..schemas.patient import PatientCreate

logger = logging.getLogger(__name__)


@dataclass
class ResolvedPatient:
    patient: Patient
    created: bool


class PatientResolver:
    """Find-or-create a patient keyed on the exact (first, last, email) triple.

    No trimming or case folding is applied, so "Jane" and "jane" are two
    different patients. A newly created patient is only flushed; it becomes
    visible when the caller's transaction commits.
    """

    def __init__(self, directory: DirectoryRepository):
        self.directory = directory

    def resolve(self, info: PatientCreate) -> ResolvedPatient:
        if not info.first_name.strip() or not info.last_name.strip() or not info.email.strip():
            raise ValidationError("Patient first name, last name and email are required.")

        patient = self.directory.find_patient_by_identity(info.first_name, info.last_name, info.email)
        if patient is not None:
            return ResolvedPatient(patient=patient, created=False)

        patient = self.directory.create_patient(info)
        logger.info(f"Created patient {patient.id} while booking")
        return ResolvedPatient(patient=patient, created=True)
