from contextlib import ExitStack
from datetime import time
from typing import Callable, Iterable, List, Optional, TypeVar
import logging

from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..core.database import transaction_scope
from ..core.exceptions import (
    NotFoundError, SchedulingError, TransientError, ValidationError
)
from ..core.locks import (
    BookingLockManager, Deadline, doctor_key, identity_key, patient_key
)
from ..models.appointment import Appointment
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.directory_repository import DirectoryRepository
from ..schemas.appointment import (
    AppointmentCreate, AppointmentRead, AppointmentWithPatientCreate
)
from .booking_policy import BookingCandidate, BookingPolicy, Clock, local_now
from .conflict_checker import ConflictChecker
from .patient_resolver import PatientResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork:
    """Repositories and rules bound to a single session / transaction."""

    def __init__(self, service: "SchedulingService", db: Session, deadline: Deadline, lock_stack: ExitStack):
        self.db = db
        self.appointments = AppointmentRepository(db)
        self.directory = DirectoryRepository(db)
        self.policy = BookingPolicy(
            self.directory,
            ConflictChecker(self.appointments),
            clock=service.clock,
            day_start=service.day_start,
            day_end=service.day_end,
            max_duration_minutes=service.max_duration_minutes,
        )
        self.resolver = PatientResolver(self.directory)
        self._locks = service.locks
        self._deadline = deadline
        self._lock_stack = lock_stack

    def hold(self, keys: Iterable[str]) -> None:
        """Take more booking locks for the rest of the attempt."""
        self._lock_stack.enter_context(self._locks.hold(keys, self._deadline))


class SchedulingService:
    """Create, update and delete appointments without double-booking.

    Each operation runs in its own transaction while holding the booking locks
    of the doctor and patient involved, so the conflict check and the write
    cannot interleave with a competing booking for either of them. Database
    contention (serialization failures, locked database, constraint races)
    retries the whole attempt, checks included, until ``max_retries`` or the
    deadline is exhausted. Only ``SchedulingError`` subclasses leave this class.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        locks: BookingLockManager,
        clock: Clock = local_now,
        day_start: time = settings.BUSINESS_DAY_START,
        day_end: time = settings.BUSINESS_DAY_END,
        max_duration_minutes: int = settings.BOOKING_MAX_DURATION_MINUTES,
        timeout: float = settings.BOOKING_TIMEOUT_SECONDS,
        max_retries: int = settings.BOOKING_MAX_RETRIES,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.clock = clock
        self.day_start = day_start
        self.day_end = day_end
        self.max_duration_minutes = max_duration_minutes
        self.timeout = timeout
        self.max_retries = max_retries

    def create(self, data: AppointmentCreate, timeout: Optional[float] = None) -> AppointmentRead:
        """Book an appointment for an existing patient."""
        candidate = BookingCandidate(
            start=data.appointment_date_time,
            duration_minutes=data.duration_in_minutes,
            category=data.category,
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            clinic_id=data.clinic_id,
        )

        def work(uow: UnitOfWork) -> AppointmentRead:
            uow.policy.validate(candidate)
            appointment = uow.appointments.add(_new_appointment(candidate))
            return uow.appointments.read_model(appointment.id)

        result = self._run(
            "Create appointment",
            work,
            lock_keys=[doctor_key(candidate.doctor_id), patient_key(candidate.patient_id)],
            timeout=timeout,
        )
        logger.info(f"Booked appointment {result.id} for doctor {candidate.doctor_id} at {candidate.start}")
        return result

    def create_with_new_patient(
        self, data: AppointmentWithPatientCreate, timeout: Optional[float] = None
    ) -> AppointmentRead:
        """Resolve (or register) the patient and book in one transaction."""
        info = data.patient
        sub = data.appointment

        def work(uow: UnitOfWork) -> AppointmentRead:
            resolved = uow.resolver.resolve(info)
            if not resolved.created:
                # Existing patients can be booked concurrently through create()
                uow.hold([patient_key(resolved.patient.id)])
            candidate = BookingCandidate(
                start=sub.appointment_date_time,
                duration_minutes=sub.duration_in_minutes,
                category=sub.category,
                patient_id=resolved.patient.id,
                doctor_id=sub.doctor_id,
                clinic_id=sub.clinic_id,
            )
            uow.policy.validate(candidate, check_patient_exists=False)
            appointment = uow.appointments.add(_new_appointment(candidate))
            return uow.appointments.read_model(appointment.id)

        result = self._run(
            "Create appointment with patient",
            work,
            lock_keys=[
                doctor_key(sub.doctor_id),
                identity_key(info.first_name, info.last_name, info.email),
            ],
            timeout=timeout,
        )
        logger.info(f"Booked appointment {result.id} for doctor {sub.doctor_id} at {sub.appointment_date_time}")
        return result

    def update(
        self, appointment_id: int, data: AppointmentCreate, timeout: Optional[float] = None
    ) -> AppointmentRead:
        """Replace every field of an appointment after re-running all rules."""
        candidate = BookingCandidate(
            start=data.appointment_date_time,
            duration_minutes=data.duration_in_minutes,
            category=data.category,
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            clinic_id=data.clinic_id,
        )

        def work(uow: UnitOfWork) -> AppointmentRead:
            appointment = uow.appointments.get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment not found.")
            uow.policy.validate(candidate, exclude_appointment_id=appointment_id)
            _apply(appointment, candidate)
            uow.appointments.update(appointment)
            return uow.appointments.read_model(appointment_id)

        result = self._run(
            "Update appointment",
            work,
            lock_keys=[doctor_key(candidate.doctor_id), patient_key(candidate.patient_id)],
            timeout=timeout,
        )
        logger.info(f"Updated appointment {appointment_id}")
        return result

    def delete(self, appointment_id: int, timeout: Optional[float] = None) -> None:
        def work(uow: UnitOfWork) -> None:
            appointment = uow.appointments.get(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment not found.")
            uow.appointments.delete(appointment)

        self._run("Delete appointment", work, timeout=timeout)
        logger.info(f"Deleted appointment {appointment_id}")

    def get(self, appointment_id: int, timeout: Optional[float] = None) -> AppointmentRead:
        def work(uow: UnitOfWork) -> AppointmentRead:
            appointment = uow.appointments.read_model(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment not found.")
            return appointment

        return self._run("Get appointment", work, timeout=timeout)

    def list(self, timeout: Optional[float] = None) -> List[AppointmentRead]:
        return self._run("List appointments", lambda uow: uow.appointments.list_read_models(), timeout=timeout)

    def _run(
        self,
        operation: str,
        work: Callable[[UnitOfWork], T],
        lock_keys: Iterable[str] = (),
        timeout: Optional[float] = None,
    ) -> T:
        deadline = Deadline(self.timeout if timeout is None else timeout)
        attempt = 0
        while True:
            attempt += 1
            try:
                deadline.check(operation)
                with self.locks.hold(lock_keys, deadline), ExitStack() as lock_stack:
                    with transaction_scope(self.session_factory) as db:
                        self._prepare(db, deadline)
                        result = work(UnitOfWork(self, db, deadline, lock_stack))
                        deadline.check(operation)
                return result
            except TransientError as e:
                logger.error(f"{operation} failed: {e.message}")
                raise
            except SchedulingError as e:
                logger.info(f"{operation} rejected ({e.kind}): {e.message}")
                raise
            except (OperationalError, IntegrityError) as e:
                if attempt > self.max_retries:
                    logger.error(f"{operation} gave up after {attempt} attempts: {str(e)}")
                    raise TransientError(f"{operation} could not be completed, please retry.") from e
                logger.warning(f"{operation} attempt {attempt} hit contention, retrying: {str(e)}")
                deadline.sleep(0.05 * attempt)
            except DataError as e:
                # Value does not fit its column
                logger.info(f"{operation} rejected (data_error): {str(e)}")
                raise ValidationError("A value is out of range for its field.") from e
            except (SQLAlchemyError, RedisError) as e:
                logger.error(f"{operation} failed on storage: {str(e)}")
                raise TransientError(f"{operation} could not be completed, please retry.") from e

    def _prepare(self, db: Session, deadline: Deadline) -> None:
        if db.get_bind().dialect.name != "postgresql":
            return
        # Must be the first statement of the transaction
        db.connection(execution_options={"isolation_level": "SERIALIZABLE"})
        timeout_ms = max(int(deadline.remaining() * 1000), 1)
        db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


def _new_appointment(candidate: BookingCandidate) -> Appointment:
    appointment = Appointment()
    _apply(appointment, candidate)
    return appointment


def _apply(appointment: Appointment, candidate: BookingCandidate) -> None:
    interval = candidate.interval
    appointment.appointment_date = candidate.start
    appointment.duration_minutes = candidate.duration_minutes
    appointment.end_time = interval.end
    appointment.category = candidate.category
    appointment.patient_id = candidate.patient_id
    appointment.doctor_id = candidate.doctor_id
    appointment.clinic_id = candidate.clinic_id
