import os
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Set testing environment before the application is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from clinic_booking.main import app  # noqa: E402
from clinic_booking.api.deps import get_scheduling_service  # noqa: E402
from clinic_booking.core.database import Base, RedisMock, build_engine, get_db  # noqa: E402
from clinic_booking.core.locks import BookingLockManager  # noqa: E402
from clinic_booking.models.clinic import Clinic  # noqa: E402
from clinic_booking.models.doctor import Doctor  # noqa: E402
from clinic_booking.models.patient import Patient  # noqa: E402
from clinic_booking.models.speciality import Speciality  # noqa: E402
from clinic_booking.models.appointment import Appointment  # noqa: E402,F401
from clinic_booking.schemas.appointment import AppointmentCreate  # noqa: E402
from clinic_booking.services.scheduling_service import SchedulingService  # noqa: E402

# Monday 07:00; every booking in the tests is made for the following day
NOW = datetime(2030, 1, 7, 7, 0)
BOOKING_DAY = NOW + timedelta(days=1)


def at(hour: int, minute: int = 0, second: int = 0, day: datetime = BOOKING_DAY) -> datetime:
    return day.replace(hour=hour, minute=minute, second=second, microsecond=0)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def redis_mock():
    return RedisMock()


@pytest.fixture
def lock_manager(redis_mock):
    return BookingLockManager(redis_mock, ttl_seconds=5)


@pytest.fixture
def service(session_factory, lock_manager):
    return SchedulingService(
        session_factory,
        lock_manager,
        clock=fixed_clock,
        timeout=5,
        max_retries=2,
    )


@pytest.fixture
def seed(session_factory):
    """One clinic, one speciality, two doctors and two patients."""
    with session_factory() as db:
        clinic = Clinic(name="Star Clinic", address="1 Main Street")
        speciality = Speciality(name="Dermatology")
        db.add_all([clinic, speciality])
        db.flush()

        doctor = Doctor(first_name="John", last_name="Smith", clinic_id=clinic.id, speciality_id=speciality.id)
        other_doctor = Doctor(first_name="Ana", last_name="Lopez", clinic_id=clinic.id, speciality_id=speciality.id)
        patient = Patient(first_name="Jane", last_name="Doe", email="jane@example.com")
        other_patient = Patient(first_name="Max", last_name="Power", email="max@example.com")
        db.add_all([doctor, other_doctor, patient, other_patient])
        db.flush()

        ids = SimpleNamespace(
            clinic_id=clinic.id,
            speciality_id=speciality.id,
            doctor_id=doctor.id,
            other_doctor_id=other_doctor.id,
            patient_id=patient.id,
            other_patient_id=other_patient.id,
        )
        db.commit()
    return ids


@pytest.fixture
def make_booking(seed):
    """Build an AppointmentCreate for the seeded doctor / patient / clinic."""
    def build(start: datetime, duration: int = 30, **overrides) -> AppointmentCreate:
        fields = {
            "appointment_date_time": start,
            "category": "Checkup",
            "patient_id": seed.patient_id,
            "doctor_id": seed.doctor_id,
            "clinic_id": seed.clinic_id,
            "duration_in_minutes": duration,
        }
        fields.update(overrides)
        return AppointmentCreate(**fields)

    return build


@pytest.fixture
def client(session_factory, service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduling_service] = lambda: service
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
