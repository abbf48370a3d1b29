from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from contextlib import contextmanager
from typing import Generator, Iterator, Optional
import threading
import redis
from .config import settings


def build_engine(url: str):
    """Create an engine with pool settings suited to the backend."""
    if url.startswith("sqlite"):
        # Connections are shared between request threads in tests
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )


engine = build_engine(settings.get_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Redis setup - mock for testing
if settings.TESTING:
    class RedisMockLock:
        """Thread-backed stand-in for redis.lock.Lock."""

        def __init__(self, mutex: threading.Lock, name: str, blocking_timeout: Optional[float] = None):
            self._mutex = mutex
            self.name = name
            self.blocking_timeout = blocking_timeout

        def acquire(self, blocking: Optional[bool] = None, blocking_timeout: Optional[float] = None) -> bool:
            if blocking is False:
                return self._mutex.acquire(blocking=False)
            wait = blocking_timeout if blocking_timeout is not None else self.blocking_timeout
            if wait is None:
                return self._mutex.acquire()
            return self._mutex.acquire(timeout=max(wait, 0))

        def release(self) -> None:
            self._mutex.release()

        def locked(self) -> bool:
            return self._mutex.locked()

    # In-process mock for Redis in tests; only locking is used
    class RedisMock:
        def __init__(self):
            self._locks = {}
            self._guard = threading.Lock()

        def lock(self, name, timeout=None, blocking_timeout=None, **kwargs):
            with self._guard:
                mutex = self._locks.setdefault(name, threading.Lock())
            return RedisMockLock(mutex, name, blocking_timeout=blocking_timeout)

    redis_client = RedisMock()
else:
    # Real Redis client for production
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def transaction_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Session for one logical operation: commit on success, rollback on any error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client

# Database initialization
def init_db():
    """Initialize database tables."""
    # Register every model on the metadata before creating tables
    from ..models import appointment, clinic, doctor, patient, speciality  # noqa: F401
    Base.metadata.create_all(bind=engine)
