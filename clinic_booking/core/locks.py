from contextlib import contextmanager
from typing import Iterable, Iterator, Optional
import hashlib
import logging
import time

from redis.exceptions import LockError, RedisError

from .config import settings
from .database import get_redis
from .exceptions import TransientError

logger = logging.getLogger(__name__)


class Deadline:
    """Absolute point in (monotonic) time by which an operation must finish."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self.expires_at = time.monotonic() + timeout

    def remaining(self) -> float:
        return max(self.expires_at - time.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, operation: str) -> None:
        if self.expired:
            raise TransientError(f"{operation} timed out after {self.timeout:.1f}s")

    def sleep(self, seconds: float) -> None:
        """Back off, never past the deadline."""
        time.sleep(min(seconds, self.remaining()))


def doctor_key(doctor_id: int) -> str:
    return f"doctor:{doctor_id}"


def patient_key(patient_id: int) -> str:
    return f"patient:{patient_id}"


def identity_key(first_name: str, last_name: str, email: str) -> str:
    digest = hashlib.sha256(
        "\x1f".join((first_name, last_name, email)).encode()
    ).hexdigest()
    return f"identity:{digest}"


class BookingLockManager:
    """Named Redis locks scoped per doctor, patient and patient identity.

    Keys are always taken in sorted order ("doctor:" < "identity:" < "patient:"),
    so callers that add a patient lock after holding doctor / identity locks
    keep the global ordering and cannot deadlock each other.
    """

    def __init__(self, redis_client, ttl_seconds: int = 30, prefix: str = "booking-lock"):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @contextmanager
    def hold(self, keys: Iterable[str], deadline: Deadline) -> Iterator[None]:
        acquired = []
        try:
            for key in sorted(set(keys)):
                name = f"{self.prefix}:{key}"
                lock = self.redis.lock(
                    name,
                    timeout=self.ttl_seconds,
                    blocking_timeout=deadline.remaining(),
                )
                try:
                    ok = lock.acquire()
                except RedisError as e:
                    raise TransientError(f"Lock service unavailable: {str(e)}") from e
                if not ok:
                    logger.warning(f"Timed out waiting for {name}")
                    raise TransientError("Timed out waiting for a concurrent booking to finish")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                self._release(lock)

    def _release(self, lock) -> None:
        try:
            lock.release()
        except LockError:
            # Lease expired before release; the key is already free
            logger.warning(f"Booking lock {getattr(lock, 'name', '?')} expired before release")
        except RedisError as e:
            logger.error(f"Failed to release booking lock: {str(e)}")


def get_lock_manager(ttl_seconds: Optional[int] = None) -> BookingLockManager:
    return BookingLockManager(
        get_redis(),
        ttl_seconds=ttl_seconds or settings.BOOKING_LOCK_TTL_SECONDS,
    )
