"""Error taxonomy for the scheduling core.

Every failure a booking operation can report derives from ``SchedulingError``
and knows how to render itself for API callers. Only ``TransientError`` is
safe to retry unchanged.
"""
from typing import Any, Dict, Optional

from fastapi import status


class SchedulingError(Exception):
    kind: str = "scheduling_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }


class ValidationError(SchedulingError):
    """A required field is missing or a value is out of range."""
    kind = "validation_error"


class ReferentialError(SchedulingError):
    """A referenced patient, doctor or clinic does not exist."""
    kind = "referential_error"


class TemporalPolicyError(SchedulingError):
    """The start instant is in the past or outside business hours."""
    kind = "temporal_policy_error"


class ConflictError(SchedulingError):
    """The candidate interval overlaps an existing booking."""
    kind = "conflict_error"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, scope: Optional[str] = None):
        super().__init__(message)
        self.scope = scope

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["scope"] = self.scope
        return payload


class NotFoundError(SchedulingError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class TransientError(SchedulingError):
    """Storage or lock infrastructure failed; the request may be resubmitted."""
    kind = "transient_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
