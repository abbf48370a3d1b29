from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case accepted on input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_local_naive(value: datetime) -> datetime:
    """Appointment instants are clinic-local wall-clock times."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class MessageResponse(CamelModel):
    message: str
