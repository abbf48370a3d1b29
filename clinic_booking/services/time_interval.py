from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class TimeInterval:
    """Half-open window ``[start, end)``.

    Intervals that only touch at a boundary do not overlap, so back-to-back
    appointments are legal. Every interval overlaps itself; callers comparing a
    stored appointment with its own replacement must skip it explicitly.
    """
    start: datetime
    end: datetime

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeInterval":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self, other)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end
