"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4
from typing import Optional

from domain.exceptions import ConstraintError


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Interval(BaseModel):
    """Value Object for a half-open time range [start, end)"""
    start: datetime
    end: datetime

    @validator('start', 'end')
    def normalize_to_utc(cls, v):
        return as_utc(v)

    def __init__(self, **data):
        super().__init__(**data)
        if self.start >= self.end:
            raise ConstraintError(f"Interval start {self.start} must be before end {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def nights(self) -> int:
        """Number of whole days covered"""
        return self.duration.days

    def overlaps(self, other: "Interval") -> bool:
        """Half-open intersection; touching endpoints do not overlap"""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        """True if other lies entirely within this interval"""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"

    class Config:
        frozen = True


class RoomImage(BaseModel):
    """Child Entity referencing an externally stored image"""
    image_id: UUID = Field(default_factory=uuid4)
    added_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class RoomFilter(BaseModel):
    """Value Object describing a catalog search"""
    room_type: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None

    @property
    def has_dates(self) -> bool:
        """Availability narrowing needs both ends of the stay"""
        return self.check_in is not None and self.check_out is not None

    class Config:
        frozen = True


class RoomSummary(BaseModel):
    """Value Object for a search result row"""
    room_id: UUID
    title: str
    subtitle: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        frozen = True
