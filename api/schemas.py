"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone
from uuid import UUID
from typing import List, Optional

from domain.value_objects import as_utc


def _must_be_future(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and as_utc(v) <= datetime.now(timezone.utc):
        raise ValueError("must be in the future")
    return v


# ============================================================================
# AUTH / USER SCHEMAS
# ============================================================================

class RegisterRequest(BaseModel):
    """Register user request DTO"""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    email: Optional[str] = None
    full_name: Optional[str] = None


class PatchUserRequest(BaseModel):
    """Partial user update DTO"""
    email: Optional[str] = None
    full_name: Optional[str] = None


class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    user_id: Optional[UUID] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    title: str = Field(min_length=5, max_length=50)
    subtitle: str = Field(max_length=200)
    description: str = Field(max_length=1000)
    price: int = Field(gt=0, description="Price per night")
    capacity: int = Field(ge=1, description="Number of rooms")
    location: str = Field(max_length=100)
    room_type: str = Field(max_length=100)


class PatchRoomRequest(BaseModel):
    """Partial room update DTO - null fields keep their current value"""
    title: Optional[str] = Field(None, min_length=5, max_length=50)
    subtitle: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[int] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, ge=1)
    location: Optional[str] = Field(None, max_length=100)
    room_type: Optional[str] = Field(None, max_length=100)


class AddRoomImageRequest(BaseModel):
    """Attach image reference request DTO"""
    image_id: UUID


class RoomImageResponse(BaseModel):
    """Room image response DTO"""
    image_id: UUID
    image_url: str
    added_at: datetime


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    host_id: UUID
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    price: int
    capacity: int
    location: str
    room_type: str
    rate: Optional[float] = None
    images: List[RoomImageResponse]
    created_at: datetime
    modified_at: datetime
    version: int


class RoomSearchRequest(BaseModel):
    """Room search request DTO - every criterion is optional"""
    room_type: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None


class RoomSummaryResponse(BaseModel):
    """Room search result DTO"""
    room_id: UUID
    title: str
    subtitle: Optional[str] = None
    image_url: Optional[str] = None


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create guest reservation request DTO"""
    room_id: UUID
    date_start: datetime
    date_end: datetime

    @validator('date_start', 'date_end')
    def dates_in_future(cls, v):
        return _must_be_future(v)


class PatchReservationRequest(BaseModel):
    """Move reservation request DTO"""
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None

    @validator('date_start', 'date_end')
    def dates_in_future(cls, v):
        return _must_be_future(v)


class ReservationResponse(BaseModel):
    """Guest reservation response DTO"""
    reservation_id: UUID
    room_id: UUID
    user_id: UUID
    host_id: UUID
    date_start: datetime
    date_end: datetime
    created_at: datetime
    modified_at: datetime
    version: int


class CreateHostReservationRequest(BaseModel):
    """Open room for booking request DTO"""
    room_id: UUID
    date_start: datetime
    date_end: datetime

    @validator('date_start', 'date_end')
    def dates_in_future(cls, v):
        return _must_be_future(v)


class PatchHostReservationRequest(BaseModel):
    """Move host-open interval request DTO"""
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None

    @validator('date_start', 'date_end')
    def dates_in_future(cls, v):
        return _must_be_future(v)


class HostReservationResponse(BaseModel):
    """Host reservation response DTO"""
    host_reservation_id: UUID
    room_id: UUID
    host_id: UUID
    date_start: datetime
    date_end: datetime
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class IntervalResponse(BaseModel):
    """Interval DTO"""
    start: datetime
    end: datetime


class AvailabilityResponse(BaseModel):
    """Availability decision response DTO"""
    room_id: UUID
    start: datetime
    end: datetime
    available: bool
    verdict: str
    conflicts: List[IntervalResponse] = []


class ErrorResponse(BaseModel):
    """Error body DTO"""
    status: str = "failed"
    error: str
    code: str
