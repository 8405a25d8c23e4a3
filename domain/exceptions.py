"""Domain Errors"""
from typing import Any


class DomainError(Exception):
    """Base class for domain errors"""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ConstraintError(DomainError, ValueError):
    """An invariant of a value object or entity was violated"""

    code = "CONSTRAINT_VIOLATED"


class InvalidRangeError(ConstraintError):
    """Start of a range is not before its end"""

    code = "INVALID_RANGE"

    def __init__(self, start: Any, end: Any):
        super().__init__(f"Range start {start} must be before end {end}")
        self.start = start
        self.end = end


class DuplicateUserError(ConstraintError):
    """Username already registered"""

    code = "DUPLICATE_USER"


class NotFoundError(DomainError, LookupError):
    """Requested entity does not exist"""

    code = "NOT_FOUND"

    @classmethod
    def room(cls, room_id) -> "NotFoundError":
        return cls(f"Room with id {room_id} not found", "ROOM_NOT_FOUND")

    @classmethod
    def reservation(cls, reservation_id) -> "NotFoundError":
        return cls(f"Reservation with id {reservation_id} not found", "RESERVATION_NOT_FOUND")

    @classmethod
    def host_reservation(cls, host_reservation_id) -> "NotFoundError":
        return cls(
            f"Host reservation with id {host_reservation_id} not found",
            "HOST_RESERVATION_NOT_FOUND"
        )

    @classmethod
    def image(cls, image_id) -> "NotFoundError":
        return cls(f"Room image with id {image_id} not found", "IMAGE_NOT_FOUND")

    @classmethod
    def user(cls, user_id) -> "NotFoundError":
        return cls(f"User with id {user_id} not found", "USER_NOT_FOUND")


class BookingConflict(DomainError):
    """Requested range cannot be booked for the room"""

    code = "BOOKING_CONFLICT"

    def __init__(self, room_id, message: str = None):
        super().__init__(message or f"Room {room_id} is not available for the requested dates")
        self.room_id = room_id


class AuthorizationError(DomainError):
    """Authenticated user may not act on this resource"""

    code = "FORBIDDEN"

    def __init__(self, message: str = "You haven't access for this resource"):
        super().__init__(message)
