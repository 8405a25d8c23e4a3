"""Domain Enums"""
from enum import Enum


class AvailabilityVerdict(str, Enum):
    AVAILABLE = "AVAILABLE"
    HOST_CLOSED = "HOST_CLOSED"
    GUEST_CONFLICT = "GUEST_CONFLICT"
