"""Availability resolution for a single room.

A booking request is decided in two steps:

1. Host gate. A room without host-open intervals is always offered. A room
   with at least one host-open interval is offered only for candidates that
   one of those intervals fully contains.
2. Guest conflict. The candidate must not overlap any guest reservation.

Everything here is a pure function of the room snapshot and the candidate.
"""
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from domain.entities import Room
from domain.enums import AvailabilityVerdict
from domain.exceptions import InvalidRangeError
from domain.value_objects import Interval, as_utc


class AvailabilityIndex:
    """Booked and host-open intervals of one room"""

    def __init__(self, booked: Iterable[Interval], host_open: Iterable[Interval] = ()):
        self._booked = list(booked)
        self._host_open = list(host_open)

    @classmethod
    def for_room(cls, room: Room, exclude_reservation_id: Optional[UUID] = None) -> "AvailabilityIndex":
        booked = [
            r.interval for r in room.reservations
            if r.reservation_id != exclude_reservation_id
        ]
        return cls(booked, room.host_intervals())

    @property
    def has_host_windows(self) -> bool:
        return bool(self._host_open)

    def conflicting(self, candidate: Interval) -> List[Interval]:
        return [booked for booked in self._booked if booked.overlaps(candidate)]

    def conflicts_with(self, candidate: Interval) -> bool:
        return any(booked.overlaps(candidate) for booked in self._booked)

    def is_host_open_for(self, candidate: Interval) -> bool:
        # containment, not overlap
        if not self._host_open:
            return True
        return any(window.contains(candidate) for window in self._host_open)


class AvailabilityDecision(BaseModel):
    """Outcome of resolving one candidate interval against one room"""
    room_id: UUID
    candidate: Interval
    verdict: AvailabilityVerdict
    conflicts: List[Interval] = []

    @property
    def available(self) -> bool:
        return self.verdict == AvailabilityVerdict.AVAILABLE

    class Config:
        frozen = True


class AvailabilityResolver:
    """Decides whether a candidate interval may be booked on a room"""

    @staticmethod
    def candidate(start: datetime, end: datetime) -> Interval:
        """Build a candidate interval, rejecting start >= end"""
        if as_utc(start) >= as_utc(end):
            raise InvalidRangeError(start, end)
        return Interval(start=start, end=end)

    def decide(
        self,
        room: Room,
        candidate: Interval,
        exclude_reservation_id: Optional[UUID] = None
    ) -> AvailabilityDecision:
        index = AvailabilityIndex.for_room(room, exclude_reservation_id)

        if not index.is_host_open_for(candidate):
            verdict, conflicts = AvailabilityVerdict.HOST_CLOSED, []
        else:
            conflicts = index.conflicting(candidate)
            verdict = AvailabilityVerdict.GUEST_CONFLICT if conflicts else AvailabilityVerdict.AVAILABLE

        return AvailabilityDecision(
            room_id=room.room_id,
            candidate=candidate,
            verdict=verdict,
            conflicts=conflicts
        )

    def is_available(
        self,
        room: Room,
        candidate: Interval,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        return self.decide(room, candidate, exclude_reservation_id).available
