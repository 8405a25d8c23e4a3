"""In-Memory Repository Implementations"""
import logging
from threading import Lock
from typing import Callable, Optional, List, Dict
from uuid import UUID

from domain.auth import UserInDB
from domain.entities import Room, GuestReservation, HostOpenInterval
from domain.exceptions import BookingConflict, DuplicateUserError
from domain.repositories import (
    UserRepository, RoomRepository, GuestReservationRepository, HostOpenIntervalRepository
)

logger = logging.getLogger(__name__)


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self):
        self._storage: Dict[UUID, UserInDB] = {}

    async def save(self, user: UserInDB) -> UserInDB:
        """Save user to memory"""
        existing = await self.find_by_username(user.username)
        if existing and existing.user_id != user.user_id:
            raise DuplicateUserError(f"Username {user.username} is already registered")
        self._storage[user.user_id] = user.model_copy(deep=True)
        return user

    async def find_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        user = self._storage.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._storage.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def update(self, user: UserInDB) -> UserInDB:
        if user.user_id in self._storage:
            self._storage[user.user_id] = user.model_copy(deep=True)
            return user
        raise ValueError("User not found")

    async def delete(self, user_id: UUID) -> bool:
        if user_id in self._storage:
            del self._storage[user_id]
            return True
        return False


class InMemoryGuestReservationRepository(GuestReservationRepository):
    """In-memory reservation ledger with a write-time exclusion guard"""

    def __init__(self):
        self._storage: Dict[UUID, GuestReservation] = {}
        self._lock = Lock()

    async def save_if_no_overlap(
        self,
        reservation: GuestReservation,
        exclude_reservation_id: Optional[UUID] = None
    ) -> GuestReservation:
        """Check overlap and store in one critical section"""
        with self._lock:
            for existing in self._storage.values():
                if existing.room_id != reservation.room_id:
                    continue
                if existing.reservation_id in (reservation.reservation_id, exclude_reservation_id):
                    continue
                if existing.interval.overlaps(reservation.interval):
                    logger.info(
                        "Rejected reservation %s on room %s: overlaps %s",
                        reservation.reservation_id, reservation.room_id, existing.reservation_id
                    )
                    raise BookingConflict(reservation.room_id)
            self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[GuestReservation]:
        reservation = self._storage.get(reservation_id)
        return reservation.model_copy(deep=True) if reservation else None

    async def find_by_guest_id(self, guest_id: UUID) -> List[GuestReservation]:
        return self._select(lambda r: r.guest_id == guest_id)

    async def find_by_host_id(self, host_id: UUID) -> List[GuestReservation]:
        return self._select(lambda r: r.host_id == host_id)

    async def find_by_room_id(self, room_id: UUID) -> List[GuestReservation]:
        return self._select(lambda r: r.room_id == room_id)

    async def delete(self, reservation_id: UUID) -> bool:
        with self._lock:
            return self._storage.pop(reservation_id, None) is not None

    def _select(self, predicate: Callable[[GuestReservation], bool]) -> List[GuestReservation]:
        return [r.model_copy(deep=True) for r in list(self._storage.values()) if predicate(r)]


class InMemoryHostOpenIntervalRepository(HostOpenIntervalRepository):
    """In-memory implementation of HostOpenIntervalRepository"""

    def __init__(self):
        self._storage: Dict[UUID, HostOpenInterval] = {}

    async def save(self, host_interval: HostOpenInterval) -> HostOpenInterval:
        self._storage[host_interval.host_reservation_id] = host_interval.model_copy(deep=True)
        return host_interval

    async def find_by_id(self, host_reservation_id: UUID) -> Optional[HostOpenInterval]:
        host_interval = self._storage.get(host_reservation_id)
        return host_interval.model_copy(deep=True) if host_interval else None

    async def find_by_host_id(self, host_id: UUID) -> List[HostOpenInterval]:
        return [h.model_copy(deep=True) for h in self._storage.values() if h.host_id == host_id]

    async def find_by_room_id(self, room_id: UUID) -> List[HostOpenInterval]:
        return [h.model_copy(deep=True) for h in self._storage.values() if h.room_id == room_id]

    async def update(self, host_interval: HostOpenInterval) -> HostOpenInterval:
        if host_interval.host_reservation_id in self._storage:
            self._storage[host_interval.host_reservation_id] = host_interval.model_copy(deep=True)
            return host_interval
        raise ValueError("Host reservation not found")

    async def delete(self, host_reservation_id: UUID) -> bool:
        if host_reservation_id in self._storage:
            del self._storage[host_reservation_id]
            return True
        return False


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository.

    Rooms are stored bare; reads attach the room's guest reservations and
    host-open intervals from the other two repositories.
    """

    def __init__(
        self,
        reservation_repo: GuestReservationRepository,
        host_interval_repo: HostOpenIntervalRepository
    ):
        self._storage: Dict[UUID, Room] = {}
        self._reservations = reservation_repo
        self._host_intervals = host_interval_repo

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        self._storage[room.room_id] = room.without_associations()
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        room = self._storage.get(room_id)
        if room is None:
            return None
        return await self._snapshot(room)

    async def find_all(self) -> List[Room]:
        return await self._snapshots(lambda room: True)

    async def find_by_host_id(self, host_id: UUID) -> List[Room]:
        return await self._snapshots(lambda room: room.host_id == host_id)

    async def find_by_filter(
        self,
        room_type: Optional[str] = None,
        capacity: Optional[int] = None,
        location: Optional[str] = None
    ) -> List[Room]:
        predicates = []
        if room_type is not None:
            needle = room_type.lower()
            predicates.append(lambda room: needle in room.room_type.lower())
        if capacity is not None:
            predicates.append(lambda room: room.capacity == capacity)
        if location is not None:
            place = location.lower()
            predicates.append(lambda room: place in room.location.lower())

        return await self._snapshots(lambda room: all(p(room) for p in predicates))

    async def update(self, room: Room) -> Room:
        if room.room_id in self._storage:
            self._storage[room.room_id] = room.without_associations()
            return room
        raise ValueError("Room not found")

    async def delete(self, room_id: UUID) -> bool:
        if room_id in self._storage:
            del self._storage[room_id]
            return True
        return False

    async def _snapshot(self, room: Room) -> Room:
        return room.model_copy(
            update={
                "reservations": await self._reservations.find_by_room_id(room.room_id),
                "host_open_intervals": await self._host_intervals.find_by_room_id(room.room_id),
            },
            deep=True
        )

    async def _snapshots(self, predicate: Callable[[Room], bool]) -> List[Room]:
        # dict preserves insertion order, which is the catalog's natural order
        return [await self._snapshot(room) for room in list(self._storage.values()) if predicate(room)]
