"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.auth import UserInDB
from domain.entities import Room, GuestReservation, HostOpenInterval


class UserRepository(ABC):
    """Repository interface for User"""

    @abstractmethod
    async def save(self, user: UserInDB) -> UserInDB:
        """Save user, raising DuplicateUserError if the username is taken"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[UserInDB]:
        pass

    @abstractmethod
    async def update(self, user: UserInDB) -> UserInDB:
        pass

    @abstractmethod
    async def delete(self, user_id: UUID) -> bool:
        pass


class RoomRepository(ABC):
    """Repository interface for Room Aggregate.

    Reads return a snapshot: the room with its guest reservations and
    host-open intervals attached as they were at read time.
    """

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room snapshot by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Whole catalog in natural order"""
        pass

    @abstractmethod
    async def find_by_host_id(self, host_id: UUID) -> List[Room]:
        """Rooms owned by host"""
        pass

    @abstractmethod
    async def find_by_filter(
        self,
        room_type: Optional[str] = None,
        capacity: Optional[int] = None,
        location: Optional[str] = None
    ) -> List[Room]:
        """Catalog query: room_type and location match as case-insensitive
        substrings, capacity exactly. Absent criteria do not restrict."""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass

    @abstractmethod
    async def delete(self, room_id: UUID) -> bool:
        """Delete room"""
        pass


class GuestReservationRepository(ABC):
    """Repository interface for guest reservations (the reservation ledger)"""

    @abstractmethod
    async def save_if_no_overlap(
        self,
        reservation: GuestReservation,
        exclude_reservation_id: Optional[UUID] = None
    ) -> GuestReservation:
        """Persist reservation unless a stored reservation of the same room
        overlaps it. The check and the write are atomic with respect to
        other writers; on overlap BookingConflict is raised."""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[GuestReservation]:
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: UUID) -> List[GuestReservation]:
        pass

    @abstractmethod
    async def find_by_host_id(self, host_id: UUID) -> List[GuestReservation]:
        pass

    @abstractmethod
    async def find_by_room_id(self, room_id: UUID) -> List[GuestReservation]:
        pass

    @abstractmethod
    async def delete(self, reservation_id: UUID) -> bool:
        pass


class HostOpenIntervalRepository(ABC):
    """Repository interface for host reservations (host-open intervals)"""

    @abstractmethod
    async def save(self, host_interval: HostOpenInterval) -> HostOpenInterval:
        pass

    @abstractmethod
    async def find_by_id(self, host_reservation_id: UUID) -> Optional[HostOpenInterval]:
        pass

    @abstractmethod
    async def find_by_host_id(self, host_id: UUID) -> List[HostOpenInterval]:
        pass

    @abstractmethod
    async def find_by_room_id(self, room_id: UUID) -> List[HostOpenInterval]:
        pass

    @abstractmethod
    async def update(self, host_interval: HostOpenInterval) -> HostOpenInterval:
        pass

    @abstractmethod
    async def delete(self, host_reservation_id: UUID) -> bool:
        pass
