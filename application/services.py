"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from domain.auth import User, UserInDB
from domain.availability import AvailabilityDecision, AvailabilityResolver
from domain.entities import Room, GuestReservation, HostOpenInterval
from domain.enums import AvailabilityVerdict
from domain.exceptions import AuthorizationError, BookingConflict, NotFoundError
from domain.patching import merge_interval, merge_room, merge_user
from domain.repositories import (
    UserRepository, RoomRepository, GuestReservationRepository, HostOpenIntervalRepository
)
from domain.value_objects import RoomImage
from infrastructure.security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

REJECTION_MESSAGES = {
    AvailabilityVerdict.HOST_CLOSED: "Room {room_id} is not offered by its host for the requested dates",
    AvailabilityVerdict.GUEST_CONFLICT: "Room {room_id} is already reserved for the requested dates",
}


class UserService:
    """Service for registration and credential checks"""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def register(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None
    ) -> User:
        """Register a new user"""
        user = UserInDB(
            username=username,
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password)
        )
        await self.repository.save(user)
        logger.info("Registered user %s", user.user_id)
        return user.to_public()

    async def authenticate(self, username: str, password: str) -> Optional[UserInDB]:
        """Return the user if the credentials match"""
        user = await self.repository.find_by_username(username)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    def issue_token(self, user: User) -> str:
        return create_access_token(data={"sub": str(user.user_id)})

    async def get_user(self, user_id: UUID) -> User:
        user = await self.repository.find_by_id(user_id)
        if not user:
            raise NotFoundError.user(user_id)
        return user.to_public()

    async def update_user(self, user_id: UUID, patch: BaseModel) -> User:
        user = await self.repository.find_by_id(user_id)
        if not user:
            raise NotFoundError.user(user_id)
        merge_user(user, patch)
        await self.repository.update(user)
        return user.to_public()


class RoomService:
    """Service for Room listings of a host"""

    def __init__(self, repository: RoomRepository):
        self.repository = repository

    async def create_room(
        self,
        host_id: UUID,
        title: str,
        price: int,
        capacity: int,
        location: str,
        room_type: str,
        subtitle: Optional[str] = None,
        description: Optional[str] = None
    ) -> Room:
        """Create room listing owned by host"""
        room = Room.create(
            host_id=host_id,
            title=title,
            subtitle=subtitle,
            description=description,
            price=price,
            capacity=capacity,
            location=location,
            room_type=room_type
        )
        await self.repository.save(room)
        logger.info("Host %s listed room %s", host_id, room.room_id)
        return room

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.repository.find_by_id(room_id)
        if not room:
            raise NotFoundError.room(room_id)
        return room

    async def get_host_room(self, host_id: UUID, room_id: UUID) -> Room:
        """Get room through its host, hiding rooms of other hosts"""
        room = await self.get_room(room_id)
        if not room.is_hosted_by(host_id):
            raise NotFoundError.room(room_id)
        return room

    async def get_rooms_by_host(self, host_id: UUID) -> List[Room]:
        return await self.repository.find_by_host_id(host_id)

    async def patch_room(self, host_id: UUID, room_id: UUID, patch: BaseModel) -> Room:
        """Apply non-null fields of patch to the room"""
        room = await self._owned_room(host_id, room_id)
        merge_room(room, patch)
        room.touch()
        return await self.repository.update(room)

    async def delete_room(self, host_id: UUID, room_id: UUID) -> Room:
        room = await self._owned_room(host_id, room_id)
        await self.repository.delete(room_id)
        logger.info("Host %s deleted room %s", host_id, room_id)
        return room

    async def add_image(self, host_id: UUID, room_id: UUID, image_id: UUID) -> RoomImage:
        room = await self._owned_room(host_id, room_id)
        image = room.add_image(image_id)
        await self.repository.update(room)
        return image

    async def get_images(self, room_id: UUID) -> List[RoomImage]:
        room = await self.get_room(room_id)
        return room.images

    async def get_image(self, room_id: UUID, image_id: UUID) -> RoomImage:
        room = await self.get_room(room_id)
        image = room.find_image(image_id)
        if image is None:
            raise NotFoundError.image(image_id)
        return image

    async def remove_image(self, host_id: UUID, room_id: UUID, image_id: UUID) -> RoomImage:
        room = await self._owned_room(host_id, room_id)
        image = room.remove_image(image_id)
        await self.repository.update(room)
        logger.info("Host %s removed image %s from room %s", host_id, image_id, room_id)
        return image

    async def get_room_reservations(self, host_id: UUID, room_id: UUID) -> List[GuestReservation]:
        """Guest reservations of a room, visible to its host"""
        room = await self._owned_room(host_id, room_id)
        return room.reservations

    async def _owned_room(self, host_id: UUID, room_id: UUID) -> Room:
        room = await self.get_room(room_id)
        if not room.is_hosted_by(host_id):
            raise AuthorizationError()
        return room


class AvailabilityService:
    """Answers availability questions for a room id"""

    def __init__(self, room_repo: RoomRepository, resolver: Optional[AvailabilityResolver] = None):
        self.room_repo = room_repo
        self.resolver = resolver or AvailabilityResolver()

    async def check(self, room_id: UUID, start: datetime, end: datetime) -> AvailabilityDecision:
        """Decide availability; the range is validated before the room is loaded"""
        candidate = self.resolver.candidate(start, end)
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError.room(room_id)
        return self.resolver.decide(room, candidate)

    async def is_available(self, room_id: UUID, start: datetime, end: datetime) -> bool:
        decision = await self.check(room_id, start, end)
        return decision.available


class ReservationService:
    """Service for guest Reservation business use cases"""

    def __init__(
        self,
        repository: GuestReservationRepository,
        room_repo: RoomRepository,
        resolver: Optional[AvailabilityResolver] = None
    ):
        self.repository = repository
        self.room_repo = room_repo
        self.resolver = resolver or AvailabilityResolver()

    async def create_reservation(
        self,
        guest_id: UUID,
        room_id: UUID,
        start: datetime,
        end: datetime
    ) -> GuestReservation:
        """Book room for guest.

        Availability is checked against a snapshot and then enforced again
        by the ledger's write guard, which raises BookingConflict if a
        concurrent booking got there first.
        """
        candidate = self.resolver.candidate(start, end)
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError.room(room_id)

        reservation = GuestReservation.create(room, guest_id, candidate)
        self._ensure_available(room, reservation)

        saved = await self.repository.save_if_no_overlap(reservation)
        logger.info("Guest %s reserved room %s for %s", guest_id, room_id, candidate)
        return saved

    async def get_reservation(self, user_id: UUID, reservation_id: UUID) -> GuestReservation:
        """Get reservation visible to user as guest or host"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation or user_id not in (reservation.guest_id, reservation.host_id):
            raise NotFoundError.reservation(reservation_id)
        return reservation

    async def get_reservations_by_guest(self, guest_id: UUID) -> List[GuestReservation]:
        return await self.repository.find_by_guest_id(guest_id)

    async def get_reservations_by_host(self, host_id: UUID) -> List[GuestReservation]:
        return await self.repository.find_by_host_id(host_id)

    async def update_reservation(
        self,
        guest_id: UUID,
        reservation_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> GuestReservation:
        """Move a reservation; only provided endpoints change"""
        reservation = await self._guest_reservation(guest_id, reservation_id)
        interval, changed = merge_interval(reservation.interval, start, end)
        if not changed:
            return reservation

        room = await self.room_repo.find_by_id(reservation.room_id)
        if not room:
            raise NotFoundError.room(reservation.room_id)

        reservation.reschedule(interval)
        self._ensure_available(room, reservation)
        saved = await self.repository.save_if_no_overlap(reservation)
        logger.info("Reservation %s moved to %s", reservation_id, interval)
        return saved

    async def delete_reservation(self, guest_id: UUID, reservation_id: UUID) -> GuestReservation:
        reservation = await self._guest_reservation(guest_id, reservation_id)
        await self.repository.delete(reservation_id)
        logger.info("Reservation %s cancelled by guest %s", reservation_id, guest_id)
        return reservation

    async def _guest_reservation(self, guest_id: UUID, reservation_id: UUID) -> GuestReservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation or not reservation.belongs_to(guest_id):
            raise NotFoundError.reservation(reservation_id)
        return reservation

    def _ensure_available(self, room: Room, reservation: GuestReservation) -> None:
        decision = self.resolver.decide(room, reservation.interval, exclude_reservation_id=reservation.reservation_id)
        if not decision.available:
            logger.info(
                "Rejected reservation on room %s for %s: %s",
                room.room_id, reservation.interval, decision.verdict.value
            )
            raise BookingConflict(
                room.room_id,
                REJECTION_MESSAGES[decision.verdict].format(room_id=room.room_id)
            )


class HostReservationService:
    """Service for host-open intervals"""

    def __init__(self, repository: HostOpenIntervalRepository, room_repo: RoomRepository):
        self.repository = repository
        self.room_repo = room_repo

    async def create_host_reservation(
        self,
        host_id: UUID,
        room_id: UUID,
        start: datetime,
        end: datetime
    ) -> HostOpenInterval:
        """Open host's room for guests during [start, end)"""
        candidate = AvailabilityResolver.candidate(start, end)
        room = await self.room_repo.find_by_id(room_id)
        if not room:
            raise NotFoundError.room(room_id)

        host_interval = HostOpenInterval.create(room, host_id, candidate)
        await self.repository.save(host_interval)
        logger.info("Host %s opened room %s for %s", host_id, room_id, candidate)
        return host_interval

    async def get_host_reservation(self, host_id: UUID, host_reservation_id: UUID) -> HostOpenInterval:
        host_interval = await self.repository.find_by_id(host_reservation_id)
        if not host_interval or not host_interval.belongs_to(host_id):
            raise NotFoundError.host_reservation(host_reservation_id)
        return host_interval

    async def get_host_reservations(self, host_id: UUID) -> List[HostOpenInterval]:
        return await self.repository.find_by_host_id(host_id)

    async def get_room_host_reservations(self, room_id: UUID) -> List[HostOpenInterval]:
        return await self.repository.find_by_room_id(room_id)

    async def update_host_reservation(
        self,
        host_id: UUID,
        host_reservation_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> HostOpenInterval:
        host_interval = await self.get_host_reservation(host_id, host_reservation_id)
        interval, changed = merge_interval(host_interval.interval, start, end)
        if changed:
            host_interval.reschedule(interval)
            await self.repository.update(host_interval)
        return host_interval

    async def delete_host_reservation(self, host_id: UUID, host_reservation_id: UUID) -> HostOpenInterval:
        host_interval = await self.get_host_reservation(host_id, host_reservation_id)
        await self.repository.delete(host_reservation_id)
        return host_interval
