"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional, List

from domain.exceptions import AuthorizationError, NotFoundError
from domain.value_objects import Interval, RoomImage


class GuestReservation(BaseModel):
    """Guest Reservation Entity - a booked interval on a room"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References
    room_id: UUID
    guest_id: UUID
    host_id: UUID  # denormalized from the room for authorization

    interval: Interval

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(room: "Room", guest_id: UUID, interval: Interval) -> "GuestReservation":
        """Create a reservation of room by guest"""
        if room.is_hosted_by(guest_id):
            raise AuthorizationError("Hosts cannot reserve their own rooms")

        return GuestReservation(
            room_id=room.room_id,
            guest_id=guest_id,
            host_id=room.host_id,
            interval=interval
        )

    # ==================== MODIFICATION METHODS ====================
    def reschedule(self, interval: Interval) -> None:
        """Move the reservation to a new interval"""
        self.interval = interval
        self.modified_at = datetime.utcnow()
        self.version += 1

    def belongs_to(self, user_id: UUID) -> bool:
        return self.guest_id == user_id


class HostOpenInterval(BaseModel):
    """Host Reservation Entity - a window during which the host offers the room"""

    # Identity
    host_reservation_id: UUID = Field(default_factory=uuid4)

    # References
    room_id: UUID
    host_id: UUID

    interval: Interval

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    @staticmethod
    def create(room: "Room", host_id: UUID, interval: Interval) -> "HostOpenInterval":
        """Open room for guests during interval"""
        if not room.is_hosted_by(host_id):
            raise AuthorizationError("Only the host of a room can open it for booking")

        return HostOpenInterval(
            room_id=room.room_id,
            host_id=host_id,
            interval=interval
        )

    def reschedule(self, interval: Interval) -> None:
        self.interval = interval
        self.modified_at = datetime.utcnow()
        self.version += 1

    def belongs_to(self, user_id: UUID) -> bool:
        return self.host_id == user_id


class Room(BaseModel):
    """Room Aggregate Root Entity"""

    # Identity
    room_id: UUID = Field(default_factory=uuid4)

    # Owning host
    host_id: UUID

    # Structural attributes
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    price: int = Field(gt=0)
    capacity: int = Field(ge=1)
    location: str
    room_type: str
    rate: Optional[float] = None

    # Collections (child entities)
    images: List[RoomImage] = []

    # Read-time associations, filled in by the room repository
    reservations: List[GuestReservation] = []
    host_open_intervals: List[HostOpenInterval] = []

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        host_id: UUID,
        title: str,
        price: int,
        capacity: int,
        location: str,
        room_type: str,
        subtitle: Optional[str] = None,
        description: Optional[str] = None
    ) -> "Room":
        """Create new room listing for host"""
        return Room(
            host_id=host_id,
            title=title,
            subtitle=subtitle,
            description=description,
            price=price,
            capacity=capacity,
            location=location,
            room_type=room_type
        )

    # ==================== MODIFICATION METHODS ====================
    def add_image(self, image_id: UUID) -> RoomImage:
        """Attach an image reference to the room"""
        image = RoomImage(image_id=image_id)
        self.images.append(image)
        self.touch()
        return image

    def remove_image(self, image_id: UUID) -> RoomImage:
        """Detach an image reference; the next image becomes the first one"""
        image = self.find_image(image_id)
        if image is None:
            raise NotFoundError.image(image_id)
        self.images.remove(image)
        self.touch()
        return image

    def touch(self) -> None:
        self.modified_at = datetime.utcnow()
        self.version += 1

    # ==================== QUERY METHODS ====================
    def is_hosted_by(self, user_id: UUID) -> bool:
        return self.host_id == user_id

    def first_image(self) -> Optional[RoomImage]:
        return self.images[0] if self.images else None

    def find_image(self, image_id: UUID) -> Optional[RoomImage]:
        return next((i for i in self.images if i.image_id == image_id), None)

    def guest_intervals(self) -> List[Interval]:
        return [r.interval for r in self.reservations]

    def host_intervals(self) -> List[Interval]:
        return [h.interval for h in self.host_open_intervals]

    def without_associations(self) -> "Room":
        """Copy of the room as stored, without read-time associations"""
        return self.model_copy(update={"reservations": [], "host_open_intervals": []}, deep=True)
