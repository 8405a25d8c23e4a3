"""Room search: structural catalog filter, then availability narrowing"""
import logging
from typing import List

from domain.availability import AvailabilityResolver
from domain.entities import Room
from domain.repositories import RoomRepository
from domain.value_objects import RoomFilter, RoomSummary

logger = logging.getLogger(__name__)


class RoomSearchEngine:
    """Searches the room catalog.

    Results keep the order of the underlying catalog query; no sort is
    applied here.
    """

    def __init__(
        self,
        repository: RoomRepository,
        resolver: AvailabilityResolver,
        image_url_prefix: str = "/images/"
    ):
        self.repository = repository
        self.resolver = resolver
        self.image_url_prefix = image_url_prefix

    async def filter_rooms(self, room_filter: RoomFilter) -> List[Room]:
        """Rooms matching the structural filter and, when both dates are given, free for the stay"""
        # Validate the stay before touching the catalog
        candidate = None
        if room_filter.has_dates:
            candidate = self.resolver.candidate(room_filter.check_in, room_filter.check_out)

        rooms = await self.repository.find_by_filter(
            room_type=room_filter.room_type,
            capacity=room_filter.capacity,
            location=room_filter.location
        )

        if candidate is not None:
            matched = len(rooms)
            rooms = [room for room in rooms if self.resolver.is_available(room, candidate)]
            logger.debug("Availability narrowed %d rooms to %d for %s", matched, len(rooms), candidate)

        return rooms

    async def search(self, room_filter: RoomFilter) -> List[RoomSummary]:
        """Search rooms and map them to summaries"""
        rooms = await self.filter_rooms(room_filter)
        logger.info("Room search returned %d results", len(rooms))
        return [self.summarize(room) for room in rooms]

    def summarize(self, room: Room) -> RoomSummary:
        image = room.first_image()
        return RoomSummary(
            room_id=room.room_id,
            title=room.title,
            subtitle=room.subtitle,
            image_url=f"{self.image_url_prefix}{image.image_id}" if image else None
        )
