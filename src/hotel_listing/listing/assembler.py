"""Builds one :class:`HotelEntity` from a primary record and applies the filter chain."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union

from hotel_listing.core.errors import StoreFailure
from hotel_listing.core.timing import NullTimings, TimingSink, timed
from hotel_listing.hotels.filters import FilterArgs
from hotel_listing.hotels.geo import distance_km
from hotel_listing.hotels.models import (
    HOTEL_ATTRIBUTE_KEYS,
    Address,
    AttributeBag,
    HotelEntity,
    PrimaryRecord,
    ReviewStats,
    RoomEntity,
    parse_float,
)

from .attributes import AttributeStore
from .reviews import ReviewAggregator
from .rooms import RoomFinder

logger = logging.getLogger(__name__)


class ExclusionReason(str, Enum):
    NO_MATCHING_ROOM = "no_matching_room"
    OUTSIDE_RADIUS = "outside_radius"
    MISSING_COORDINATES = "missing_coordinates"


@dataclass(frozen=True, slots=True)
class Assembled:
    hotel: HotelEntity


@dataclass(frozen=True, slots=True)
class Excluded:
    record_id: int
    reason: ExclusionReason


@dataclass(frozen=True, slots=True)
class Failed:
    record_id: int
    error: StoreFailure


AssemblyOutcome = Union[Assembled, Excluded, Failed]


@dataclass(frozen=True)
class EntityAssembler:
    attributes: AttributeStore
    reviews: ReviewAggregator
    rooms: RoomFinder
    timings: TimingSink = field(default_factory=NullTimings)

    def for_listing(self, attributes: AttributeStore, timings: TimingSink) -> "EntityAssembler":
        """Copy bound to one listing call's preloaded attributes and timing sink."""
        return replace(self, attributes=attributes, timings=timings)

    async def assemble(self, record: PrimaryRecord, filters: FilterArgs) -> AssemblyOutcome:
        """Assemble ``record``; store failures come back as :class:`Failed`, never as exclusions."""
        try:
            return await self._assemble(record, filters)
        except StoreFailure as exc:
            logger.error("Store failure while assembling hotel %s: %s", record.id, exc)
            return Failed(record.id, exc)

    async def _assemble(self, record: PrimaryRecord, filters: FilterArgs) -> AssemblyOutcome:
        bag = await self._load_attributes(record.id)
        stats = await self._load_reviews(record.id)

        room = await self._find_cheapest_room(record.id, filters)
        if room is None:
            return Excluded(record.id, ExclusionReason.NO_MATCHING_ROOM)

        geo_lat = parse_float(bag.get("geo_lat"))
        geo_lng = parse_float(bag.get("geo_lng"))
        distance: Optional[float] = None
        if filters.has_radius:
            if geo_lat is None or geo_lng is None:
                return Excluded(record.id, ExclusionReason.MISSING_COORDINATES)
            distance = distance_km(filters.lat, filters.lng, geo_lat, geo_lng)
            if distance > filters.distance:
                return Excluded(record.id, ExclusionReason.OUTSIDE_RADIUS)

        return Assembled(
            HotelEntity(
                id=record.id,
                name=record.display_name,
                address=Address.from_attributes(bag),
                geo_lat=geo_lat,
                geo_lng=geo_lng,
                image_url=bag.get("coverImage"),
                phone=bag.get("phone"),
                rating=stats.rating,
                rating_count=stats.count,
                cheapest_room=room,
                distance=distance,
            )
        )

    @timed("loadAttributes")
    async def _load_attributes(self, entity_id: int) -> AttributeBag:
        return await self.attributes.get_attributes(entity_id, HOTEL_ATTRIBUTE_KEYS)

    @timed("loadReviews")
    async def _load_reviews(self, entity_id: int) -> ReviewStats:
        return await self.reviews.get_review_stats(entity_id)

    @timed("findCheapestRoom")
    async def _find_cheapest_room(self, entity_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        return await self.rooms.find_cheapest_room(entity_id, filters)


__all__ = [
    "Assembled",
    "AssemblyOutcome",
    "EntityAssembler",
    "Excluded",
    "ExclusionReason",
    "Failed",
]
