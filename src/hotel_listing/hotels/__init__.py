"""Hotel domain models, filters and geometry helpers."""

from .filters import FilterArgs, PriceRange, SurfaceRange
from .geo import distance_km
from .models import (
    HOTEL_ATTRIBUTE_KEYS,
    ROOM_ATTRIBUTE_KEYS,
    Address,
    AttributeBag,
    HotelEntity,
    PrimaryRecord,
    ReviewStats,
    RoomEntity,
)

__all__ = [
    "HOTEL_ATTRIBUTE_KEYS",
    "ROOM_ATTRIBUTE_KEYS",
    "Address",
    "AttributeBag",
    "FilterArgs",
    "HotelEntity",
    "PriceRange",
    "PrimaryRecord",
    "ReviewStats",
    "RoomEntity",
    "SurfaceRange",
    "distance_km",
]
