"""Hotel listing pipeline over a normalized key/attribute store."""

from hotel_listing.core.errors import InvalidFilterError, ListingTimeoutError, StoreFailure
from hotel_listing.hotels import FilterArgs, HotelEntity, RoomEntity
from hotel_listing.listing import ListingService

__version__ = "0.1.0"

__all__ = [
    "FilterArgs",
    "HotelEntity",
    "InvalidFilterError",
    "ListingService",
    "ListingTimeoutError",
    "RoomEntity",
    "StoreFailure",
]
