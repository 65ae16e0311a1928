"""Dataclasses for assembled hotel listings and their rooms."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

AttributeBag = Dict[str, Optional[str]]

# Largest magnitude every stored or filtered number may take; integers up to
# 2**53 survive float round trips and fit SQLite's signed 64-bit INTEGER.
MAX_NUMERIC_VALUE = 2**53

HOTEL_ADDRESS_KEYS: tuple[str, ...] = (
    "address_1",
    "address_2",
    "address_city",
    "address_zip",
    "address_country",
)
HOTEL_ATTRIBUTE_KEYS: tuple[str, ...] = HOTEL_ADDRESS_KEYS + (
    "geo_lat",
    "geo_lng",
    "coverImage",
    "phone",
)
ROOM_ATTRIBUTE_KEYS: tuple[str, ...] = (
    "price",
    "surface",
    "bedrooms_count",
    "bathrooms_count",
    "type",
    "coverImage",
)


@dataclass(frozen=True, slots=True)
class PrimaryRecord:
    """Raw hotel row read from the ``users`` table."""

    id: int
    display_name: str


@dataclass(frozen=True, slots=True)
class ReviewStats:
    rating: int = 0
    count: int = 0


@dataclass(frozen=True, slots=True)
class Address:
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_attributes(cls, bag: AttributeBag) -> "Address":
        return cls(
            line1=bag.get("address_1"),
            line2=bag.get("address_2"),
            city=bag.get("address_city"),
            zip=bag.get("address_zip"),
            country=bag.get("address_country"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "zip": self.zip,
            "country": self.country,
        }


@dataclass(frozen=True, slots=True)
class RoomEntity:
    """A bookable room owned by a hotel."""

    id: int
    title: str
    price: float
    image_url: Optional[str] = None
    surface: Optional[int] = None
    bedrooms_count: Optional[int] = None
    bathrooms_count: Optional[int] = None
    type: Optional[str] = None

    @property
    def comparable_price(self) -> int:
        # Prices are compared truncated, never rounded.
        return int(self.price)

    @classmethod
    def from_attributes(cls, room_id: int, title: str, bag: AttributeBag) -> Optional["RoomEntity"]:
        """Build a room from its raw attributes; rooms without a usable price yield ``None``."""
        price = parse_float(bag.get("price"))
        if price is None:
            return None
        return cls(
            id=room_id,
            title=title,
            price=price,
            image_url=bag.get("coverImage"),
            surface=parse_int(bag.get("surface")),
            bedrooms_count=parse_int(bag.get("bedrooms_count")),
            bathrooms_count=parse_int(bag.get("bathrooms_count")),
            type=bag.get("type"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "imageUrl": self.image_url,
            "surface": self.surface,
            "bedroomsCount": self.bedrooms_count,
            "bathroomsCount": self.bathrooms_count,
            "type": self.type,
        }


@dataclass(frozen=True, slots=True)
class HotelEntity:
    """Fully assembled hotel as returned by a listing."""

    id: int
    name: str
    address: Address
    geo_lat: Optional[float]
    geo_lng: Optional[float]
    image_url: Optional[str]
    phone: Optional[str]
    rating: int
    rating_count: int
    cheapest_room: RoomEntity
    distance: Optional[float] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address.to_dict(),
            "geoLat": self.geo_lat,
            "geoLng": self.geo_lng,
            "imageUrl": self.image_url,
            "phone": self.phone,
            "rating": self.rating,
            "ratingCount": self.rating_count,
            "cheapestRoom": self.cheapest_room.to_dict(),
            "distance": self.distance,
        }

    @classmethod
    def from_iterable(cls, hotels: Iterable["HotelEntity"]) -> List[dict[str, object]]:
        return [hotel.to_dict() for hotel in hotels]


def parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or abs(number) > MAX_NUMERIC_VALUE:
        return None
    return number


def parse_int(value: Optional[str]) -> Optional[int]:
    # Stored numbers may carry decimals ("42.0"); truncate like the store does.
    number = parse_float(value)
    if number is None:
        return None
    return int(number)
