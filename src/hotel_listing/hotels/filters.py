"""Caller-supplied listing filters."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hotel_listing.core.errors import InvalidFilterError

from .models import MAX_NUMERIC_VALUE, RoomEntity


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _coerce_string_list(value: object) -> list[str]:
    if value in (None, "", ()):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Iterable):
        result: list[str] = []
        for item in value:
            text = str(item).strip()
            if text:
                result.append(text)
        return result
    raise TypeError("Expected string or list of strings")


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    min: Optional[float] = Field(default=None, ge=0, le=MAX_NUMERIC_VALUE)
    max: Optional[float] = Field(default=None, ge=0, le=MAX_NUMERIC_VALUE)

    @field_validator("min", "max", mode="before")
    @classmethod
    def _blank_bounds(cls, value: object) -> object:
        return _blank_to_none(value)


class SurfaceRange(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    min: Optional[int] = Field(default=None, ge=0, le=MAX_NUMERIC_VALUE)
    max: Optional[int] = Field(default=None, ge=0, le=MAX_NUMERIC_VALUE)

    @field_validator("min", "max", mode="before")
    @classmethod
    def _blank_bounds(cls, value: object) -> object:
        return _blank_to_none(value)


class FilterArgs(BaseModel):
    """Immutable set of optional listing constraints; absence means no constraint."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True, allow_inf_nan=False)

    search: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    distance: Optional[float] = Field(default=None, ge=0, description="Search radius in kilometres")
    price: PriceRange = Field(default_factory=PriceRange)
    surface: SurfaceRange = Field(default_factory=SurfaceRange)
    rooms: Optional[int] = Field(
        default=None, ge=0, le=MAX_NUMERIC_VALUE, description="Minimum bedroom count"
    )
    bath_rooms: Optional[int] = Field(
        default=None,
        ge=0,
        le=MAX_NUMERIC_VALUE,
        alias="bathRooms",
        description="Minimum bathroom count",
    )
    types: tuple[str, ...] = ()

    @field_validator("search", "lat", "lng", "distance", "rooms", "bath_rooms", mode="before")
    @classmethod
    def _blank_scalars(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator("price", "surface", mode="before")
    @classmethod
    def _missing_range(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("types", mode="before")
    @classmethod
    def _coerce_types(cls, value: object) -> tuple[str, ...]:
        return tuple(_coerce_string_list(value))

    @classmethod
    def parse(cls, value: "FilterArgs | Mapping[str, Any] | None") -> "FilterArgs":
        """Validate raw filter input, raising :class:`InvalidFilterError` on bad shapes."""
        if value is None:
            return cls()
        if isinstance(value, FilterArgs):
            return value
        if not isinstance(value, Mapping):
            raise InvalidFilterError(f"Filter arguments must be a mapping, got {type(value).__name__}")
        try:
            return cls.model_validate(dict(value))
        except ValidationError as exc:
            raise InvalidFilterError(str(exc)) from exc

    @property
    def has_radius(self) -> bool:
        return self.lat is not None and self.lng is not None and self.distance is not None

    @property
    def price_min(self) -> Optional[int]:
        return None if self.price.min is None else int(self.price.min)

    @property
    def price_max(self) -> Optional[int]:
        return None if self.price.max is None else int(self.price.max)

    def accepts_room(self, room: RoomEntity) -> bool:
        """Return True when ``room`` satisfies every present constraint."""
        price = room.comparable_price
        if self.price_min is not None and price < self.price_min:
            return False
        if self.price_max is not None and price > self.price_max:
            return False
        if self.surface.min is not None and (room.surface is None or room.surface < self.surface.min):
            return False
        if self.surface.max is not None and (room.surface is None or room.surface > self.surface.max):
            return False
        if self.rooms is not None and (room.bedrooms_count is None or room.bedrooms_count < self.rooms):
            return False
        if self.bath_rooms is not None and (
            room.bathrooms_count is None or room.bathrooms_count < self.bath_rooms
        ):
            return False
        if self.types and room.type not in self.types:
            return False
        return True


__all__ = ["FilterArgs", "PriceRange", "SurfaceRange"]
