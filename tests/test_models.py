from __future__ import annotations

import pytest

from hotel_listing.hotels.models import (
    HOTEL_ATTRIBUTE_KEYS,
    Address,
    HotelEntity,
    RoomEntity,
    parse_float,
    parse_int,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42.0),
        ("42.5", 42.5),
        (" 7 ", 7.0),
        ("abc", None),
        ("", None),
        ("nan", None),
        ("inf", None),
        ("1e30", None),
        ("-1e30", None),
        (str(2**53), float(2**53)),
        (None, None),
    ],
)
def test_parse_float(raw, expected):
    assert parse_float(raw) == expected


def test_parse_int_truncates():
    assert parse_int("42.9") == 42
    assert parse_int("3") == 3
    assert parse_int("three") is None


def test_room_without_price_is_not_a_room():
    assert RoomEntity.from_attributes(5, "Loft", {"price": None, "surface": "20"}) is None
    assert RoomEntity.from_attributes(5, "Loft", {"price": "n/a"}) is None


def test_room_from_attributes_coerces_numbers():
    room = RoomEntity.from_attributes(
        5,
        "Loft",
        {"price": "99.5", "surface": "31.2", "bedrooms_count": "2", "bathrooms_count": None, "type": "loft"},
    )
    assert room == RoomEntity(
        id=5, title="Loft", price=99.5, surface=31, bedrooms_count=2, bathrooms_count=None, type="loft"
    )
    assert room.comparable_price == 99


def test_hotel_to_dict_uses_wire_names():
    bag = dict.fromkeys(HOTEL_ATTRIBUTE_KEYS)
    bag.update({"address_city": "Paris", "address_zip": "75001"})
    hotel = HotelEntity(
        id=1,
        name="Hotel A",
        address=Address.from_attributes(bag),
        geo_lat=48.85,
        geo_lng=2.35,
        image_url=None,
        phone=None,
        rating=5,
        rating_count=3,
        cheapest_room=RoomEntity(id=101, title="Double", price=40.0),
    )
    payload = HotelEntity.from_iterable([hotel])[0]
    assert payload["address"] == {
        "line1": None,
        "line2": None,
        "city": "Paris",
        "zip": "75001",
        "country": None,
    }
    assert payload["ratingCount"] == 3
    assert payload["cheapestRoom"]["price"] == 40.0
    assert payload["distance"] is None
    assert set(payload) == {
        "id",
        "name",
        "address",
        "geoLat",
        "geoLng",
        "imageUrl",
        "phone",
        "rating",
        "ratingCount",
        "cheapestRoom",
        "distance",
    }
