from __future__ import annotations

import asyncio
import json
from typing import Optional

import pytest

from conftest import PARIS
from hotel_listing.config import Settings
from hotel_listing.core.errors import InvalidFilterError, ListingTimeoutError, StoreFailure
from hotel_listing.core.timing import NullTimings, TimingRecorder
from hotel_listing.hotels import FilterArgs, HotelEntity, RoomEntity
from hotel_listing.listing import (
    EntityAssembler,
    ListingService,
    ReviewAggregator,
    build_attribute_store,
    build_room_finder,
)
from hotel_listing.storage import SqliteStore, seed_dataset


class _SlowRooms:
    async def find_cheapest_room(self, owner_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        await asyncio.sleep(5)
        return None


class _FailingRooms:
    def __init__(self, failing_id: int) -> None:
        self.failing_id = failing_id

    async def find_cheapest_room(self, owner_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        if owner_id == self.failing_id:
            raise StoreFailure(f"room lookup failed for {owner_id}")
        return RoomEntity(id=owner_id * 100, title="Stub", price=10.0)


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _service(store, rooms, **kwargs) -> ListingService:
    assembler = EntityAssembler(
        attributes=build_attribute_store(store, "bulk"),
        reviews=ReviewAggregator(store),
        rooms=rooms,
    )
    return ListingService(store, assembler, **kwargs)


@pytest.mark.asyncio
async def test_price_ceiling_keeps_only_matching_hotel(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings())
    hotels = await service.list({"price": {"max": 50}})

    assert [hotel.id for hotel in hotels] == [1]
    hotel = hotels[0]
    assert hotel.name == "Hotel A"
    assert hotel.cheapest_room.price == 40.0
    assert (hotel.rating, hotel.rating_count) == (5, 3)


@pytest.mark.asyncio
async def test_unfiltered_listing_keeps_primary_record_order(seeded_store) -> None:
    hotels = await ListingService.from_settings(seeded_store, _settings()).list()
    assert [hotel.id for hotel in hotels] == [1, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize("attribute_strategy", ["naive", "entity", "bulk"])
@pytest.mark.parametrize("room_strategy", ["query", "scan"])
async def test_strategies_produce_identical_output(seeded_store, attribute_strategy, room_strategy) -> None:
    baseline = ListingService.from_settings(
        seeded_store, _settings(attribute_strategy="naive", room_strategy="scan")
    )
    candidate = ListingService.from_settings(
        seeded_store, _settings(attribute_strategy=attribute_strategy, room_strategy=room_strategy)
    )
    for raw_filter in ({}, {"price": {"max": 50}}, {"lat": PARIS[0], "lng": PARIS[1], "distance": 1000}):
        expected = json.dumps(HotelEntity.from_iterable(await baseline.list(raw_filter)))
        actual = json.dumps(HotelEntity.from_iterable(await candidate.list(raw_filter)))
        assert actual == expected


@pytest.mark.asyncio
async def test_repeated_calls_are_identical(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings())
    first = await service.list({"types": "double"})
    second = await service.list({"types": "double"})
    assert first == second


@pytest.mark.asyncio
async def test_empty_store_lists_nothing(store) -> None:
    assert await ListingService.from_settings(store, _settings()).list() == []


@pytest.mark.asyncio
async def test_all_hotels_excluded(seeded_store) -> None:
    assert await ListingService.from_settings(seeded_store, _settings()).list({"price": {"max": 10}}) == []


@pytest.mark.asyncio
async def test_surface_floor_above_every_room_excludes_without_error(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings())
    assert await service.list({"surface": {"min": 1000}}) == []


@pytest.mark.asyncio
async def test_radius_listing_reports_distances(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings())
    hotels = await service.list(FilterArgs(lat=PARIS[0], lng=PARIS[1], distance=50))
    assert [(hotel.id, hotel.distance) for hotel in hotels] == [(1, 0.0)]


@pytest.mark.asyncio
async def test_concurrent_assembly_keeps_order(seeded_store) -> None:
    sequential = await ListingService.from_settings(seeded_store, _settings()).list()
    concurrent = await ListingService.from_settings(seeded_store, _settings(listing_concurrency=3)).list()
    assert concurrent == sequential


@pytest.mark.asyncio
async def test_deadline_aborts_listing(seeded_store) -> None:
    service = _service(seeded_store, _SlowRooms(), timeout_s=0.05)
    with pytest.raises(ListingTimeoutError):
        await service.list()

    # The per-call deadline takes precedence over the configured one.
    with pytest.raises(ListingTimeoutError):
        await _service(seeded_store, _SlowRooms()).list(timeout=0.05)


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 3])
async def test_store_failure_aborts_listing(seeded_store, concurrency) -> None:
    service = _service(seeded_store, _FailingRooms(failing_id=3), concurrency=concurrency)
    with pytest.raises(StoreFailure):
        await service.list()


@pytest.mark.asyncio
async def test_invalid_filters_fail_before_touching_the_store(tmp_path) -> None:
    # The store is never opened: any query would raise StoreFailure instead.
    store = SqliteStore(tmp_path / "unopened.sqlite")
    service = ListingService.from_settings(store, _settings())
    with pytest.raises(InvalidFilterError):
        await service.list({"price": {"min": -1}})
    with pytest.raises(StoreFailure):
        await service.list()


@pytest.mark.asyncio
async def test_timings_are_recorded_when_enabled(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings(timings_enabled=True))
    await service.list()

    assert isinstance(service.last_timings, TimingRecorder)
    totals = service.last_timings.totals()
    assert {"list", "loadAttributes", "loadReviews", "findCheapestRoom"} <= set(totals)
    assert "list;dur=" in service.last_timings.server_timing()


@pytest.mark.asyncio
async def test_each_call_gets_its_own_timings(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings(timings_enabled=True))

    await service.list()
    first = service.last_timings
    await service.list()
    second = service.last_timings

    assert first is not second
    assert len(first.entries) == len(second.entries)
    # One "list" entry plus three steps for each of the three hotels.
    assert len(second.entries) == 10
    assert [entry.name for entry in second.entries].count("list") == 1


@pytest.mark.asyncio
async def test_timings_default_to_null_sink(seeded_store) -> None:
    service = ListingService.from_settings(seeded_store, _settings())
    await service.list()
    assert isinstance(service.last_timings, NullTimings)


def test_concurrency_must_be_positive(tmp_path) -> None:
    store = SqliteStore(tmp_path / "x.sqlite")
    with pytest.raises(ValueError):
        _service(store, _SlowRooms(), concurrency=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("room_strategy", ["query", "scan"])
@pytest.mark.parametrize(
    "raw_filter",
    [{"price": {"max": 1e20}}, {"surface": {"max": 10**20}}, {"rooms": 10**20}],
)
async def test_oversized_filters_are_rejected_up_front(seeded_store, room_strategy, raw_filter) -> None:
    service = ListingService.from_settings(seeded_store, _settings(room_strategy=room_strategy))
    with pytest.raises(InvalidFilterError):
        await service.list(raw_filter)


@pytest.mark.asyncio
@pytest.mark.parametrize("room_strategy", ["query", "scan"])
async def test_unusable_stored_price_excludes_only_that_hotel(seeded_store, room_strategy) -> None:
    await seed_dataset(
        seeded_store,
        {"hotels": [{"id": 9, "name": "Hotel Z", "rooms": [{"id": 901, "title": "Gold", "meta": {"price": "1e30"}}]}]},
    )
    service = ListingService.from_settings(seeded_store, _settings(room_strategy=room_strategy))
    assert [hotel.id for hotel in await service.list()] == [1, 3]
