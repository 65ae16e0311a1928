"""Cheapest-qualifying-room lookups.

Both finders apply the same rules: every present constraint must hold, a
missing attribute fails any constraint on it, rooms without a usable price
never qualify, and the winner is the lowest truncated price with ties going to
the lowest room id. ``None`` means no room matched.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from hotel_listing.core.errors import StoreFailure
from hotel_listing.hotels.filters import FilterArgs
from hotel_listing.hotels.models import ROOM_ATTRIBUTE_KEYS, AttributeBag, RoomEntity
from hotel_listing.storage.sqlite_store import SqliteStore, StoreHandle, placeholders

logger = logging.getLogger(__name__)


class RoomDetailLoader(Protocol):
    async def load_by_id(self, room_id: int) -> RoomEntity:
        ...


class RoomFinder(Protocol):
    async def find_cheapest_room(self, owner_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        ...


def _pivot(rows: list[Any]) -> dict[int, tuple[str, AttributeBag]]:
    """Group ``(ID, post_title, meta_key, meta_value)`` rows per room, earliest meta row first."""
    rooms: dict[int, tuple[str, AttributeBag]] = {}
    seen: set[tuple[int, str]] = set()
    for row in rows:
        room_id = int(row["ID"])
        if room_id not in rooms:
            rooms[room_id] = (row["post_title"] or "", dict.fromkeys(ROOM_ATTRIBUTE_KEYS))
        key = row["meta_key"]
        if key is None or (room_id, key) in seen:
            continue
        seen.add((room_id, key))
        rooms[room_id][1][key] = row["meta_value"]
    return rooms


async def _fetch_room_rows(handle: StoreHandle, where: str, params: tuple[Any, ...]) -> list[Any]:
    return await handle.fetch_all(
        f"""
        SELECT p.ID, p.post_title, pm.meta_key, pm.meta_value
        FROM posts p
        LEFT JOIN postmeta pm
               ON pm.post_id = p.ID
              AND pm.meta_key IN ({placeholders(len(ROOM_ATTRIBUTE_KEYS))})
        WHERE {where}
        ORDER BY p.ID, pm.meta_id
        """,
        (*ROOM_ATTRIBUTE_KEYS, *params),
    )


class SqliteRoomLoader:
    """Loads full room details from ``posts`` and ``postmeta``."""

    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    async def load_by_id(self, room_id: int) -> RoomEntity:
        async with self._store.acquire() as handle:
            rows = await _fetch_room_rows(handle, "p.ID = ? AND p.post_type = 'room'", (room_id,))
        rooms = _pivot(rows)
        if room_id not in rooms:
            raise StoreFailure(f"Room {room_id} not found")
        title, bag = rooms[room_id]
        room = RoomEntity.from_attributes(room_id, title, bag)
        if room is None:
            raise StoreFailure(f"Room {room_id} has no usable price")
        return room


class ScanRoomFinder:
    """Loads every room of the owner in one query and filters in memory."""

    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    async def find_cheapest_room(self, owner_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        async with self._store.acquire() as handle:
            rows = await _fetch_room_rows(
                handle, "p.post_author = ? AND p.post_type = 'room'", (owner_id,)
            )
        cheapest: Optional[RoomEntity] = None
        for room_id, (title, bag) in _pivot(rows).items():
            room = RoomEntity.from_attributes(room_id, title, bag)
            if room is None or not filters.accepts_room(room):
                continue
            if cheapest is None or room.comparable_price < cheapest.comparable_price:
                cheapest = room
        return cheapest


_ROOM_COLUMNS = {
    "price": "price",
    "surface": "surface",
    "bedrooms_count": "bedrooms",
    "bathrooms_count": "bathrooms",
    "type": "room_type",
}


def build_room_query(owner_id: int, filters: FilterArgs) -> tuple[str, tuple[Any, ...]]:
    """Return a single filtered, sorted, limited statement selecting the winning room id."""
    columns = ",\n".join(
        f"(SELECT m.meta_value FROM postmeta m WHERE m.post_id = p.ID AND m.meta_key = '{key}' "
        f"ORDER BY m.meta_id LIMIT 1) AS {alias}"
        for key, alias in _ROOM_COLUMNS.items()
    )
    clauses = ["as_real(price) IS NOT NULL"]
    params: list[Any] = [owner_id]
    if filters.surface.min is not None:
        clauses.append("as_int(surface) >= ?")
        params.append(filters.surface.min)
    if filters.surface.max is not None:
        clauses.append("as_int(surface) <= ?")
        params.append(filters.surface.max)
    if filters.price_min is not None:
        clauses.append("as_int(price) >= ?")
        params.append(filters.price_min)
    if filters.price_max is not None:
        clauses.append("as_int(price) <= ?")
        params.append(filters.price_max)
    if filters.rooms is not None:
        clauses.append("as_int(bedrooms) >= ?")
        params.append(filters.rooms)
    if filters.bath_rooms is not None:
        clauses.append("as_int(bathrooms) >= ?")
        params.append(filters.bath_rooms)
    if filters.types:
        clauses.append(f"room_type IN ({placeholders(len(filters.types))})")
        params.extend(filters.types)

    sql = f"""
        WITH rooms AS (
            SELECT p.ID AS id,
                   {columns}
            FROM posts p
            WHERE p.post_author = ? AND p.post_type = 'room'
        )
        SELECT id FROM rooms
        WHERE {" AND ".join(clauses)}
        ORDER BY as_int(price) ASC, id ASC
        LIMIT 1
    """
    return sql, tuple(params)


class QueryRoomFinder:
    """Selects the winning room in SQL, then loads its details."""

    def __init__(self, store: SqliteStore, loader: RoomDetailLoader) -> None:
        self._store = store
        self._loader = loader

    async def find_cheapest_room(self, owner_id: int, filters: FilterArgs) -> Optional[RoomEntity]:
        sql, params = build_room_query(owner_id, filters)
        async with self._store.acquire() as handle:
            row = await handle.fetch_one(sql, params)
        if row is None:
            return None
        return await self._loader.load_by_id(int(row["id"]))


ROOM_STRATEGIES = ("query", "scan")


def build_room_finder(
    store: SqliteStore, strategy: str, loader: RoomDetailLoader | None = None
) -> RoomFinder:
    if strategy == "query":
        return QueryRoomFinder(store, loader or SqliteRoomLoader(store))
    if strategy == "scan":
        return ScanRoomFinder(store)
    raise ValueError(f"Unknown room strategy '{strategy}'. Expected one of: {', '.join(ROOM_STRATEGIES)}")


__all__ = [
    "QueryRoomFinder",
    "ROOM_STRATEGIES",
    "RoomDetailLoader",
    "RoomFinder",
    "ScanRoomFinder",
    "SqliteRoomLoader",
    "build_room_finder",
    "build_room_query",
]
