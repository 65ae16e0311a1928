"""Shared fixtures: a temporary SQLite store and a small hotel dataset."""
from __future__ import annotations

import copy
from typing import Any

import pytest
import pytest_asyncio

from hotel_listing.storage import SqliteStore, seed_dataset

PARIS = (48.8566, 2.3522)
LYON = (45.764, 4.8357)

SAMPLE_DATASET: dict[str, Any] = {
    "hotels": [
        {
            "id": 1,
            "name": "Hotel A",
            "meta": {
                "address_1": "1 Rue de Rivoli",
                "address_city": "Paris",
                "address_zip": "75001",
                "address_country": "France",
                "geo_lat": str(PARIS[0]),
                "geo_lng": str(PARIS[1]),
                "coverImage": "https://img.example.test/a.jpg",
                "phone": "+33 1 00 00 00 01",
            },
            "rooms": [
                {
                    "id": 101,
                    "title": "Double",
                    "meta": {
                        "price": "40",
                        "surface": "25",
                        "bedrooms_count": "1",
                        "bathrooms_count": "1",
                        "type": "double",
                        "coverImage": "https://img.example.test/a-101.jpg",
                    },
                },
                {
                    "id": 102,
                    "title": "Suite",
                    "meta": {
                        "price": "80",
                        "surface": "40",
                        "bedrooms_count": "2",
                        "bathrooms_count": "2",
                        "type": "suite",
                    },
                },
            ],
            "reviews": [4, 5, 5],
        },
        {
            "id": 2,
            "name": "Hotel B",
            "meta": {"address_city": "Paris", "geo_lat": "48.86", "geo_lng": "2.35"},
            "rooms": [],
            "reviews": [],
        },
        {
            "id": 3,
            "name": "Hotel C",
            "meta": {
                "address_city": "Lyon",
                "geo_lat": str(LYON[0]),
                "geo_lng": str(LYON[1]),
            },
            "rooms": [
                {
                    "id": 301,
                    "title": "Double",
                    "meta": {
                        "price": "120",
                        "surface": "30",
                        "bedrooms_count": "1",
                        "bathrooms_count": "1",
                        "type": "double",
                    },
                }
            ],
            "reviews": [3],
        },
    ]
}


def sample_dataset() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_DATASET)


async def add_meta(store: SqliteStore, table: str, owner_id: int, key: str, value: str | None) -> None:
    """Append one raw meta row to ``usermeta`` or ``postmeta``."""
    owner_column = {"usermeta": "user_id", "postmeta": "post_id"}[table]

    def _insert(conn) -> None:
        with conn:
            conn.execute(
                f"INSERT INTO {table}({owner_column}, meta_key, meta_value) VALUES(?, ?, ?)",
                (owner_id, key, value),
            )

    async with store.acquire() as handle:
        await handle.run(_insert)


@pytest_asyncio.fixture
async def store(tmp_path):
    sqlite_store = SqliteStore(tmp_path / "hotels.sqlite3")
    await sqlite_store.initialize()
    try:
        yield sqlite_store
    finally:
        await sqlite_store.close()


@pytest_asyncio.fixture
async def seeded_store(store):
    await seed_dataset(store, sample_dataset())
    return store


@pytest.fixture
def dataset() -> dict[str, Any]:
    return sample_dataset()
