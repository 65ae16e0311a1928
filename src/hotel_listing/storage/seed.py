"""Load fixture datasets into a :class:`SqliteStore`.

Datasets mirror the JSON files under ``data/fixtures``::

    {
      "hotels": [
        {
          "id": 1,
          "name": "Hotel A",
          "meta": {"address_city": "Paris", "geo_lat": "48.85", ...},
          "rooms": [{"title": "Suite", "meta": {"price": "40", "surface": "25"}}],
          "reviews": [4, 5, 5]
        }
      ]
    }

Rooms and reviews receive auto-incremented post ids in dataset order unless an
explicit ``id`` is supplied.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Mapping

from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


def _meta_rows(owner_id: int, meta: Mapping[str, Any] | None) -> list[tuple[int, str, str | None]]:
    rows = []
    for key, value in (meta or {}).items():
        rows.append((owner_id, str(key), None if value is None else str(value)))
    return rows


def _insert_post(conn: sqlite3.Connection, *, author: int, title: str, post_type: str, post_id: Any) -> int:
    if post_id is None:
        cursor = conn.execute(
            "INSERT INTO posts(post_author, post_title, post_type) VALUES(?, ?, ?)",
            (author, title, post_type),
        )
    else:
        cursor = conn.execute(
            "INSERT INTO posts(ID, post_author, post_title, post_type) VALUES(?, ?, ?, ?)",
            (int(post_id), author, title, post_type),
        )
    return int(cursor.lastrowid)


def _seed(conn: sqlite3.Connection, hotels: Iterable[Mapping[str, Any]]) -> int:
    count = 0
    with conn:
        for hotel in hotels:
            hotel_id = int(hotel["id"])
            conn.execute(
                "INSERT INTO users(ID, display_name) VALUES(?, ?)",
                (hotel_id, hotel.get("name") or f"Hotel {hotel_id}"),
            )
            conn.executemany(
                "INSERT INTO usermeta(user_id, meta_key, meta_value) VALUES(?, ?, ?)",
                _meta_rows(hotel_id, hotel.get("meta")),
            )
            for room in hotel.get("rooms") or []:
                room_id = _insert_post(
                    conn,
                    author=hotel_id,
                    title=room.get("title") or "",
                    post_type="room",
                    post_id=room.get("id"),
                )
                conn.executemany(
                    "INSERT INTO postmeta(post_id, meta_key, meta_value) VALUES(?, ?, ?)",
                    _meta_rows(room_id, room.get("meta")),
                )
            for rating in hotel.get("reviews") or []:
                review_id = _insert_post(
                    conn, author=hotel_id, title="", post_type="review", post_id=None
                )
                conn.execute(
                    "INSERT INTO postmeta(post_id, meta_key, meta_value) VALUES(?, 'rating', ?)",
                    (review_id, str(rating)),
                )
            count += 1
    return count


async def seed_dataset(store: SqliteStore, dataset: Mapping[str, Any]) -> int:
    """Insert every hotel of ``dataset`` in one transaction; returns the hotel count."""
    hotels = list(dataset.get("hotels") or [])
    async with store.acquire() as handle:
        count = await handle.run(lambda conn: _seed(conn, hotels))
    logger.info("Seeded %s hotels into %s", count, store.path)
    return count


def load_dataset(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found at {path}")
    return json.loads(path.read_text())


__all__ = ["load_dataset", "seed_dataset"]
