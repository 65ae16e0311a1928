"""Review count and mean rating per hotel."""
from __future__ import annotations

import math

from hotel_listing.hotels.models import ReviewStats
from hotel_listing.storage.sqlite_store import SqliteStore


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ReviewAggregator:
    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    async def get_review_stats(self, entity_id: int) -> ReviewStats:
        """Count ``review`` posts authored against ``entity_id`` and average their ratings."""
        async with self._store.acquire() as handle:
            row = await handle.fetch_one(
                """
                SELECT COUNT(pm.meta_value) AS total, AVG(as_real(pm.meta_value)) AS mean
                FROM posts p
                JOIN postmeta pm ON pm.post_id = p.ID
                WHERE p.post_author = ?
                  AND p.post_type = 'review'
                  AND pm.meta_key = 'rating'
                """,
                (entity_id,),
            )
        if row is None or not row["total"] or row["mean"] is None:
            return ReviewStats(rating=0, count=int(row["total"] or 0) if row else 0)
        return ReviewStats(rating=round_half_up(float(row["mean"])), count=int(row["total"]))


__all__ = ["ReviewAggregator", "round_half_up"]
