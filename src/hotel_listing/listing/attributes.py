"""Per-entity attribute lookups over the ``usermeta`` table.

Three interchangeable strategies answer the same questions with different
round-trip counts:

* ``naive``  - one query per (entity, key) pair.
* ``entity`` - one query per entity covering every requested key.
* ``bulk``   - one chunked query per listing covering every entity and key,
  served afterwards from a read-only snapshot.

When a key is stored more than once for an entity, the earliest row wins.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol, Sequence

from hotel_listing.hotels.models import AttributeBag
from hotel_listing.storage.sqlite_store import SqliteStore, placeholders

logger = logging.getLogger(__name__)


class AttributeStore(Protocol):
    async def get_attribute(self, entity_id: int, key: str) -> Optional[str]:
        ...

    async def get_attributes(self, entity_id: int, keys: Sequence[str]) -> AttributeBag:
        ...

    async def preload(self, entity_ids: Sequence[int], keys: Sequence[str]) -> "AttributeStore":
        """Return a store primed for ``entity_ids``; may be ``self``."""
        ...


class NaiveAttributeStore:
    """Issues one round trip per attribute."""

    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    async def get_attribute(self, entity_id: int, key: str) -> Optional[str]:
        async with self._store.acquire() as handle:
            row = await handle.fetch_one(
                """
                SELECT meta_value FROM usermeta
                WHERE user_id = ? AND meta_key = ?
                ORDER BY umeta_id
                LIMIT 1
                """,
                (entity_id, key),
            )
        return row["meta_value"] if row else None

    async def get_attributes(self, entity_id: int, keys: Sequence[str]) -> AttributeBag:
        bag: AttributeBag = {}
        for key in keys:
            bag[key] = await self.get_attribute(entity_id, key)
        return bag

    async def preload(self, entity_ids: Sequence[int], keys: Sequence[str]) -> "NaiveAttributeStore":
        return self


class EntityAttributeStore:
    """Fetches every requested key of one entity in a single query."""

    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    async def get_attribute(self, entity_id: int, key: str) -> Optional[str]:
        bag = await self.get_attributes(entity_id, (key,))
        return bag[key]

    async def get_attributes(self, entity_id: int, keys: Sequence[str]) -> AttributeBag:
        bag: AttributeBag = dict.fromkeys(keys)
        if not keys:
            return bag
        async with self._store.acquire() as handle:
            rows = await handle.fetch_all(
                f"""
                SELECT meta_key, meta_value FROM usermeta
                WHERE user_id = ? AND meta_key IN ({placeholders(len(keys))})
                ORDER BY umeta_id
                """,
                (entity_id, *keys),
            )
        seen: set[str] = set()
        for row in rows:
            key = row["meta_key"]
            if key in seen:
                continue
            seen.add(key)
            bag[key] = row["meta_value"]
        return bag

    async def preload(self, entity_ids: Sequence[int], keys: Sequence[str]) -> "EntityAttributeStore":
        return self


class PreloadedAttributes:
    """Read-only snapshot of attributes fetched for one listing call."""

    def __init__(
        self,
        values: Mapping[int, AttributeBag],
        keys: Sequence[str],
        fallback: AttributeStore,
    ) -> None:
        self._values = values
        self._keys = frozenset(keys)
        self._fallback = fallback

    def _covers(self, entity_id: int, keys: Sequence[str]) -> bool:
        return entity_id in self._values and self._keys.issuperset(keys)

    async def get_attribute(self, entity_id: int, key: str) -> Optional[str]:
        if self._covers(entity_id, (key,)):
            return self._values[entity_id].get(key)
        return await self._fallback.get_attribute(entity_id, key)

    async def get_attributes(self, entity_id: int, keys: Sequence[str]) -> AttributeBag:
        if self._covers(entity_id, keys):
            cached = self._values[entity_id]
            return {key: cached.get(key) for key in keys}
        return await self._fallback.get_attributes(entity_id, keys)

    async def preload(self, entity_ids: Sequence[int], keys: Sequence[str]) -> AttributeStore:
        return await self._fallback.preload(entity_ids, keys)


class BulkAttributeStore(EntityAttributeStore):
    """Fetches attributes for many entities at once via :meth:`preload`."""

    async def preload(self, entity_ids: Sequence[int], keys: Sequence[str]) -> PreloadedAttributes:
        unique_ids = list(dict.fromkeys(entity_ids))
        values: dict[int, AttributeBag] = {entity_id: dict.fromkeys(keys) for entity_id in unique_ids}
        if not unique_ids or not keys:
            return PreloadedAttributes(values, keys, fallback=self)

        seen: set[tuple[int, str]] = set()
        async with self._store.acquire() as handle:
            for chunk in self._store.chunked(unique_ids, reserved=len(keys)):
                rows = await handle.fetch_all(
                    f"""
                    SELECT user_id, meta_key, meta_value FROM usermeta
                    WHERE user_id IN ({placeholders(len(chunk))})
                      AND meta_key IN ({placeholders(len(keys))})
                    ORDER BY umeta_id
                    """,
                    (*chunk, *keys),
                )
                for row in rows:
                    marker = (int(row["user_id"]), row["meta_key"])
                    if marker in seen:
                        continue
                    seen.add(marker)
                    values[marker[0]][marker[1]] = row["meta_value"]
        logger.debug("Preloaded %s attributes for %s entities", len(seen), len(unique_ids))
        return PreloadedAttributes(values, keys, fallback=self)


ATTRIBUTE_STRATEGIES: dict[str, type] = {
    "naive": NaiveAttributeStore,
    "entity": EntityAttributeStore,
    "bulk": BulkAttributeStore,
}


def build_attribute_store(store: SqliteStore, strategy: str) -> AttributeStore:
    try:
        factory = ATTRIBUTE_STRATEGIES[strategy]
    except KeyError as exc:
        known = ", ".join(sorted(ATTRIBUTE_STRATEGIES))
        raise ValueError(f"Unknown attribute strategy '{strategy}'. Expected one of: {known}") from exc
    return factory(store)


__all__ = [
    "ATTRIBUTE_STRATEGIES",
    "AttributeStore",
    "BulkAttributeStore",
    "EntityAttributeStore",
    "NaiveAttributeStore",
    "PreloadedAttributes",
    "build_attribute_store",
]
