"""Hotel listing: loads primary records, assembles each and keeps the survivors."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from hotel_listing.core.errors import ListingTimeoutError
from hotel_listing.core.timing import NullTimings, TimingRecorder, TimingSink
from hotel_listing.hotels.filters import FilterArgs
from hotel_listing.hotels.models import HOTEL_ATTRIBUTE_KEYS, HotelEntity, PrimaryRecord
from hotel_listing.storage.sqlite_store import SqliteStore

from .assembler import Assembled, AssemblyOutcome, EntityAssembler, Excluded, Failed
from .attributes import build_attribute_store
from .reviews import ReviewAggregator
from .rooms import RoomDetailLoader, build_room_finder

if TYPE_CHECKING:  # pragma: no cover
    from hotel_listing.config.settings import Settings

logger = logging.getLogger(__name__)


class ListingService:
    """Exposes ``list(filters)``; the only query surface of the pipeline."""

    def __init__(
        self,
        store: SqliteStore,
        assembler: EntityAssembler,
        *,
        concurrency: int = 1,
        timeout_s: Optional[float] = None,
        record_timings: bool = False,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._store = store
        self._assembler = assembler
        self._concurrency = concurrency
        self._timeout_s = timeout_s
        self._record_timings = record_timings
        # Measurements of the most recent list() call only.
        self.last_timings: TimingSink = NullTimings()

    @classmethod
    def from_settings(
        cls,
        store: SqliteStore,
        settings: "Settings",
        *,
        room_loader: RoomDetailLoader | None = None,
    ) -> "ListingService":
        assembler = EntityAssembler(
            attributes=build_attribute_store(store, settings.attribute_strategy),
            reviews=ReviewAggregator(store),
            rooms=build_room_finder(store, settings.room_strategy, room_loader),
        )
        return cls(
            store,
            assembler,
            concurrency=settings.listing_concurrency,
            timeout_s=settings.listing_timeout_s,
            record_timings=settings.timings_enabled,
        )

    async def list(
        self,
        filters: FilterArgs | Mapping[str, Any] | None = None,
        *,
        timeout: Optional[float] = None,
    ) -> list[HotelEntity]:
        """Return every hotel that survives ``filters``, in primary-record order.

        Malformed filters raise :class:`InvalidFilterError` before any query runs.
        A store failure or an exceeded deadline aborts the whole call.
        """
        args = FilterArgs.parse(filters)
        deadline = self._timeout_s if timeout is None else timeout
        timings: TimingSink = TimingRecorder() if self._record_timings else NullTimings()
        self.last_timings = timings
        with timings.measure("list"):
            if deadline is None:
                return await self._list(args, timings)
            try:
                return await asyncio.wait_for(self._list(args, timings), timeout=deadline)
            except asyncio.TimeoutError as exc:
                raise ListingTimeoutError(f"Hotel listing exceeded its {deadline:.2f}s deadline") from exc

    async def load_primary_records(self) -> list[PrimaryRecord]:
        async with self._store.acquire() as handle:
            rows = await handle.fetch_all("SELECT ID, display_name FROM users ORDER BY ID")
        return [PrimaryRecord(id=int(row["ID"]), display_name=row["display_name"]) for row in rows]

    async def _list(self, args: FilterArgs, timings: TimingSink) -> list[HotelEntity]:
        records = await self.load_primary_records()
        if not records:
            logger.info("No hotels stored; returning an empty listing")
            return []

        attributes = await self._assembler.attributes.preload(
            [record.id for record in records], HOTEL_ATTRIBUTE_KEYS
        )
        assembler = self._assembler.for_listing(attributes, timings)

        if self._concurrency == 1:
            outcomes = await self._assemble_sequentially(assembler, records, args)
        else:
            outcomes = await self._assemble_concurrently(assembler, records, args)

        hotels: list[HotelEntity] = []
        for outcome in outcomes:
            if isinstance(outcome, Assembled):
                hotels.append(outcome.hotel)
            elif isinstance(outcome, Excluded):
                logger.debug("Hotel %s excluded: %s", outcome.record_id, outcome.reason.value)
        logger.info(
            "Listed %s of %s hotels (%s excluded)",
            len(hotels),
            len(records),
            len(records) - len(hotels),
        )
        return hotels

    async def _assemble_sequentially(
        self,
        assembler: EntityAssembler,
        records: Sequence[PrimaryRecord],
        args: FilterArgs,
    ) -> list[AssemblyOutcome]:
        outcomes: list[AssemblyOutcome] = []
        for record in records:
            outcome = await assembler.assemble(record, args)
            if isinstance(outcome, Failed):
                raise outcome.error
            outcomes.append(outcome)
        return outcomes

    async def _assemble_concurrently(
        self,
        assembler: EntityAssembler,
        records: Sequence[PrimaryRecord],
        args: FilterArgs,
    ) -> list[AssemblyOutcome]:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _run(record: PrimaryRecord) -> AssemblyOutcome:
            async with semaphore:
                outcome = await assembler.assemble(record, args)
            if isinstance(outcome, Failed):
                raise outcome.error
            return outcome

        tasks = [asyncio.ensure_future(_run(record)) for record in records]
        try:
            # gather keeps results index-aligned with ``records``.
            return list(await asyncio.gather(*tasks))
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["ListingService"]
