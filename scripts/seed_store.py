"""Seed a SQLite listing database from a JSON fixture dataset."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from hotel_listing.config.settings import Settings
from hotel_listing.core.logging import configure_logging
from hotel_listing.storage import SqliteStore, load_dataset, seed_dataset

DEFAULT_DATASET = Path("data/fixtures/hotels.json")


async def seed(db_path: Path, dataset_path: Path, settings: Settings) -> int:
    dataset = load_dataset(dataset_path)
    async with SqliteStore(db_path, **settings.store_kwargs()) as store:
        return await seed_dataset(store, dataset)


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Seed the listing database from a JSON dataset")
    parser.add_argument("--dataset", type=Path, default=DEFAULT_DATASET, help="Path to the fixture JSON")
    parser.add_argument(
        "--db", type=Path, default=settings.sqlite_storage_path, help="SQLite file to create or extend"
    )
    args = parser.parse_args()

    configure_logging(settings.log_level)
    count = asyncio.run(seed(args.db, args.dataset, settings))
    print(f"Seeded {count} hotels into {args.db}")


if __name__ == "__main__":
    main()
