"""Entry point for manual hotel listings."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from hotel_listing.config.run_config import RunConfig
from hotel_listing.config.settings import Settings
from hotel_listing.core.errors import InvalidFilterError, ListingTimeoutError, StoreFailure
from hotel_listing.core.logging import configure_logging
from hotel_listing.core.timing import TimingRecorder
from hotel_listing.hotels import FilterArgs, HotelEntity
from hotel_listing.listing import ListingService
from hotel_listing.storage import JsonStore, SqliteStore

logger = logging.getLogger(__name__)


async def run(
    settings: Settings,
    filters: FilterArgs,
    *,
    output: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> list[HotelEntity]:
    async with SqliteStore(settings.sqlite_storage_path, **settings.store_kwargs()) as store:
        service = ListingService.from_settings(store, settings)
        hotels = await service.list(filters, timeout=timeout)

    if isinstance(service.last_timings, TimingRecorder):
        logger.info("Server-Timing: %s", service.last_timings.server_timing())

    payload = HotelEntity.from_iterable(hotels)
    if output:
        target = settings.resolve_output(output)
        json_store = JsonStore(target.parent)
        path = await json_store.write(payload, filename=target.name)
        logger.info("Wrote %s hotels to %s", len(payload), path)
    else:
        print(json.dumps(payload, indent=2))
    return hotels


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="List hotels matching a filter")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=(
            "Path to a TOML run configuration file "
            "(defaults to config/run_config.toml when present)"
        ),
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Ignore config/run_config.toml even if it exists",
    )
    parser.add_argument("--db", type=Path, help="SQLite database to read (overrides config/env)")
    parser.add_argument(
        "--filter",
        dest="filter_json",
        metavar="JSON",
        help='Filter arguments as JSON, e.g. \'{"price": {"max": 50}}\' (replaces the config [filter])',
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write results to this JSON file instead of stdout (relative names land in output_dir)",
    )
    parser.add_argument("--timeout", type=float, help="Abort the listing after this many seconds")
    parser.add_argument(
        "--override",
        action="append",
        metavar="KEY=VALUE",
        help="Override a Settings attribute (repeatable). Values accept JSON literals.",
    )
    return parser


def _decode_override(value: str) -> object:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        pass
    lower = value.strip().lower()
    if lower in {"true", "false"}:
        return lower == "true"
    try:
        return float(value)
    except ValueError:
        return value


def _apply_overrides(settings: Settings, overrides: dict[str, object]) -> None:
    for key, raw in overrides.items():
        if key not in Settings.model_fields:
            logger.warning("Ignoring unknown override '%s'", key)
            continue
        setattr(settings, key, raw)
        logger.info("Override: set %s=%r", key, raw)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()
    config_path: Optional[Path] = None
    run_config: Optional[RunConfig] = None
    overrides: dict[str, object] = {}

    if not args.no_config:
        if args.config:
            config_path = args.config
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            default_path = Path("config/run_config.toml")
            if default_path.exists():
                config_path = default_path

    if config_path:
        run_config = RunConfig.load(config_path)
        run_config.apply_to(settings, base_dir=config_path.parent)

    if args.override:
        for entry in args.override:
            if "=" not in entry:
                parser.error(f"Override must be in KEY=VALUE form (got '{entry}')")
            key, value = entry.split("=", 1)
            overrides[key.strip()] = _decode_override(value.strip())

    if args.db:
        settings.sqlite_storage_path = args.db

    if overrides:
        _apply_overrides(settings, overrides)

    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()

    if run_config:
        suffix = f" ({run_config.title})" if run_config.title else ""
        logger.info("Loaded run profile '%s'%s from %s", run_config.profile, suffix, config_path)
        if run_config.notes:
            logger.info("Profile notes: %s", run_config.notes)
    elif config_path is None:
        logger.info("Running with environment-based settings (no run_config applied)")

    try:
        if args.filter_json:
            filters = FilterArgs.parse(json.loads(args.filter_json))
        elif run_config:
            filters = run_config.filter_args()
        else:
            filters = FilterArgs()
    except (InvalidFilterError, json.JSONDecodeError) as exc:
        parser.error(f"Invalid filter: {exc}")

    try:
        asyncio.run(run(settings, filters, output=args.output, timeout=args.timeout))
    except (StoreFailure, ListingTimeoutError) as exc:
        logger.error("Listing aborted: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
