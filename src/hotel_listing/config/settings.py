"""Runtime configuration for the listing service.

Relies on pydantic-settings so that environment variables (prefixed with ``LISTING_``)
can override defaults, e.g. ``LISTING_ATTRIBUTE_STRATEGY=naive``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

AttributeStrategy = Literal["naive", "entity", "bulk"]
RoomStrategy = Literal["query", "scan"]


class Settings(BaseSettings):
    """Captures runtime configuration for hotel listings."""

    sqlite_storage_path: Path = Field(
        default=Path("data/storage/hotels.sqlite3"), description="SQLite file holding hotels and rooms"
    )
    sqlite_busy_timeout_ms: int = Field(
        default=2000, description="Milliseconds SQLite waits on a locked database before failing"
    )
    sqlite_journal_mode: Optional[str] = Field(
        default="wal", description="SQLite journal_mode PRAGMA (e.g. 'wal', 'delete')"
    )
    sqlite_synchronous: Optional[str] = Field(
        default="normal", description="SQLite synchronous PRAGMA (e.g. 'normal', 'full')"
    )

    attribute_strategy: AttributeStrategy = Field(
        default="bulk",
        description="How hotel attributes are fetched: per key, per hotel, or for all hotels at once",
    )
    room_strategy: RoomStrategy = Field(
        default="query",
        description="Pick the cheapest room with one SQL statement ('query') or an in-memory scan",
    )
    listing_concurrency: int = Field(
        default=1, description="Hotels assembled concurrently per listing; 1 keeps it sequential"
    )
    listing_timeout_s: Optional[float] = Field(
        default=None, description="Abort a listing after this many seconds"
    )
    timings_enabled: bool = Field(default=False, description="Record per-step durations")

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))
    output_dir: Path = Field(default=Path("data/listings"))

    model_config = SettingsConfigDict(
        env_prefix="LISTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("sqlite_storage_path", "log_dir", "output_dir", mode="before")
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        return Path(value).expanduser()

    @field_validator("listing_concurrency")
    def _validate_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("listing_concurrency must be at least 1")
        return value

    @field_validator("listing_timeout_s", mode="before")
    def _parse_timeout(cls, value: object) -> object:
        if value in (None, ""):
            return None
        return value

    @field_validator("listing_timeout_s")
    def _validate_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("listing_timeout_s must be positive")
        return value

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.sqlite_storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def resolve_output(self, name: Path) -> Path:
        """Place relative result file names under ``output_dir``."""
        name = name.expanduser()
        return name if name.is_absolute() else self.output_dir / name

    def store_kwargs(self) -> dict[str, object]:
        return {
            "busy_timeout_ms": self.sqlite_busy_timeout_ms,
            "journal_mode": self.sqlite_journal_mode,
            "synchronous": self.sqlite_synchronous,
        }
