"""User-friendly run configuration loader for manual listings."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from hotel_listing.config.settings import AttributeStrategy, RoomStrategy
from hotel_listing.core.errors import InvalidFilterError
from hotel_listing.hotels.filters import FilterArgs

try:  # pragma: no cover - Python 3.11+ ships tomllib
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise RuntimeError(
            "Run configuration loading requires 'tomllib' (Python >=3.11) or the 'tomli' package."
        ) from exc

if TYPE_CHECKING:  # pragma: no cover
    from hotel_listing.config.settings import Settings


class StorageSection(BaseModel):
    """Structured storage overrides."""

    sqlite_path: Optional[str] = Field(default=None, description="Override the SQLite file path")
    sqlite_busy_timeout_ms: Optional[int] = Field(
        default=None, ge=0, description="Override SQLite busy timeout (ms) for locks"
    )
    sqlite_journal_mode: Optional[str] = Field(
        default=None,
        description="Override SQLite journal_mode (e.g., 'wal', 'delete')",
    )
    sqlite_synchronous: Optional[str] = Field(
        default=None,
        description="Override SQLite synchronous PRAGMA (e.g., 'normal', 'full')",
    )


class ListingSection(BaseModel):
    """Pipeline strategy and runtime overrides."""

    attribute_strategy: Optional[AttributeStrategy] = None
    room_strategy: Optional[RoomStrategy] = None
    concurrency: Optional[int] = Field(default=None, ge=1)
    timeout_s: Optional[float] = Field(default=None, gt=0)
    timings: Optional[bool] = None
    log_level: Optional[str] = None


class RunConfig(BaseModel):
    """Top-level configuration decoded from TOML."""

    profile: str = Field(default="default", description="Human label used for logging")
    title: Optional[str] = None
    notes: Optional[str] = None
    filter: dict[str, Any] = Field(default_factory=dict, description="Raw listing filter arguments")
    storage: Optional[StorageSection] = None
    listing: ListingSection = Field(default_factory=ListingSection)

    @field_validator("filter")
    @classmethod
    def _validate_filter(cls, value: dict[str, Any]) -> dict[str, Any]:
        try:
            FilterArgs.parse(value)
        except InvalidFilterError as exc:
            raise ValueError(f"Invalid [filter] section: {exc}") from exc
        return value

    @classmethod
    def load(cls, path: Path) -> "RunConfig":
        """Load a config from a TOML file."""
        data = tomllib.loads(path.read_text())
        return cls.model_validate(data)

    # Public API -----------------------------------------------------------------

    def filter_args(self) -> FilterArgs:
        return FilterArgs.parse(self.filter)

    def apply_to(self, settings: "Settings", *, base_dir: Optional[Path] = None) -> None:
        """Apply overrides to an existing Settings instance."""
        self._apply_storage(settings, base_dir)
        self._apply_listing(settings)

    # Internal helpers -----------------------------------------------------------

    def _apply_storage(self, settings: "Settings", base_dir: Optional[Path]) -> None:
        storage = self.storage
        if not storage:
            return
        if storage.sqlite_path:
            settings.sqlite_storage_path = _resolve_path(storage.sqlite_path, base_dir)
        if storage.sqlite_busy_timeout_ms is not None:
            settings.sqlite_busy_timeout_ms = storage.sqlite_busy_timeout_ms
        if storage.sqlite_journal_mode is not None:
            settings.sqlite_journal_mode = storage.sqlite_journal_mode
        if storage.sqlite_synchronous is not None:
            settings.sqlite_synchronous = storage.sqlite_synchronous

    def _apply_listing(self, settings: "Settings") -> None:
        listing = self.listing
        if listing.attribute_strategy is not None:
            settings.attribute_strategy = listing.attribute_strategy
        if listing.room_strategy is not None:
            settings.room_strategy = listing.room_strategy
        if listing.concurrency is not None:
            settings.listing_concurrency = listing.concurrency
        if listing.timeout_s is not None:
            settings.listing_timeout_s = listing.timeout_s
        if listing.timings is not None:
            settings.timings_enabled = listing.timings
        if listing.log_level:
            settings.log_level = listing.log_level


def _resolve_path(raw: str, base_dir: Optional[Path]) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute() and base_dir:
        return (base_dir / path).resolve()
    return path


__all__ = ["ListingSection", "RunConfig", "StorageSection"]
