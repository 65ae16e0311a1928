"""Storage backends for hotel listings."""

from .json_writer import JsonStore
from .seed import load_dataset, seed_dataset
from .sqlite_store import SqliteStore, StoreHandle

__all__ = ["JsonStore", "SqliteStore", "StoreHandle", "load_dataset", "seed_dataset"]
