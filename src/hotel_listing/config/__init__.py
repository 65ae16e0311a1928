"""Settings and run configuration."""

from .run_config import RunConfig
from .settings import Settings

__all__ = ["RunConfig", "Settings"]
