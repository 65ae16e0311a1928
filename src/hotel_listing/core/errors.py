"""Error taxonomy shared by the listing pipeline."""
from __future__ import annotations


class StoreFailure(RuntimeError):
    """Raised when the backing store cannot answer a query.

    Always fatal to the in-flight listing; never treated as a filter exclusion.
    """


class InvalidFilterError(ValueError):
    """Raised when caller-supplied filter arguments are malformed."""


class ListingTimeoutError(TimeoutError):
    """Raised when a listing call exceeds its deadline."""


__all__ = ["InvalidFilterError", "ListingTimeoutError", "StoreFailure"]
