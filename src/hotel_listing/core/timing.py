"""Scoped duration measurements for the listing pipeline.

Measurements are a side channel: sinks record how long named steps took and
never influence control flow or results.
"""
from __future__ import annotations

import functools
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, Protocol, TypeVar

T = TypeVar("T")


class TimingSink(Protocol):
    def measure(self, name: str) -> Any:  # pragma: no cover - protocol
        """Return a context manager timing the enclosed block under ``name``."""


class NullTimings:
    """Sink that discards every measurement."""

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        yield


@dataclass(slots=True)
class TimingEntry:
    name: str
    duration_ms: float


@dataclass
class TimingRecorder:
    """Collects named durations, in completion order."""

    entries: list[TimingEntry] = field(default_factory=list)
    clock: Callable[[], float] = time.perf_counter

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        started = self.clock()
        try:
            yield
        finally:
            self.entries.append(TimingEntry(name, (self.clock() - started) * 1000.0))

    def totals(self) -> dict[str, float]:
        """Sum durations per name, keeping first-seen order."""
        totals: dict[str, float] = {}
        for entry in self.entries:
            totals[entry.name] = totals.get(entry.name, 0.0) + entry.duration_ms
        return totals

    def server_timing(self) -> str:
        """Render the totals as a ``Server-Timing`` header value."""
        return ", ".join(f"{name};dur={duration:.2f}" for name, duration in self.totals().items())


def timed(name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Measure an async method through the ``timings`` sink of its instance."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            with self.timings.measure(name):
                return await func(self, *args, **kwargs)

        return wrapper

    return decorator


__all__ = ["NullTimings", "TimingEntry", "TimingRecorder", "TimingSink", "timed"]
