from __future__ import annotations

import pytest

from hotel_listing.core.timing import NullTimings, TimingRecorder, timed


def _clock(*ticks: float):
    values = iter(ticks)
    return lambda: next(values)


def test_recorder_sums_per_name_in_first_seen_order() -> None:
    recorder = TimingRecorder(clock=_clock(0.0, 0.5, 1.0, 1.25, 2.0, 2.1))
    with recorder.measure("list"):
        pass
    with recorder.measure("loadReviews"):
        pass
    with recorder.measure("list"):
        pass

    assert [entry.name for entry in recorder.entries] == ["list", "loadReviews", "list"]
    assert recorder.totals() == pytest.approx({"list": 600.0, "loadReviews": 250.0})
    assert recorder.server_timing() == "list;dur=600.00, loadReviews;dur=250.00"


def test_failed_blocks_are_still_measured() -> None:
    recorder = TimingRecorder(clock=_clock(1.0, 1.002))
    with pytest.raises(RuntimeError):
        with recorder.measure("boom"):
            raise RuntimeError("boom")
    assert recorder.totals() == pytest.approx({"boom": 2.0})


def test_null_sink_records_nothing() -> None:
    with NullTimings().measure("anything"):
        value = 42
    assert value == 42


class _Worker:
    def __init__(self, timings) -> None:
        self.timings = timings

    @timed("work")
    async def work(self, value: int) -> int:
        return value * 2


@pytest.mark.asyncio
async def test_timed_decorator_uses_instance_sink() -> None:
    recorder = TimingRecorder()
    assert await _Worker(recorder).work(21) == 42
    assert [entry.name for entry in recorder.entries] == ["work"]
    assert await _Worker(NullTimings()).work(1) == 2
