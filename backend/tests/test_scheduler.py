"""
Tests for the refresh scheduler: publish ordering, manual refresh and teardown.

Run: pytest backend/tests/test_scheduler.py -v
"""
from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from scheduler.service import RefreshScheduler
from shared.config import Settings
from shared.models.domain import CanonicalMatch, SourceSnapshot
from shared.models.enums import MatchStatus, SourceName


class FakeRegistry:
    """Stands in for SourceRegistry; each cycle can be given its own delay."""

    def __init__(self, delays: Optional[dict[int, float]] = None, default_delay: float = 0.0) -> None:
        self.delays = delays or {}
        self.default_delay = default_delay
        self.calls: list[int] = []
        self.previous_seqs: list[Optional[int]] = []

    async def fetch_all(self, seq: int = 0, previous: Optional[SourceSnapshot] = None) -> SourceSnapshot:
        self.calls.append(seq)
        self.previous_seqs.append(previous.seq if previous else None)
        await asyncio.sleep(self.delays.get(seq, self.default_delay))
        match = CanonicalMatch(
            home_team=f"cycle {seq}", away_team="X", status=MatchStatus.UPCOMING, source=SourceName.CUSTOM_STORE,
        )
        return SourceSnapshot(custom_store=[match], seq=seq)


class BrokenRegistry:
    async def fetch_all(self, seq: int = 0, previous: Optional[SourceSnapshot] = None) -> SourceSnapshot:
        raise RuntimeError("registry exploded")


def _scheduler(registry, interval_s: float = 60.0) -> RefreshScheduler:
    return RefreshScheduler(registry, Settings(refresh_interval_s=interval_s))  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_refresh_publishes_snapshot() -> None:
    scheduler = _scheduler(FakeRegistry())
    assert not scheduler.ready
    assert scheduler.snapshot.total == 0

    snapshot = await scheduler.refresh()

    assert scheduler.ready
    assert scheduler.snapshot is snapshot
    assert snapshot.seq == 1


@pytest.mark.asyncio
async def test_older_cycle_never_overwrites_newer() -> None:
    registry = FakeRegistry(delays={1: 0.1, 2: 0.0})
    scheduler = _scheduler(registry)

    first, second = await asyncio.gather(scheduler.refresh(), scheduler.refresh())

    assert (first.seq, second.seq) == (1, 2)
    assert scheduler.snapshot.seq == 2
    assert scheduler.snapshot.custom_store[0].home_team == "cycle 2"


@pytest.mark.asyncio
async def test_previous_snapshot_passed_to_next_cycle() -> None:
    registry = FakeRegistry()
    scheduler = _scheduler(registry)
    await scheduler.refresh()
    await scheduler.refresh()
    assert registry.previous_seqs == [None, 1]


@pytest.mark.asyncio
async def test_loop_ticks_on_interval() -> None:
    registry = FakeRegistry()
    scheduler = _scheduler(registry, interval_s=0.02)
    task = scheduler.start()
    await asyncio.sleep(0.15)
    await scheduler.stop()

    assert task.done()
    assert len(registry.calls) >= 3
    assert scheduler.ready


@pytest.mark.asyncio
async def test_slow_cycle_does_not_block_next_tick() -> None:
    registry = FakeRegistry(delays={1: 5.0})
    scheduler = _scheduler(registry, interval_s=0.02)
    scheduler.start()
    await asyncio.sleep(0.1)

    assert 1 in registry.calls and len(registry.calls) >= 2
    assert scheduler.ready
    assert scheduler.snapshot.seq >= 2
    await scheduler.stop()


@pytest.mark.asyncio
async def test_request_refresh_wakes_loop() -> None:
    registry = FakeRegistry()
    scheduler = _scheduler(registry, interval_s=60.0)
    scheduler.start()
    await asyncio.sleep(0.02)
    assert registry.calls == [1]

    scheduler.request_refresh()
    await asyncio.sleep(0.02)
    assert registry.calls == [1, 2]
    await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_cancels_loop_and_in_flight_cycles() -> None:
    scheduler = _scheduler(FakeRegistry(default_delay=10.0))
    task = scheduler.start()
    await asyncio.sleep(0.02)
    assert scheduler.running
    assert scheduler.in_flight == 1

    await scheduler.stop()

    assert task.done()
    assert not scheduler.running
    assert scheduler.in_flight == 0
    assert not scheduler.ready


@pytest.mark.asyncio
async def test_start_is_idempotent() -> None:
    scheduler = _scheduler(FakeRegistry())
    first = scheduler.start()
    assert scheduler.start() is first
    await scheduler.stop()


@pytest.mark.asyncio
async def test_registry_error_does_not_publish() -> None:
    scheduler = _scheduler(BrokenRegistry())
    with pytest.raises(RuntimeError):
        await scheduler.refresh()
    assert not scheduler.ready


@pytest.mark.asyncio
async def test_loop_survives_cycle_errors() -> None:
    scheduler = _scheduler(BrokenRegistry(), interval_s=0.02)
    task = scheduler.start()
    await asyncio.sleep(0.1)
    assert not task.done()
    await scheduler.stop()
