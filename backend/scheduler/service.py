"""
Refresh scheduler for the Zonera board.
Runs a fetch cycle across all sources every refresh interval (60s by default)
and publishes the resulting snapshot for the view layer.

Cycles are launched without waiting for the previous one, so a slow source
never delays the next tick. Each cycle carries a sequence number and only a
newer cycle may replace the published snapshot.
"""
from __future__ import annotations

import asyncio
import signal
import time
from typing import Optional

from shared.config import Settings, get_settings
from shared.models.domain import SourceSnapshot
from shared.models.enums import MatchStatus, SourceName
from shared.utils.logging import bind_cycle, get_logger, setup_logging
from shared.utils.metrics import (
    BOARD_MATCHES,
    LAST_REFRESH_TS,
    REFRESH_CYCLES,
    REFRESH_DURATION,
    atrack_latency,
    start_metrics_server,
)

from ingest.providers.registry import SourceRegistry

logger = get_logger(__name__)


class RefreshScheduler:
    """
    Scheduled refresh task with an explicit, cancellable handle.

    - start() launches the loop and returns its asyncio.Task
    - request_refresh() wakes the loop for an immediate cycle
    - refresh() runs one cycle inline
    - stop() cancels the loop and every in-flight cycle
    """

    def __init__(self, registry: SourceRegistry, settings: Settings | None = None) -> None:
        self._registry = registry
        self._settings = settings or get_settings()
        self._interval_s = self._settings.refresh_interval_s
        self._snapshot = SourceSnapshot()
        self._has_published = False
        self._next_seq = 0
        self._wake = asyncio.Event()
        self._shutdown = asyncio.Event()
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._in_flight: set[asyncio.Task[SourceSnapshot]] = set()

    # ── Read side ───────────────────────────────────────────────────────

    @property
    def snapshot(self) -> SourceSnapshot:
        """Latest published snapshot (empty until the first cycle settles)."""
        return self._snapshot

    @property
    def ready(self) -> bool:
        return self._has_published

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ── Cycles ──────────────────────────────────────────────────────────

    def _publish(self, snapshot: SourceSnapshot) -> bool:
        """Swap in `snapshot` unless a newer cycle already published."""
        if self._has_published and snapshot.seq <= self._snapshot.seq:
            logger.info(
                "stale_snapshot_discarded",
                seq=snapshot.seq,
                published_seq=self._snapshot.seq,
            )
            return False
        self._snapshot = snapshot
        self._has_published = True

        for source in SourceName:
            slot = snapshot.slot(source)
            for status in MatchStatus:
                BOARD_MATCHES.labels(source=source.value, status=status.value).set(
                    sum(1 for m in slot if m.status == status)
                )
        LAST_REFRESH_TS.set(time.time())
        return True

    async def _run_cycle(self, seq: int) -> SourceSnapshot:
        bind_cycle(seq)
        start = time.perf_counter()
        previous = self._snapshot if self._has_published else None
        async with atrack_latency(REFRESH_DURATION):
            snapshot = await self._registry.fetch_all(seq=seq, previous=previous)

        published = self._publish(snapshot)
        if snapshot.failures:
            outcome = "partial" if len(snapshot.failures) < len(SourceName) else "failed"
        else:
            outcome = "ok"
        REFRESH_CYCLES.labels(outcome=outcome).inc()
        logger.info(
            "refresh_cycle_completed",
            seq=seq,
            matches=snapshot.total,
            outcome=outcome,
            published=published,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return snapshot

    def _launch_cycle(self) -> asyncio.Task[SourceSnapshot]:
        self._next_seq += 1
        task = asyncio.create_task(self._run_cycle(self._next_seq), name=f"refresh-cycle-{self._next_seq}")
        self._in_flight.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task[SourceSnapshot]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            REFRESH_CYCLES.labels(outcome="error").inc()
            logger.error("refresh_cycle_error", error=str(exc), exc_info=exc)

    async def refresh(self) -> SourceSnapshot:
        """Run one cycle now and wait for it to settle."""
        return await self._launch_cycle()

    def request_refresh(self) -> None:
        """Ask the loop for an immediate cycle (manual refresh, store push notification)."""
        logger.info("refresh_requested")
        self._wake.set()

    # ── Loop ────────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Tick every interval, or sooner when a refresh is requested."""
        logger.info("refresh_loop_started", interval_s=self._interval_s)
        while not self._shutdown.is_set():
            try:
                self._launch_cycle()
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self._interval_s)
                except asyncio.TimeoutError:
                    pass
                self._wake.clear()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("refresh_loop_error", error=str(exc), exc_info=True)
                await asyncio.sleep(2.0)
        logger.info("refresh_loop_stopped")

    def start(self) -> asyncio.Task[None]:
        """Start the loop; the returned task is the cancellable handle."""
        if self.running:
            assert self._loop_task is not None
            return self._loop_task
        self._shutdown.clear()
        self._loop_task = asyncio.create_task(self.run(), name="refresh-loop")
        return self._loop_task

    async def stop(self) -> None:
        """Teardown: cancel the loop and every in-flight cycle."""
        self._shutdown.set()
        tasks: list[asyncio.Task] = list(self._in_flight)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        self._loop_task = None

    def request_shutdown(self) -> None:
        self._shutdown.set()
        self._wake.set()


async def main() -> None:
    """Standalone scheduler entrypoint: refresh and log every cycle."""
    settings = get_settings()
    setup_logging("scheduler")
    start_metrics_server(settings.metrics_port + 1)

    registry = SourceRegistry.from_settings(settings)
    await registry.start()
    scheduler = RefreshScheduler(registry, settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, scheduler.request_shutdown)

    logger.info("scheduler_service_started", instance_id=settings.instance_id)

    try:
        await scheduler.run()
    finally:
        await scheduler.stop()
        await registry.close()
        logger.info("scheduler_service_stopped")


if __name__ == "__main__":
    asyncio.run(main())
