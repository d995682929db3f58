"""Monitor scheduler — fires probes, refreshes statuses, redraws the dashboard.

Each cycle fires every probe as its own asyncio task without waiting on it,
sleeps a settle delay, then runs a fixed number of one-second ticks that
re-evaluate staleness and redraw. Probe completion, status ticks and
rendering are all decoupled; a hung probe only leaves its record stale.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from ..probes.base import Probe, ProbeError
from .staleness import STALE_AFTER_MS, refresh_statuses
from .state import HealthSnapshot

if TYPE_CHECKING:
    from ..dashboard import Dashboard

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class MonitorScheduler:
    """Runs the fire → settle → tick/render cycle forever.

    Lifecycle:
        scheduler = MonitorScheduler(snapshot, probes, dashboard)
        await scheduler.run_forever()   # until stop()
    """

    def __init__(
        self,
        snapshot: HealthSnapshot,
        probes: Sequence[Probe],
        dashboard: Dashboard | None = None,
        settle_seconds: float = 5.0,
        ticks_per_cycle: int = 10,
        tick_seconds: float = 1.0,
        stale_after_ms: int = STALE_AFTER_MS,
        clock: Callable[[], int] = wall_clock_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        unknown = [p.name for p in probes if p.name not in snapshot]
        if unknown:
            raise ValueError(f"Probes without a snapshot entry: {', '.join(unknown)}")

        self.snapshot = snapshot
        self.probes = list(probes)
        self.dashboard = dashboard
        self.settle_seconds = settle_seconds
        self.ticks_per_cycle = ticks_per_cycle
        self.tick_seconds = tick_seconds
        self.stale_after_ms = stale_after_ms
        self._clock = clock
        self._sleep = sleep
        # Held only so in-flight tasks aren't garbage collected; never awaited
        self._in_flight: set[asyncio.Task[None]] = set()
        self._running = False
        self.cycles = 0

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # -- probes ----------------------------------------------------------------

    def fire_probes(self) -> None:
        """Start one task per probe and return immediately."""
        for probe in self.probes:
            task = asyncio.create_task(self._run_probe(probe), name=f"probe-{probe.name}")
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
        logger.debug("Fired %d probes (%d in flight)", len(self.probes), len(self._in_flight))

    async def _run_probe(self, probe: Probe) -> None:
        """Run one probe and merge its outcome; never raises."""
        try:
            update = await probe.run()
        except ProbeError as e:
            self.snapshot.record_failure(probe.name, str(e), e.latency_ms)
            logger.warning("Probe %s failed: %s", probe.name, e)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.snapshot.record_failure(probe.name, f"{type(e).__name__}: {e}")
            logger.exception("Probe %s crashed", probe.name)
            return

        self.snapshot.record_success(probe.name, update.value, update.latency_ms, self._clock())
        logger.debug("Probe %s ok (%.0fms)", probe.name, update.latency_ms)

    # -- ticks -----------------------------------------------------------------

    def tick(self) -> None:
        """Refresh statuses and redraw once."""
        now = self._clock()
        refresh_statuses(self.snapshot, now, self.stale_after_ms)
        if self.dashboard is not None:
            self.dashboard.draw(self.snapshot, now)

    async def run_cycle(self) -> None:
        self.fire_probes()
        await self._sleep(self.settle_seconds)
        for _ in range(self.ticks_per_cycle):
            self.tick()
            await self._sleep(self.tick_seconds)
        self.cycles += 1

    async def run_forever(self, max_cycles: int | None = None) -> None:
        """Repeat cycles until stop(); orchestration errors are logged, not fatal."""
        self._running = True
        logger.info(
            "Monitor started: %d probes, settle=%ss, %d ticks × %ss",
            len(self.probes), self.settle_seconds, self.ticks_per_cycle, self.tick_seconds,
        )
        attempts = 0
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Monitor cycle error")
                await self._sleep(self.tick_seconds)
            attempts += 1
            if max_cycles is not None and attempts >= max_cycles:
                break
        self._running = False
        logger.info("Monitor stopped after %d cycles", self.cycles)

    def stop(self) -> None:
        """End the loop after the current cycle; in-flight probes are left alone."""
        self._running = False
