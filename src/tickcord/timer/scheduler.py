"""
Hour-aligned scheduler driving every timer action.

One asyncio task sleeps until the next wall-clock hour boundary and then
ticks at a fixed period. Ticks run one after another inside that task, so
they never overlap; if a tick overruns, the next one starts as soon as it
returns.

The hour of day is advanced by the tick itself rather than re-read from the
clock, so a clock change while running does not make an hour fire twice or
be skipped. A mismatch with the wall clock is logged.
"""

from __future__ import annotations

import asyncio
import datetime
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List

from tickcord.datatypes.timer_datatypes import HOURS_PER_DAY, TimerAction
from tickcord.timer.errors import ActionFailure
from tickcord.timer.timer_registry import TimerRegistry
from tickcord.util.logger import get_logger

logger = get_logger("scheduler")

SECONDS_PER_HOUR = 3600
WAKE_TOLERANCE = datetime.timedelta(minutes=1)

Clock = Callable[[], datetime.datetime]
Sweep = Callable[[int], Awaitable[Any]]


def seconds_until_next_hour(now: datetime.datetime) -> float:
    """Seconds from ``now`` to the start of the next hour."""
    boundary = now.replace(minute=0, second=0, microsecond=0) + datetime.timedelta(hours=1)
    return (boundary - now).total_seconds()


def hours_since_epoch_at(now: datetime.datetime) -> int:
    """Whole hours elapsed between the Unix epoch and ``now``."""
    return int(now.timestamp() // SECONDS_PER_HOUR)


@dataclass
class TickReport:
    """What happened during one tick."""
    hour: int
    hours_since_epoch: int
    fired: int = 0
    removed: int = 0
    failures: List[ActionFailure] = field(default_factory=list)
    sweep_results: List[Any] = field(default_factory=list)


class HourlyScheduler:
    """
    Drives a :class:`TimerRegistry` once per hour.

    The hour counters are read from ``clock`` once, at construction.

    Args:
        registry: Hour buckets to dispatch from.
        clock: Returns the current local time.
        period_seconds: Time between ticks after the first one.
        on_tick_complete: Called with each :class:`TickReport`.
    """

    def __init__(
        self,
        registry: TimerRegistry,
        *,
        clock: Clock = datetime.datetime.now,
        period_seconds: float = SECONDS_PER_HOUR,
        on_tick_complete: Callable[[TickReport], None] | None = None,
    ) -> None:
        self.registry = registry
        self._clock = clock
        self._period = period_seconds
        self._on_tick_complete = on_tick_complete
        self._sweeps: List[Sweep] = []

        now = clock()
        self._current_hour = now.hour
        self._hours_since_epoch = hours_since_epoch_at(now)

        self._task: asyncio.Task[None] | None = None
        self._in_tick = False
        self._stopped = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_hour(self) -> int:
        return self._current_hour

    @property
    def hours_since_epoch(self) -> int:
        return self._hours_since_epoch

    @property
    def period_seconds(self) -> float:
        return self._period

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def add_sweep(self, sweep: Sweep) -> None:
        """Run ``sweep(hours_since_epoch)`` at the end of every tick."""
        self._sweeps.append(sweep)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start ticking at the next hour boundary. Must run inside the event loop."""
        if self._stopped:
            logger.warning("[SCHEDULER] start() after stop(); scheduler stays stopped")
            return
        if self.is_running:
            logger.warning("[SCHEDULER] Already running")
            return

        delay = seconds_until_next_hour(self._clock())
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(delay), name="tickcord-hourly-scheduler")
        logger.info(
            "[SCHEDULER] First tick in %.0fs (hour=%d, hours_since_epoch=%d, period=%.0fs)",
            delay, self._current_hour, self._hours_since_epoch, self._period,
        )

    async def stop(self) -> None:
        """
        Stop permanently. Idempotent.

        A tick that is already running is allowed to finish; no tick starts
        afterwards.
        """
        if self._stopped and self._task is None:
            return
        self._stopped = True

        task = self._task
        if task is None or task.done():
            self._task = None
            logger.info("[SCHEDULER] Stopped")
            return

        if task is asyncio.current_task():
            # stop() called from an action; the loop exits once the tick returns
            return

        if not self._in_tick:
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("[SCHEDULER] Stopped")

    async def _run(self, initial_delay: float) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + initial_delay
        try:
            while not self._stopped:
                await asyncio.sleep(max(0.0, next_at - loop.time()))
                if self._stopped:
                    break
                await self.tick()
                next_at += self._period
        except asyncio.CancelledError:
            logger.info("[SCHEDULER] Tick loop cancelled")
            raise

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _advance(self) -> None:
        self._hours_since_epoch += 1
        self._current_hour = (self._current_hour + 1) % HOURS_PER_DAY

    async def _invoke(self, action: TimerAction, report: TickReport) -> None:
        try:
            outcome = action()
            if inspect.isawaitable(outcome):
                await outcome
            report.fired += 1
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = ActionFailure(report.hour, action, exc)
            report.failures.append(failure)
            logger.error("[SCHEDULER] %s", failure, exc_info=exc)

    async def tick(self) -> TickReport | None:
        """
        Run one tick.

        1. advance the hour counters
        2. apply removals queued since the previous tick
        3. run every action of the new hour; failures are isolated
        4. run the expiry sweeps

        Returns None without doing anything once the scheduler is stopped.
        """
        if self._stopped:
            logger.debug("[SCHEDULER] tick() ignored; scheduler stopped")
            return None

        self._in_tick = True
        try:
            self._advance()
            report = TickReport(hour=self._current_hour, hours_since_epoch=self._hours_since_epoch)

            # the loop may wake slightly before the boundary
            wall_hour = (self._clock() + WAKE_TOLERANCE).hour
            if wall_hour != self._current_hour:
                logger.warning(
                    "[SCHEDULER] Tick hour %d differs from wall clock hour %d",
                    self._current_hour, wall_hour,
                )

            report.removed = self.registry.drain_pending()

            for action in self.registry.actions_for(self._current_hour):
                await self._invoke(action, report)

            for sweep in self._sweeps:
                try:
                    report.sweep_results.append(await sweep(self._hours_since_epoch))
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("[SCHEDULER] Expiry sweep failed")
        finally:
            self._in_tick = False

        logger.debug(
            "[SCHEDULER] Tick hour=%d epoch_hour=%d fired=%d failed=%d removed=%d",
            report.hour, report.hours_since_epoch, report.fired, len(report.failures), report.removed,
        )

        if self._on_tick_complete is not None:
            try:
                self._on_tick_complete(report)
            except Exception:
                logger.exception("[SCHEDULER] on_tick_complete hook failed")

        return report
