"""Sequential tick loop, liveness watchdog and the fatal-result channel.

Neither component exits the process. Both resolve to a :class:`RunResult`
and the entry script turns that into an exit code for the supervisor.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.engine.state import BotState

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_TICK_FAILED = 1
EXIT_WATCHDOG = 2


@dataclass(frozen=True, slots=True)
class RunResult:
    exit_code: int
    reason: str
    ticks: int = 0
    error: Optional[str] = None


class Scheduler:
    """Runs one tick at a time, sleeping the delay each tick asks for."""

    def __init__(
        self,
        runner: Any,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        max_ticks: Optional[int] = None,
    ) -> None:
        self.runner = runner
        self._sleep = sleep
        self._clock = clock
        self.max_ticks = max_ticks
        self.ticks = 0
        self.last_completed_at: Optional[float] = None
        self.state: Optional[BotState] = None

    async def run(self, state: BotState) -> RunResult:
        self.state = state
        while self.max_ticks is None or self.ticks < self.max_ticks:
            try:
                outcome = await self.runner.run_tick(self.state)
            except Exception as exc:
                # unknown fault: stop rather than risk double orders or a miscounted budget
                logger.exception("tick_failed", error=str(exc), ticks=self.ticks)
                return RunResult(EXIT_TICK_FAILED, "tick_failed", self.ticks, str(exc))
            self.ticks += 1
            self.state = outcome.state
            self.last_completed_at = self._clock()
            if self.max_ticks is not None and self.ticks >= self.max_ticks:
                break
            await self._sleep(outcome.delay)
        return RunResult(EXIT_OK, "max_ticks", self.ticks)


class Watchdog:
    """Resolves once the scheduler has gone ``stale_after`` seconds without a tick."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        stale_after: float,
        check_interval: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.scheduler = scheduler
        self.stale_after = stale_after
        self.check_interval = check_interval
        self._sleep = sleep
        self._clock = clock

    def is_stale(self, since: float) -> bool:
        last = self.scheduler.last_completed_at or since
        return self._clock() - last > self.stale_after

    async def watch(self) -> RunResult:
        started = self._clock()
        while True:
            await self._sleep(self.check_interval)
            if self.is_stale(started):
                last = self.scheduler.last_completed_at or started
                logger.error(
                    "watchdog_stalled",
                    seconds_since_tick=round(self._clock() - last, 1),
                    ticks=self.scheduler.ticks,
                )
                return RunResult(EXIT_WATCHDOG, "watchdog_stalled", self.scheduler.ticks)


async def run_until_fatal(scheduler: Scheduler, watchdog: Watchdog, state: BotState) -> RunResult:
    """Run the loop with its watchdog; whichever finishes first decides the result."""
    loop_task = asyncio.create_task(scheduler.run(state), name="tick_loop")
    watch_task = asyncio.create_task(watchdog.watch(), name="watchdog")
    done, pending = await asyncio.wait({loop_task, watch_task}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    # the loop's own result wins if both finished together
    if loop_task in done:
        return loop_task.result()
    return watch_task.result()
