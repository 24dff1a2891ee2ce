from __future__ import annotations
import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from ..core.timeutil import now_local
from ..domain.decision import DecisionEngine
from ..domain.interfaces import SunCalculator
from ..domain.light_sensor import LightSensor
from ..domain.models import Mode, Position
from ..domain.shade import Shade

logger = logging.getLogger(__name__)

# outcome of one loop iteration
_SLEEP, _NEXT, _STOP = "sleep", "next", "stop"


class ScheduleCoordinator:
    """Auto mode for one shade.

    Runs while the shade is in auto mode: keeps the shade up outside its
    operating window, rolls the window over to the next day after it stops,
    and lets the decision engine move the shade inside the window. Every wait
    is cut into `tick`-second steps so a stop request or a mode change ends
    the loop within one tick.
    """

    def __init__(
        self,
        shade: Shade,
        sensor: LightSensor,
        engine: Optional[DecisionEngine] = None,
        sun: Optional[SunCalculator] = None,
        clock: Callable[[], datetime] = now_local,
        tick: float = 1.0,
    ) -> None:
        self._shade = shade
        self._sensor = sensor
        self._engine = engine or DecisionEngine()
        self._sun = sun
        self._clock = clock
        self._tick = tick

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=f"coordinator_{self._shade.id}")

    def request_stop(self) -> None:
        self._stop.set()

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    def _cancelled(self) -> bool:
        return self._stop.is_set() or self._shade.mode != Mode.AUTO

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True if cancelled meanwhile."""
        end = time.monotonic() + seconds
        while not self._cancelled():
            remaining = end - time.monotonic()
            if remaining <= 0:
                return False
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=min(remaining, self._tick))
            except asyncio.TimeoutError:
                pass
        return True

    async def _wait_until(self, target: Callable[[], datetime]) -> bool:
        """Sleep until `target()` passes; it is re-read every tick so window
        changes made meanwhile are followed. True if cancelled."""
        while not self._cancelled():
            remaining = (target() - self._clock()).total_seconds()
            if remaining <= 0:
                return False
            if await self._wait(min(remaining, self._tick)):
                return True
        return True

    async def _run(self) -> None:
        shade = self._shade
        logger.info("Auto mode started for shade %s", shade.id)

        while not self._cancelled():
            try:
                outcome = await self._iteration()
            except Exception as e:
                logger.exception("Coordinator loop error (shade %s): %s", shade.id, e)
                outcome = _SLEEP

            if outcome == _STOP:
                break
            if outcome == _NEXT:
                continue
            if await self._wait(self._sensor.config.sampling_interval.total_seconds()):
                break

        logger.info("Mode is no longer auto, closing auto loop for shade %s", shade.id)

    async def _iteration(self) -> str:
        shade = self._shade
        now = self._clock()
        w = shade.window

        if w.stop - shade.config.pre_stop_limit <= now < w.stop and shade.position == Position.UP:
            logger.info(
                "Sun will set in (less than) %s and shade %s is up. Snoozing until %s",
                shade.config.pre_stop_limit, shade.id, w.stop.strftime("%H:%M"),
            )
            return _STOP if await self._wait_until(lambda: shade.window.stop) else _NEXT

        if now >= w.stop:
            logger.info("Shade %s passed stop (%s), moving up", shade.id, w.stop.strftime("%d %b %H:%M"))
            await shade.actuator.up(self._sensor.values())
            w = shade.advance_window(now, self._sun)

        if now < w.start:
            logger.info("Sun is not yet up, snoozing shade %s until %s", shade.id, w.start.strftime("%d %b %H:%M"))
            await shade.actuator.up(self._sensor.values())
            if await self._wait_until(lambda: shade.window.start):
                return _STOP
            return _NEXT
        elif w.contains(now):
            await self._evaluate()

        return _SLEEP

    async def _evaluate(self) -> None:
        history, cfg = await self._sensor.snapshot()
        if self._cancelled():
            return
        if not history.sufficient_for(cfg.capacity):
            logger.info("Not enough light gathered for shade %s (%d/%d)", self._shade.id, len(history), cfg.capacity)
            return
        await self._engine.evaluate(self._shade.actuator, history, cfg)
