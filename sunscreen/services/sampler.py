from __future__ import annotations
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..core.timeutil import now_local, now_utc
from ..domain.interfaces import Pin, Repository, SunCalculator
from ..domain.light_sensor import LightSensor
from ..domain.models import LightReading, LightSensorConfig, OperatingWindow
from ..domain.schedule import sensor_window
from ..domain.shade import Shade
from ..sensors.light_sampler import LightSampler


logger = logging.getLogger(__name__)


class SamplerService:
    """Light monitoring for one sensor.

    While the sensor window is open a sampling task measures light every
    sampling interval and pushes it into the sensor history. The task is told
    to quit when the window closes or the service stops; outside the window
    the history is kept empty.
    """

    def __init__(
        self,
        sensor: LightSensor,
        sampler: LightSampler,
        shades: Sequence[Shade],
        repo: Optional[Repository] = None,
        sun: Optional[SunCalculator] = None,
        clock: Callable[[], datetime] = now_local,
        stop_buffer: timedelta = timedelta(minutes=30),
        pin_factory: Optional[Callable[[int], Pin]] = None,
        tick: float = 1.0,
    ) -> None:
        self._sensor = sensor
        self._sampler = sampler
        self._shades = shades
        self._repo = repo
        self._sun = sun
        self._clock = clock
        self._stop_buffer = stop_buffer
        self._pin_factory = pin_factory
        self._tick = tick

        self._window: Optional[OperatingWindow] = None
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self.last_reading: Optional[LightReading] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def window(self) -> Optional[OperatingWindow]:
        """Current sensor window.

        Kept until it stops, so a shade window rolling over to tomorrow does not
        cut the stop buffer short.
        """
        if self._window is None:
            self._window = self._compute_window()
        return self._window

    def refresh_window(self) -> Optional[OperatingWindow]:
        """Recompute the sensor window from the shades (after a config change)."""
        self._window = self._compute_window()
        return self._window

    def _compute_window(self) -> Optional[OperatingWindow]:
        return sensor_window((s.window for s in self._shades), self._sensor.config, self._stop_buffer)

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="sampler_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def _wait(self, seconds: float, quit: Optional[asyncio.Event] = None) -> bool:
        """Sleep up to `seconds`; True if stopped (or told to quit) meanwhile."""
        event = quit or self._stop
        end = time.monotonic() + seconds
        while not (self._stop.is_set() or event.is_set()):
            remaining = end - time.monotonic()
            if remaining <= 0:
                return False
            try:
                await asyncio.wait_for(event.wait(), timeout=min(remaining, self._tick))
            except asyncio.TimeoutError:
                pass
        return True

    async def _run(self) -> None:
        logger.info(
            "Sampler loop started (interval=%s attempts=%s)",
            self._sensor.config.sampling_interval,
            self._sensor.config.attempts,
        )

        while not self._stop.is_set():
            try:
                w = self.window()
                now = self._clock()
                if w is None:
                    await self._wait(self._tick)
                elif w.contains(now):
                    await self._monitor()
                    await self._sensor.clear()
                elif now >= w.stop:
                    logger.info("Light monitoring stopped at %s, resetting start/stop to tomorrow", w.stop.strftime("%H:%M"))
                    await self._sensor.clear()
                    for shade in self._shades:
                        shade.advance_window(now, self._sun)
                    self.refresh_window()
                else:
                    await self._sensor.clear()
                    logger.info("Sleep light monitoring until %s", w.start.strftime("%d %b %H:%M"))
                    await self._sleep_until_open()
            except Exception as e:
                logger.exception("Sampler loop error: %s", e)
                await self._wait(self._sensor.config.sampling_interval.total_seconds())

        logger.info("Sampler loop stopped")

    def _window_open(self) -> bool:
        w = self.window()
        return w is not None and w.contains(self._clock())

    async def _sleep_until_open(self) -> None:
        while not self._stop.is_set():
            w = self.window()
            if w is None or self._clock() >= w.start:
                return
            await self._wait(self._tick)

    async def _monitor(self) -> None:
        quit = asyncio.Event()
        task = asyncio.create_task(self._sampling_loop(quit), name="light_sampling")
        try:
            while not self._stop.is_set() and self._window_open() and not task.done():
                await self._wait(self._tick)
        finally:
            quit.set()
            await task

    async def _sampling_loop(self, quit: asyncio.Event) -> None:
        logger.info("Start monitoring light every %s", self._sensor.config.sampling_interval)
        while not quit.is_set():
            try:
                await self.sample_once()
            except Exception as e:
                logger.exception("Light sampling error: %s", e)
            if await self._wait(self._sensor.config.sampling_interval.total_seconds(), quit):
                break
        logger.info("Closing light sampling")

    def _sampler_for(self, cfg: LightSensorConfig) -> LightSampler:
        if self._pin_factory is not None and cfg.pin != self._sampler.pin.number:
            logger.info("Light sensor moved to pin %s", cfg.pin)
            self._sampler = LightSampler(self._pin_factory(cfg.pin), cfg.calibration_factor)
        self._sampler.calibration_factor = cfg.calibration_factor
        return self._sampler

    async def sample_once(self) -> LightReading:
        """One averaged measurement; stored in the history only when usable."""
        cfg = self._sensor.config
        sampler = self._sampler_for(cfg)

        # Blocking pin I/O, run in a thread so the event loop keeps going
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, sampler.sample_averaged, cfg.attempts)

        reading = LightReading(
            ts_utc=now_utc(),
            sensor_id=self._sensor.sensor_id,
            value=result.value,
            ok=result.ok,
            error=result.error,
        )
        if not result.ok:
            logger.error("No light gathered: %s", result.error)
        else:
            if result.error:
                logger.warning("Light gathered: %d with errors: %s", result.value, result.error)
            data = await self._sensor.record(result.value)
            logger.info("Light gathered: %d (history %s)", result.value, data)

        self.last_reading = reading
        if self._repo is not None:
            try:
                await self._repo.insert_reading(reading)
            except Exception:
                logger.warning("Storing light reading failed", exc_info=True)
        return reading
