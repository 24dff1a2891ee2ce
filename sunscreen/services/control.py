from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from ..core.timeutil import now_local
from ..domain.decision import DecisionEngine
from ..domain.interfaces import Pin, SunCalculator
from ..domain.light_sensor import LightSensor
from ..domain.models import Mode, Position
from ..domain.shade import Shade
from ..domain.validation import update_light_sensor, update_shade
from ..storage.sqlite_repo import SQLiteRepository
from .coordinator import ScheduleCoordinator
from .sampler import SamplerService

logger = logging.getLogger(__name__)


class ControlService:
    """Mode switching and configuration updates for all shades.

    Owns one ScheduleCoordinator per shade and starts/stops it as the shade
    enters/leaves auto mode. Configuration changes are serialized by a lock of
    their own so they never wait on a running sample or move.
    """

    def __init__(
        self,
        shades: list[Shade],
        sensor: LightSensor,
        repo: Optional[SQLiteRepository] = None,
        sun: Optional[SunCalculator] = None,
        sampler: Optional[SamplerService] = None,
        pin_factory: Optional[Callable[[int], Pin]] = None,
        clock: Callable[[], datetime] = now_local,
        tick: float = 1.0,
    ) -> None:
        self.shades = {s.id: s for s in shades}
        self.sensor = sensor
        self.sampler = sampler
        self._repo = repo
        self._sun = sun
        self._pin_factory = pin_factory
        self._clock = clock
        self._lock = asyncio.Lock()
        engine = DecisionEngine()
        self.coordinators = {
            s.id: ScheduleCoordinator(s, sensor, engine, sun, clock=clock, tick=tick)
            for s in shades
        }

    def shade(self, shade_id: str) -> Shade:
        try:
            return self.shades[shade_id]
        except KeyError:
            raise KeyError(f"Unknown shade: {shade_id}") from None

    async def start(self) -> None:
        for shade in self.shades.values():
            if shade.mode == Mode.AUTO:
                await self.coordinators[shade.id].start()

    async def set_auto(self, shade_id: str) -> None:
        shade = self.shade(shade_id)
        async with self._lock:
            if shade.mode == Mode.AUTO and self.coordinators[shade_id].running:
                logger.info("Mode is already auto for shade %s", shade_id)
                return
            shade.mode = Mode.AUTO
            logger.info("Set mode to auto for shade %s", shade_id)
            await self.coordinators[shade_id].start()
            await self._save_shade_state(shade)

    async def set_manual(self, shade_id: str, target: Position) -> bool:
        """Switch to manual mode and move to `target`. False if nothing moved."""
        if target not in (Position.UP, Position.DOWN):
            raise ValueError(f"Manual target must be up or down, got {target}")
        shade = self.shade(shade_id)
        async with self._lock:
            shade.mode = Mode.MANUAL
            await self.coordinators[shade_id].stop()
            await self._save_shade_state(shade)
        light = self.sensor.values()
        if target == Position.UP:
            moved = await shade.actuator.up(light)
        else:
            moved = await shade.actuator.down(light)
        logger.info("Mode=%s and Position=%s for shade %s", shade.mode.value, shade.position.value, shade_id)
        return moved

    async def update_light_sensor(self, data: Mapping[str, Any]) -> list[str]:
        async with self._lock:
            new, messages = update_light_sensor(self.sensor.config, data)
            await self.sensor.replace_config(new)
            if self._repo is not None:
                await self._repo.save_state("light_sensor", new.to_dict())
            self._refresh_sensor_window()
        return messages

    async def update_shade(self, shade_id: str, data: Mapping[str, Any]) -> list[str]:
        shade = self.shade(shade_id)
        async with self._lock:
            new, messages = update_shade(shade.config, data)
            old = shade.config
            shade.config = new
            if self._pin_factory is not None and (new.pin_up, new.pin_down) != (old.pin_up, old.pin_down):
                await shade.actuator.rebind(
                    self._pin_factory(new.pin_up), self._pin_factory(new.pin_down),
                    new.move_duration_up, new.move_duration_down,
                )
            else:
                shade.actuator.duration_up = new.move_duration_up
                shade.actuator.duration_down = new.move_duration_down
            shade.reset_window(self._clock(), self._sun)
            if self._repo is not None:
                await self._repo.save_state(f"shade.{shade_id}", new.to_dict())
            self._refresh_sensor_window()
        return messages

    async def shutdown(self) -> None:
        """Stop auto mode loops and bring every shade up."""
        logger.info("Closing down...")
        await asyncio.gather(*(c.stop() for c in self.coordinators.values()))
        for shade in self.shades.values():
            try:
                await shade.actuator.up(self.sensor.values())
            except Exception:
                logger.exception("Unable to move shade %s up while closing down", shade.id)
            shade.actuator.release()

    def _refresh_sensor_window(self) -> None:
        if self.sampler is not None:
            self.sampler.refresh_window()

    async def _save_shade_state(self, shade: Shade) -> None:
        if self._repo is None:
            return
        try:
            await self._repo.save_shade_state(shade.id, shade.mode, shade.position)
        except Exception:
            logger.warning("Storing state of shade %s failed", shade.id, exc_info=True)

    def status(self) -> dict:
        return {
            "shades": [s.status() for s in self.shades.values()],
            "light": self.sensor.values(),
            "capacity": self.sensor.config.capacity,
        }
