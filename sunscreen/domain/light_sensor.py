from __future__ import annotations
import asyncio
import logging

from .history import LightHistory
from .models import LightSensorConfig

logger = logging.getLogger(__name__)


class LightSensor:
    """Light sensor state shared by the sampler and the coordinators.

    All access goes through the methods below so the history never exceeds
    the capacity implied by the current config.
    """

    def __init__(self, config: LightSensorConfig, sensor_id: str = "light") -> None:
        self.sensor_id = sensor_id
        self._config = config
        self._history = LightHistory()
        self._lock = asyncio.Lock()

    @property
    def config(self) -> LightSensorConfig:
        return self._config

    async def replace_config(self, config: LightSensorConfig) -> None:
        async with self._lock:
            self._config = config
            if len(self._history) > config.capacity:
                self._history = LightHistory(self._history.snapshot()[: config.capacity])

    async def record(self, value: int) -> list[int]:
        async with self._lock:
            self._history.push(value, self._config.capacity)
            return self._history.snapshot()

    async def clear(self) -> None:
        async with self._lock:
            if len(self._history):
                logger.info("Clearing %d light values", len(self._history))
            self._history.reset()

    async def snapshot(self) -> tuple[LightHistory, LightSensorConfig]:
        """Consistent copy of history and config for one evaluation."""
        async with self._lock:
            return LightHistory(self._history.snapshot()), self._config

    def values(self) -> list[int]:
        return self._history.snapshot()
