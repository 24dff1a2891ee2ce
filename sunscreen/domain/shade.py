from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from .actuator import ShadeActuator
from .interfaces import SunCalculator
from .models import Mode, OperatingWindow, Position, ShadeConfig
from .schedule import next_shade_window, shade_window

logger = logging.getLogger(__name__)


class Shade:
    """One physical sunscreen: its mode, config, operating window and actuator."""

    def __init__(
        self,
        shade_id: str,
        name: str,
        config: ShadeConfig,
        actuator: ShadeActuator,
        window: OperatingWindow,
        mode: Mode = Mode.MANUAL,
    ) -> None:
        self.id = shade_id
        self.name = name
        self.config = config
        self.actuator = actuator
        self.window = window
        self.mode = mode

    @property
    def position(self) -> Position:
        return self.actuator.position

    def reset_window(self, now: datetime, sun: Optional[SunCalculator]) -> OperatingWindow:
        """Recompute today's window (after start-up or a config change)."""
        self.window = shade_window(self.config, now.date(), now.tzinfo, sun, self.window)
        return self.window

    def advance_window(self, now: datetime, sun: Optional[SunCalculator]) -> OperatingWindow:
        """Move the window forward to the first one that has not stopped yet."""
        if self.window.stop > now:
            return self.window
        self.window = next_shade_window(self.config, now, sun, self.window)
        logger.info(
            "Shade %s window reset to %s - %s",
            self.id,
            self.window.start.strftime("%d %b %H:%M"),
            self.window.stop.strftime("%d %b %H:%M"),
        )
        return self.window

    def status(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "mode": self.mode.value,
            "position": self.position.value,
            "moving": self.actuator.moving,
            "start": self.window.start.isoformat(),
            "stop": self.window.stop.isoformat(),
        }
