from __future__ import annotations
import logging
import random
from threading import Lock

from ..domain.models import Level

logger = logging.getLogger(__name__)


class SimulatedPin:
    """In-memory GPIO pin. Keeps a log of every call for inspection."""

    def __init__(self, number: int) -> None:
        self.number = number
        self.direction = "input"
        self.level = Level.HIGH
        self.calls: list[str] = []

    def set_output(self) -> None:
        self.direction = "output"
        self.calls.append("output")

    def set_input(self) -> None:
        self.direction = "input"
        self.calls.append("input")

    def set_low(self) -> None:
        self.level = Level.LOW
        self.calls.append("low")
        logger.debug("PIN %s low", self.number)

    def set_high(self) -> None:
        self.level = Level.HIGH
        self.calls.append("high")
        logger.debug("PIN %s high", self.number)

    def read(self) -> Level:
        return self.level

    @property
    def toggles(self) -> int:
        """Number of low pulses, i.e. actuations."""
        return self.calls.count("low")


class SimulatedLightPin:
    """Photoresistor/capacitor circuit: after the capacitor is drained the pin
    reads LOW `count` times before the charge pulls it HIGH."""

    def __init__(self, number: int, count: int = 2000, noise: int = 0) -> None:
        self.number = number
        self._lock = Lock()
        self._count = count
        self._noise = noise
        self._remaining = 0
        self._enabled = True

    def set_count(self, count: int, noise: int = 0) -> None:
        with self._lock:
            self._count = int(count)
            self._noise = int(noise)

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def status(self) -> dict:
        with self._lock:
            return {"enabled": self._enabled, "count": self._count, "noise": self._noise}

    def set_output(self) -> None:
        pass

    def set_input(self) -> None:
        with self._lock:
            if not self._enabled:
                # disconnected sensor: pin floats high straight away
                self._remaining = 0
                return
            jitter = random.randint(-self._noise, self._noise) if self._noise else 0
            self._remaining = max(0, self._count + jitter)

    def set_low(self) -> None:
        pass

    def set_high(self) -> None:
        pass

    def read(self) -> Level:
        with self._lock:
            if self._remaining > 0:
                self._remaining -= 1
                return Level.LOW
            return Level.HIGH
