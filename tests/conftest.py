"""Shared fixtures for the sunscreen controller tests."""

import asyncio
from datetime import date, datetime, time, timedelta, timezone

import pytest
from unittest.mock import AsyncMock

from sunscreen.domain.actuator import ShadeActuator
from sunscreen.domain.errors import SunTimeError
from sunscreen.domain.light_sensor import LightSensor
from sunscreen.domain.models import (
    LightSensorConfig,
    Level,
    Mode,
    OperatingWindow,
    Position,
    ShadeConfig,
)
from sunscreen.domain.shade import Shade
from sunscreen.drivers.gpio_sim import SimulatedPin

UTC = timezone.utc


class ScriptedLightPin:
    """Light pin that yields a scripted raw count per measurement (cycling)."""

    def __init__(self, counts, number=23):
        self.number = number
        self._counts = list(counts)
        self._i = 0
        self._remaining = 0
        self.measurements = 0

    def set_output(self):
        pass

    def set_low(self):
        pass

    def set_high(self):
        pass

    def set_input(self):
        self._remaining = self._counts[self._i % len(self._counts)]
        self._i += 1
        self.measurements += 1

    def read(self):
        if self._remaining > 0:
            self._remaining -= 1
            return Level.LOW
        return Level.HIGH


class FixedSun:
    """Sunrise 06:00, sunset 21:00 every day."""

    def __init__(self, rise=time(6, 0), sett=time(21, 0), fail_on=()):
        self.rise = rise
        self.sett = sett
        self.fail_on = set(fail_on)

    def sunrise_sunset(self, day: date):
        if day in self.fail_on:
            raise SunTimeError(f"no sun on {day}")
        return (
            datetime.combine(day, self.rise, tzinfo=UTC),
            datetime.combine(day, self.sett, tzinfo=UTC),
        )


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


async def wait_for_condition(predicate, timeout=2.0, step=0.01):
    """Poll until predicate() is true; fail the test on timeout."""
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while not predicate():
        if loop.time() > end:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(step)


@pytest.fixture
def light_config():
    """Small history (capacity 4) so scenarios stay readable."""
    return LightSensorConfig(
        pin=23,
        calibration_factor=1,
        sampling_interval=timedelta(seconds=60),
        good=9,
        neutral=11,
        bad=20,
        times_good=3,
        times_neutral=3,
        times_bad=3,
        allowed_outliers=1,
        attempts=10,
    )


@pytest.fixture
def fixed_shade_config():
    return ShadeConfig(
        pin_up=20,
        pin_down=21,
        move_duration_up=timedelta(0),
        move_duration_down=timedelta(0),
        auto_start=False,
        auto_stop=False,
        start_time=time(9, 0),
        stop_time=time(20, 0),
        pre_stop_limit=timedelta(minutes=70),
    )


@pytest.fixture
def repo():
    r = AsyncMock()
    return r


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def make_shade(fixed_shade_config):
    """Build a shade on simulated pins with a window on the given day."""

    def _make(
        position=Position.UP,
        mode=Mode.AUTO,
        day=date(2024, 6, 1),
        config=None,
        repo=None,
        notifier=None,
        tick=0.01,
    ):
        cfg = config or fixed_shade_config
        pin_up, pin_down = SimulatedPin(cfg.pin_up), SimulatedPin(cfg.pin_down)
        holder = {}
        actuator = ShadeActuator(
            "1",
            pin_up,
            pin_down,
            cfg.move_duration_up,
            cfg.move_duration_down,
            position=position,
            notifier=notifier,
            repo=repo,
            mode_of=lambda: holder["shade"].mode,
            tick=tick,
        )
        window = OperatingWindow(
            start=datetime.combine(day, cfg.start_time, tzinfo=UTC),
            stop=datetime.combine(day, cfg.stop_time, tzinfo=UTC),
        )
        shade = Shade("1", "Test", cfg, actuator, window, mode=mode)
        holder["shade"] = shade
        return shade, pin_up, pin_down

    return _make


@pytest.fixture
def sensor(light_config):
    return LightSensor(light_config, sensor_id="light_test")
