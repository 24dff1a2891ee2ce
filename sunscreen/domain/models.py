from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Optional


class Mode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class Position(str, Enum):
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"
    MOVING = "moving"


class Level(str, Enum):
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True)
class LightSensorConfig:
    pin: int = 23
    calibration_factor: int = 1
    sampling_interval: timedelta = timedelta(seconds=60)
    good: int = 9           # max value that counts as "good weather"
    neutral: int = 11       # min value that counts as "neutral weather"
    bad: int = 20           # min value that counts as "bad weather"
    times_good: int = 15
    times_neutral: int = 20
    times_bad: int = 5
    allowed_outliers: int = 2
    attempts: int = 10

    @property
    def capacity(self) -> int:
        return max(self.times_good, self.times_neutral, self.times_bad) + self.allowed_outliers

    @property
    def lead_time(self) -> timedelta:
        """Time needed to fill the history before a shade window opens."""
        return self.sampling_interval * self.capacity

    def to_dict(self) -> dict[str, Any]:
        return {
            "pin": self.pin,
            "calibration_factor": self.calibration_factor,
            "sampling_interval_s": int(self.sampling_interval.total_seconds()),
            "good": self.good,
            "neutral": self.neutral,
            "bad": self.bad,
            "times_good": self.times_good,
            "times_neutral": self.times_neutral,
            "times_bad": self.times_bad,
            "allowed_outliers": self.allowed_outliers,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "LightSensorConfig":
        return cls(
            pin=int(d["pin"]),
            calibration_factor=int(d["calibration_factor"]),
            sampling_interval=timedelta(seconds=int(d["sampling_interval_s"])),
            good=int(d["good"]),
            neutral=int(d["neutral"]),
            bad=int(d["bad"]),
            times_good=int(d["times_good"]),
            times_neutral=int(d["times_neutral"]),
            times_bad=int(d["times_bad"]),
            allowed_outliers=int(d["allowed_outliers"]),
            attempts=int(d.get("attempts", 10)),
        )


@dataclass(frozen=True)
class ShadeConfig:
    pin_up: int = 20
    pin_down: int = 21
    move_duration_up: timedelta = timedelta(seconds=20)
    move_duration_down: timedelta = timedelta(seconds=17)
    auto_start: bool = True     # start = sunrise + sun_start_offset
    auto_stop: bool = True      # stop = sunset - sun_stop_offset
    sun_start_offset: timedelta = timedelta(0)
    sun_stop_offset: timedelta = timedelta(0)
    start_time: time = time(10, 0)
    stop_time: time = time(18, 0)
    pre_stop_limit: timedelta = timedelta(minutes=70)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pin_up": self.pin_up,
            "pin_down": self.pin_down,
            "move_up_s": int(self.move_duration_up.total_seconds()),
            "move_down_s": int(self.move_duration_down.total_seconds()),
            "auto_start": self.auto_start,
            "auto_stop": self.auto_stop,
            "sun_start_min": int(self.sun_start_offset.total_seconds() // 60),
            "sun_stop_min": int(self.sun_stop_offset.total_seconds() // 60),
            "start_time": self.start_time.strftime("%H:%M"),
            "stop_time": self.stop_time.strftime("%H:%M"),
            "pre_stop_min": int(self.pre_stop_limit.total_seconds() // 60),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ShadeConfig":
        h1, m1 = d["start_time"].split(":")
        h2, m2 = d["stop_time"].split(":")
        return cls(
            pin_up=int(d["pin_up"]),
            pin_down=int(d["pin_down"]),
            move_duration_up=timedelta(seconds=int(d["move_up_s"])),
            move_duration_down=timedelta(seconds=int(d["move_down_s"])),
            auto_start=bool(d["auto_start"]),
            auto_stop=bool(d["auto_stop"]),
            sun_start_offset=timedelta(minutes=int(d["sun_start_min"])),
            sun_stop_offset=timedelta(minutes=int(d["sun_stop_min"])),
            start_time=time(int(h1), int(m1)),
            stop_time=time(int(h2), int(m2)),
            pre_stop_limit=timedelta(minutes=int(d["pre_stop_min"])),
        )


@dataclass(frozen=True)
class OperatingWindow:
    start: datetime
    stop: datetime

    def contains(self, t: datetime) -> bool:
        return self.start <= t < self.stop


@dataclass(frozen=True)
class SampleResult:
    value: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        # Zero is ambiguous (darkness or a dead sensor) and never fed to the decision engine
        return self.value > 0


@dataclass(frozen=True)
class LightReading:
    ts_utc: datetime
    sensor_id: str
    value: int
    ok: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class MoveEvent:
    ts_utc: datetime
    shade_id: str
    mode: Mode
    old_position: Position
    new_position: Position
    light: list[int] = field(default_factory=list)
