"""Field-by-field validation of configuration updates.

Each function takes the current config and the raw submitted values and
returns the new config plus a list of human-readable messages. A field that
fails validation keeps its current value; the other fields are applied.
"""
from __future__ import annotations
import dataclasses
import logging
from datetime import timedelta
from typing import Any, Callable, Mapping

from ..core.timeutil import parse_hhmm
from .models import LightSensorConfig, ShadeConfig

logger = logging.getLogger(__name__)

TIMES_MIN = 5                                  # minimum times_good/neutral/bad
INTERVAL_MIN = timedelta(seconds=60)           # minimum sampling interval
PIN_RANGE = range(1, 28)                       # BCM pins on the 40-pin header


def _to_signed_int(raw: Any) -> int:
    """Int from form/json input; bools and fractions are refused."""
    if isinstance(raw, bool):
        raise ValueError(f"invalid number {raw!r}")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(f"invalid number {raw!r}")
        raw = int(raw)
    return int(str(raw).strip()) if isinstance(raw, str) else int(raw)


def _to_int(raw: Any) -> int:
    """Non-negative int from form/json input."""
    i = _to_signed_int(raw)
    if i < 0:
        raise ValueError(f"negative number {i}")
    return i


def _minutes(raw: Any) -> timedelta:
    return timedelta(minutes=_to_int(raw))


def _offset_minutes(raw: Any) -> timedelta:
    # signed: -30 starts half an hour before sunrise
    return timedelta(minutes=_to_signed_int(raw))


def _seconds(raw: Any) -> timedelta:
    return timedelta(seconds=_to_int(raw))


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "1", "yes", "on")
    return bool(raw)


class _Collector:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.changes: dict[str, Any] = {}

    def fail(self, msg: str) -> None:
        logger.warning(msg)
        self.messages.append(msg)

    def field(self, data: Mapping[str, Any], key: str, attr: str, parse: Callable[[Any], Any], check=None, what: str = "") -> None:
        if key not in data:
            return
        raw = data[key]
        try:
            value = parse(raw)
        except (TypeError, ValueError) as e:
            self.fail(f"Unable to save {what or key} '{raw}' ({e})")
            return
        if check is not None:
            problem = check(value)
            if problem:
                self.fail(f"Unable to save {what or key} '{raw}', {problem}")
                return
        self.changes[attr] = value


def _pin_check(v: int):
    if v not in PIN_RANGE:
        return f"should be within {PIN_RANGE.start}-{PIN_RANGE.stop - 1}"
    return None


def update_light_sensor(current: LightSensorConfig, data: Mapping[str, Any]) -> tuple[LightSensorConfig, list[str]]:
    c = _Collector()

    # Light values only change together and must satisfy good < neutral < bad
    keys = ("good", "neutral", "bad")
    if any(k in data for k in keys):
        try:
            good, neutral, bad = (
                _to_int(data[k]) if k in data else getattr(current, k) for k in keys
            )
        except (TypeError, ValueError) as e:
            c.fail(f"Error while reading light values: {e}")
        else:
            if good < neutral < bad:
                c.changes.update(good=good, neutral=neutral, bad=bad)
            else:
                c.fail(f"Light values incorrect, (good<neutral<bad): {good}<{neutral}<{bad}")

    for key in ("times_good", "times_neutral", "times_bad"):
        if key not in data:
            continue
        try:
            times = _to_int(data[key])
        except (TypeError, ValueError) as e:
            c.fail(f"Error reading {key}: {e}")
            continue
        if times < TIMES_MIN:
            c.fail(f"{key} should be minimum {TIMES_MIN} (was {times})")
            times = TIMES_MIN
        c.changes[key] = times

    c.field(data, "allowed_outliers", "allowed_outliers", _to_int, what="outliers")
    c.field(
        data, "calibration_factor", "calibration_factor", _to_int,
        check=lambda v: None if v > 0 else "should be a number greater than zero",
        what="light factor",
    )
    c.field(data, "attempts", "attempts", _to_int, check=lambda v: None if v > 0 else "should be at least 1")
    c.field(data, "pin", "pin", _to_int, check=_pin_check, what="light pin")
    c.field(
        data, "sampling_interval_s", "sampling_interval",
        _seconds,
        check=lambda v: None if v >= INTERVAL_MIN else f"should be minimal {int(INTERVAL_MIN.total_seconds())} seconds",
        what="interval",
    )

    return dataclasses.replace(current, **c.changes), c.messages


def update_shade(current: ShadeConfig, data: Mapping[str, Any]) -> tuple[ShadeConfig, list[str]]:
    c = _Collector()

    if "auto_start" in data:
        c.changes["auto_start"] = _to_bool(data["auto_start"])
    if "auto_stop" in data:
        c.changes["auto_stop"] = _to_bool(data["auto_stop"])

    c.field(data, "start_time", "start_time", parse_hhmm, what="start time")
    c.field(data, "stop_time", "stop_time", parse_hhmm, what="stop time")

    c.field(data, "sun_start_min", "sun_start_offset", _offset_minutes, what="sun start offset")
    c.field(data, "sun_stop_min", "sun_stop_offset", _offset_minutes, what="sun stop offset")
    c.field(data, "pre_stop_min", "pre_stop_limit", _minutes, what="stop limit")
    c.field(data, "move_up_s", "move_duration_up", _seconds, what="duration up")
    c.field(data, "move_down_s", "move_duration_down", _seconds, what="duration down")
    c.field(data, "pin_up", "pin_up", _to_int, check=_pin_check, what="pin up")
    c.field(data, "pin_down", "pin_down", _to_int, check=_pin_check, what="pin down")

    new = dataclasses.replace(current, **c.changes)
    if new.pin_up == new.pin_down:
        c.fail(f"Pin up and pin down should differ (both {new.pin_up})")
        new = dataclasses.replace(new, pin_up=current.pin_up, pin_down=current.pin_down)
    return new, c.messages
