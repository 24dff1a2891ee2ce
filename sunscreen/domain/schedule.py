from __future__ import annotations
import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional

from ..core.timeutil import at_day, shift_days
from .errors import SunTimeError
from .interfaces import SunCalculator
from .models import LightSensorConfig, OperatingWindow, ShadeConfig

logger = logging.getLogger(__name__)


def shade_window(
    cfg: ShadeConfig,
    day: date,
    tz: tzinfo,
    sun: Optional[SunCalculator] = None,
    previous: Optional[OperatingWindow] = None,
) -> OperatingWindow:
    """Operating window of a shade on `day`.

    Sun-relative bounds that cannot be computed keep the clock time of the
    previous window (or the fixed clock time when there is none).
    """
    start = at_day(day, cfg.start_time, tz)
    stop = at_day(day, cfg.stop_time, tz)
    if previous is not None:
        if cfg.auto_start:
            start = shift_days(previous.start, (day - previous.start.date()).days)
        if cfg.auto_stop:
            stop = shift_days(previous.stop, (day - previous.stop.date()).days)

    if not (cfg.auto_start or cfg.auto_stop):
        return OperatingWindow(start=start, stop=stop)

    try:
        if sun is None:
            raise SunTimeError("No location configured for sunrise/sunset")
        rise, sett = sun.sunrise_sunset(day)
    except SunTimeError as e:
        logger.error("%s. Keeping start %s and stop %s", e, start.strftime("%H:%M"), stop.strftime("%H:%M"))
        return OperatingWindow(start=start, stop=stop)

    if cfg.auto_start:
        start = rise + cfg.sun_start_offset
    if cfg.auto_stop:
        stop = sett - cfg.sun_stop_offset
    return OperatingWindow(start=start, stop=stop)


def next_shade_window(
    cfg: ShadeConfig,
    now: datetime,
    sun: Optional[SunCalculator] = None,
    previous: Optional[OperatingWindow] = None,
) -> OperatingWindow:
    """First window (today or later) whose stop is still ahead of `now`."""
    day = now.date()
    w = shade_window(cfg, day, now.tzinfo, sun, previous)
    while w.stop <= now:
        day += timedelta(days=1)
        w = shade_window(cfg, day, now.tzinfo, sun, w)
    return w


def sensor_window(
    windows: Iterable[OperatingWindow],
    cfg: LightSensorConfig,
    stop_buffer: timedelta = timedelta(minutes=30),
) -> Optional[OperatingWindow]:
    """Light monitoring window covering all shade windows.

    It opens early enough to collect a full history before the first shade
    window starts and closes `stop_buffer` after the last one stops.
    """
    windows = list(windows)
    if not windows:
        return None
    start = min(w.start for w in windows) - cfg.lead_time
    stop = max(w.stop for w in windows) + stop_buffer
    return OperatingWindow(start=start, stop=stop)
