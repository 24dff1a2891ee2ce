from __future__ import annotations
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from astral import Observer
from astral.sun import sunrise, sunset

from .errors import SunTimeError

logger = logging.getLogger(__name__)


class AstralSunCalculator:
    """Sunrise/sunset for a fixed location, in local time."""

    def __init__(self, latitude: float, longitude: float, tz: ZoneInfo) -> None:
        self._observer = Observer(latitude=latitude, longitude=longitude)
        self._tz = tz

    def sunrise_sunset(self, day: date) -> tuple[datetime, datetime]:
        try:
            rise = sunrise(self._observer, date=day, tzinfo=self._tz)
            sett = sunset(self._observer, date=day, tzinfo=self._tz)
        except ValueError as e:
            # astral raises ValueError when the sun never rises or sets that day
            raise SunTimeError(
                f"Could not determine sunrise and sunset on {day} for "
                f"({self._observer.latitude}, {self._observer.longitude}): {e}"
            ) from e
        return rise, sett
