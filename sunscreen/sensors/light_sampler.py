from __future__ import annotations

import logging
import time

from ..domain.errors import SamplingError
from ..domain.interfaces import Pin
from ..domain.models import Level, SampleResult

logger = logging.getLogger(__name__)

MAX_COUNT = 9_999_999      # upper bound on reads per measurement
SETTLE_SECONDS = 0.1       # time the capacitor is drained before measuring


def measure_once(pin: Pin, settle: float = SETTLE_SECONDS, max_count: int = MAX_COUNT) -> int:
    """Drain the capacitor, then count reads until the pin goes high.

    Raises SamplingError on a count of zero or above `max_count`; both point
    at wiring or sensor failure rather than a light level.
    """
    pin.set_output()
    pin.set_low()
    time.sleep(settle)

    pin.set_input()
    count = 0
    while pin.read() == Level.LOW:
        count += 1
        if count > max_count:
            raise SamplingError(f"Count is getting too high ({count})")
    if count == 0:
        raise SamplingError("Count is zero")
    return count


def average_nonzero(values: list[int]) -> int:
    """Integer mean, leaving zero values out of both sum and divisor."""
    nonzero = [v for v in values if v != 0]
    if not nonzero:
        return 0
    return sum(nonzero) // len(nonzero)


class LightSampler:
    """Calibrated light readings from the photoresistor on one pin.

    Blocking: `sample_averaged` takes up to attempts x (settle + count) time,
    so async callers run it in an executor.
    """

    def __init__(
        self,
        pin: Pin,
        calibration_factor: int = 1,
        settle: float = SETTLE_SECONDS,
        max_count: int = MAX_COUNT,
    ) -> None:
        if calibration_factor <= 0:
            raise ValueError(f"calibration_factor must be > 0, got {calibration_factor}")
        self.pin = pin
        self.calibration_factor = calibration_factor
        self._settle = settle
        self._max_count = max_count

    @property
    def sensor_id(self) -> str:
        return f"light_pin{self.pin.number}"

    def measure_once(self) -> int:
        return measure_once(self.pin, self._settle, self._max_count)

    def sample_averaged(self, attempts: int = 10) -> SampleResult:
        values: list[int] = []
        errors: list[str] = []
        for i in range(attempts):
            try:
                values.append(self.measure_once())
            except SamplingError as e:
                logger.debug("Light attempt %d/%d failed: %s", i + 1, attempts, e)
                errors.append(str(e))

        value = average_nonzero(values) // self.calibration_factor

        if not values:
            return SampleResult(0, f"All {attempts} attempts failed. Errors: {'; '.join(errors)}")
        if value == 0:
            return SampleResult(0, "Average is zero")
        if errors:
            return SampleResult(
                value,
                f"{len(errors)}/{attempts} attempts failed. Errors: {'; '.join(errors)}",
            )
        return SampleResult(value)
