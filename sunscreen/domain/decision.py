from __future__ import annotations
import logging
from typing import Optional, Sequence, TYPE_CHECKING

from .errors import InsufficientHistoryError
from .models import LightSensorConfig, Position

if TYPE_CHECKING:
    from .actuator import ShadeActuator

logger = logging.getLogger(__name__)


def _count(data: Sequence[int], n: int, match) -> int:
    if len(data) < n:
        raise InsufficientHistoryError(f"Need {n} light values, have {len(data)}")
    return sum(1 for v in data[:n] if match(v))


def decide(position: Position, data: Sequence[int], cfg: LightSensorConfig) -> Optional[Position]:
    """Return the position the shade should move to, or None.

    `data` is most-recent-first. Up goes down after `times_good` values at or
    below `good`; down goes up after `times_bad` values at or above `bad`, or
    failing that `times_neutral` values at or above `neutral`. Each scan looks
    `allowed_outliers` values further back than its count.
    """
    outliers = cfg.allowed_outliers

    if position == Position.UP:
        n = _count(data, cfg.times_good + outliers, lambda v: v <= cfg.good)
        if n >= cfg.times_good:
            logger.info("Good weather: %d/%d values <= %d", n, cfg.times_good + outliers, cfg.good)
            return Position.DOWN
        return None

    if position == Position.DOWN:
        n = _count(data, cfg.times_bad + outliers, lambda v: v >= cfg.bad)
        if n >= cfg.times_bad:
            logger.info("Bad weather: %d/%d values >= %d", n, cfg.times_bad + outliers, cfg.bad)
            return Position.UP
        n = _count(data, cfg.times_neutral + outliers, lambda v: v >= cfg.neutral)
        if n >= cfg.times_neutral:
            logger.info("Neutral weather: %d/%d values >= %d", n, cfg.times_neutral + outliers, cfg.neutral)
            return Position.UP
        return None

    return None


class DecisionEngine:
    """Applies `decide` to a shade, at most one move per call."""

    async def evaluate(
        self,
        actuator: "ShadeActuator",
        data: Sequence[int],
        cfg: LightSensorConfig,
    ) -> Optional[Position]:
        target = decide(actuator.position, data, cfg)
        if target is None:
            logger.debug("decision: NOOP (position=%s)", actuator.position.value)
            return None

        logger.info("decision: move %s from %s", target.value, actuator.position.value)
        light = list(data)
        if target == Position.DOWN:
            await actuator.down(light)
        else:
            await actuator.up(light)
        return target
