from __future__ import annotations
import asyncio
import logging
import time
from datetime import timedelta
from typing import Callable, Optional, Sequence

from ..core.timeutil import now_utc
from .interfaces import Notifier, Pin, Repository
from .models import Mode, MoveEvent, Position

logger = logging.getLogger(__name__)


class ShadeActuator:
    """Drives the up/down relay pins of one shade.

    The relays are active low: a pin is pulled low for the move duration and
    released high afterwards. Only one move runs at a time; the lock is held
    for the whole duration, including the wait.
    """

    def __init__(
        self,
        shade_id: str,
        pin_up: Pin,
        pin_down: Pin,
        duration_up: timedelta,
        duration_down: timedelta,
        position: Position = Position.UNKNOWN,
        notifier: Optional[Notifier] = None,
        repo: Optional[Repository] = None,
        mode_of: Optional[Callable[[], Mode]] = None,
        tick: float = 1.0,
    ) -> None:
        self.shade_id = shade_id
        self.duration_up = duration_up
        self.duration_down = duration_down
        self._pin_up = pin_up
        self._pin_down = pin_down
        self._position = Position.UNKNOWN if position == Position.MOVING else position
        self._notifier = notifier
        self._repo = repo
        self._mode_of = mode_of or (lambda: Mode.MANUAL)
        self._tick = tick
        self._lock = asyncio.Lock()

    @property
    def position(self) -> Position:
        return self._position

    @property
    def moving(self) -> bool:
        return self._lock.locked()

    def init_pins(self) -> None:
        for pin in (self._pin_up, self._pin_down):
            pin.set_output()
            pin.set_high()

    def release(self) -> None:
        for pin in (self._pin_up, self._pin_down):
            pin.set_high()

    async def rebind(self, pin_up: Pin, pin_down: Pin, duration_up: timedelta, duration_down: timedelta) -> None:
        """Swap pins/durations after a config change, never during a move."""
        async with self._lock:
            if pin_up is not self._pin_up or pin_down is not self._pin_down:
                self.release()
                self._pin_up, self._pin_down = pin_up, pin_down
                self.init_pins()
            self.duration_up = duration_up
            self.duration_down = duration_down

    async def up(self, light: Sequence[int] = ()) -> bool:
        if self._position == Position.UP:
            return False
        return await self.move(light)

    async def down(self, light: Sequence[int] = ()) -> bool:
        if self._position == Position.DOWN:
            return False
        return await self.move(light)

    async def move(self, light: Sequence[int] = ()) -> bool:
        """Move to the other position. Returns False if a move is in progress."""
        if self._lock.locked():
            logger.info("Shade %s is moving already, do nothing", self.shade_id)
            return False

        async with self._lock:
            old = self._position
            if old in (Position.UNKNOWN, Position.DOWN):
                new, pin, duration = Position.UP, self._pin_up, self.duration_up
            elif old == Position.UP:
                new, pin, duration = Position.DOWN, self._pin_down, self.duration_down
            else:
                raise RuntimeError(f"Unknown shade position: {old!r}")

            logger.info("Moving shade %s from %s to %s", self.shade_id, old.value, new.value)
            self._position = Position.MOVING
            try:
                await self._hold_low(pin, duration)
            except BaseException:
                self._position = Position.UNKNOWN
                raise
            self._position = new

        await self._after_move(old, new, list(light))
        return True

    async def _hold_low(self, pin: Pin, duration: timedelta) -> None:
        pin.set_low()
        try:
            end = time.monotonic() + duration.total_seconds()
            while time.monotonic() < end:
                await asyncio.sleep(self._tick)
        finally:
            pin.set_high()

    async def _after_move(self, old: Position, new: Position, light: list[int]) -> None:
        mode = self._mode_of()
        if self._notifier is not None:
            try:
                await self._notifier.notify(
                    f"Moved sunscreen {new.value}",
                    f"Sunscreen moved from {old.value} to {new.value}. Light: {light}",
                )
            except Exception:
                logger.warning("Notification for shade %s failed", self.shade_id, exc_info=True)

        if self._repo is not None:
            try:
                await self._repo.insert_move(
                    MoveEvent(
                        ts_utc=now_utc(),
                        shade_id=self.shade_id,
                        mode=mode,
                        old_position=old,
                        new_position=new,
                        light=light,
                    )
                )
                await self._repo.save_shade_state(self.shade_id, mode, new)
            except Exception:
                logger.warning("Storing move of shade %s failed", self.shade_id, exc_info=True)
