from __future__ import annotations
from datetime import date, datetime
from typing import Protocol, runtime_checkable
from .models import Level, LightReading, MoveEvent, Position, Mode


@runtime_checkable
class Pin(Protocol):
    """A single GPIO pin."""

    number: int

    def set_output(self) -> None:
        ...

    def set_input(self) -> None:
        ...

    def set_low(self) -> None:
        ...

    def set_high(self) -> None:
        ...

    def read(self) -> Level:
        ...


@runtime_checkable
class SunCalculator(Protocol):
    def sunrise_sunset(self, day: date) -> tuple[datetime, datetime]:
        """Raise SunTimeError when the day has no sunrise or sunset."""
        ...


@runtime_checkable
class Notifier(Protocol):
    async def notify(self, subject: str, body: str) -> None:
        ...


@runtime_checkable
class Repository(Protocol):
    async def init(self) -> None:
        ...

    async def insert_reading(self, reading: LightReading) -> None:
        ...

    async def insert_move(self, event: MoveEvent) -> None:
        ...

    async def save_shade_state(self, shade_id: str, mode: Mode, position: Position) -> None:
        ...

    async def query_readings(self, start_ts: str, end_ts: str, limit: int) -> list[LightReading]:
        ...

    async def query_moves(self, start_ts: str, end_ts: str, limit: int) -> list[MoveEvent]:
        ...
