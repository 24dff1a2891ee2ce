from __future__ import annotations
from typing import Iterator


class LightHistory:
    """Bounded light samples, most recent first."""

    def __init__(self, values: list[int] | None = None) -> None:
        self._data: list[int] = list(values or [])

    def push(self, value: int, capacity: int) -> None:
        self._data.insert(0, int(value))
        if len(self._data) > capacity:
            del self._data[capacity:]

    def reset(self) -> None:
        self._data.clear()

    def sufficient_for(self, n: int) -> bool:
        return len(self._data) >= n

    def snapshot(self) -> list[int]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, i):
        return self._data[i]

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def __repr__(self) -> str:
        return f"LightHistory({self._data!r})"
