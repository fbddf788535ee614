"""
Bounded index into the list of candidate schedules.

No wraparound: stepping past either end is a no-op, and so is any
navigation while the cursor is unset. Every operation that changes state
emits `changed` exactly once with the new index (or None when the cursor
becomes unset).
"""

from __future__ import annotations

from typing import Optional

from ttime.errors import NoCurrentSchedule
from ttime.signals import Signal

JUMP = 10


class ScheduleCursor:
    def __init__(self) -> None:
        self._total = 0
        self._current: Optional[int] = None
        self.changed = Signal()

    @property
    def total(self) -> int:
        return self._total

    @property
    def is_set(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> int:
        if self._current is None:
            raise NoCurrentSchedule()
        return self._current

    def set_total(self, n: int) -> None:
        self._total = max(0, int(n))
        self._current = 0 if self._total > 0 else None
        self.changed.emit(self._current)

    def set(self, i: int) -> None:
        if self._current is None:
            return
        target = min(max(int(i), 0), self._total - 1)
        if target == self._current:
            return
        self._current = target
        self.changed.emit(self._current)

    def step(self, delta: int) -> None:
        if self._current is None:
            return
        self.set(self._current + delta)

    def next(self) -> None:
        self.step(1)

    def prev(self) -> None:
        self.step(-1)

    def jump(self, delta: int = JUMP) -> None:
        self.step(delta)

    def position_label(self) -> str:
        if self._current is None:
            return f"- of {self._total}"
        return f"{self._current + 1} of {self._total}"
