"""
Minimal change-notification primitive.

Models emit signals; renderers connect to them. Emission is synchronous and
happens in the consumer context only.
"""

from __future__ import annotations

from typing import Any, Callable, List


class Signal:
    def __init__(self) -> None:
        self._slots: List[Callable[..., Any]] = []

    def connect(self, slot: Callable[..., Any]) -> None:
        if slot not in self._slots:
            self._slots.append(slot)

    def disconnect(self, slot: Callable[..., Any]) -> None:
        if slot in self._slots:
            self._slots.remove(slot)

    def emit(self, *args: Any) -> None:
        for slot in list(self._slots):
            slot(*args)

    def __len__(self) -> int:
        return len(self._slots)
