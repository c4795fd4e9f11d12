"""
Clock — источник текущего времени (Unix seconds).

Ledger никогда не кэширует время: каждая проверка listing/antibot читает
clock заново.
"""

import time


class SystemClock:
    """Wall-clock время процесса."""

    def __call__(self) -> int:
        return int(time.time())


class ManualClock:
    """Управляемое время для тестов и симуляций."""

    def __init__(self, now: int = 0):
        if now < 0:
            raise ValueError(f"now must be non-negative, got {now}")
        self._now = now

    def __call__(self) -> int:
        return self._now

    @property
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Сдвиг времени вперёд. Время не может идти назад."""
        if seconds < 0:
            raise ValueError(f"seconds must be non-negative, got {seconds}")
        self._now += seconds
        return self._now

    def set(self, now: int) -> None:
        if now < self._now:
            raise ValueError(f"clock cannot move backwards: {now} < {self._now}")
        self._now = now
