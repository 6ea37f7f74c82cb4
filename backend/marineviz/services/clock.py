from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Protocol

MANUAL_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def now(self) -> datetime: ...


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to. Used by cache tests and tooling.

    Wall time starts at `wall_start` and advances together with the monotonic reading.
    """

    def __init__(self, start: float = 0.0, *, wall_start: datetime = MANUAL_EPOCH) -> None:
        self._now = float(start)
        self._start = float(start)
        self._wall_start = wall_start
        self._lock = threading.Lock()

    def monotonic(self) -> float:
        with self._lock:
            return self._now

    def now(self) -> datetime:
        with self._lock:
            return self._wall_start + timedelta(seconds=self._now - self._start)

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += float(seconds)
