"""In-process TTL caches with in-flight coalescing.

Entries expire by age and are evicted oldest-first (insertion order) when a cache
is over capacity. get_or_compute() runs at most one computation per key at a
time: concurrent callers for the same key wait on the leader's result. A leader
that raises leaves nothing behind, so waiting callers retry and one of them
becomes the next leader.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar

from ..config.settings import CacheConfig
from .clock import Clock, SystemClock

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: Hashable
    value: T
    created_at: float


class _Inflight:
    def __init__(self) -> None:
        self.event = threading.Event()
        self.value: Any = _MISSING


class TTLCache(Generic[T]):
    def __init__(
        self,
        name: str,
        *,
        ttl_seconds: float,
        max_entries: int,
        clock: Clock | None = None,
        inflight_wait_seconds: float = 30.0,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.name = name
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self.inflight_wait_seconds = float(inflight_wait_seconds)
        self._clock = clock or SystemClock()
        self._entries: dict[Hashable, CacheEntry[T]] = {}
        self._inflight: dict[Hashable, _Inflight] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def _get_locked(self, key: Hashable, now: float) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if self._expired(entry, now):
            self._entries.pop(key, None)
            return _MISSING
        return entry.value

    def _put_locked(self, key: Hashable, value: T, now: float) -> None:
        # re-inserting moves the key to the back of the eviction order
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, created_at=now)
        while len(self._entries) > self.max_entries:
            oldest_key = next(iter(self._entries))
            self._entries.pop(oldest_key, None)
            self.evictions += 1

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._get_locked(key, self._clock.monotonic())
            if value is _MISSING:
                self.misses += 1
                return default
            self.hits += 1
            return value

    def put(self, key: Hashable, value: T) -> None:
        with self._lock:
            self._put_locked(key, value, self._clock.monotonic())

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        with self._lock:
            now = self._clock.monotonic()
            expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in expired:
                self._entries.pop(key, None)
        if expired:
            logger.debug("Cache %s swept %d expired entries", self.name, len(expired))
        return len(expired)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        while True:
            with self._lock:
                value = self._get_locked(key, self._clock.monotonic())
                if value is not _MISSING:
                    self.hits += 1
                    return value
                inflight = self._inflight.get(key)
                is_leader = inflight is None
                if is_leader:
                    inflight = _Inflight()
                    self._inflight[key] = inflight
                    self.misses += 1

            assert inflight is not None
            if not is_leader:
                if not inflight.event.wait(timeout=self.inflight_wait_seconds):
                    logger.warning("Cache %s: timed out waiting for in-flight key %r; retrying", self.name, key)
                    continue
                if inflight.value is not _MISSING:
                    with self._lock:
                        self.hits += 1
                    return inflight.value
                # the leader failed; loop and try again, possibly as the new leader
                continue

            try:
                value = compute()
            except BaseException:
                with self._lock:
                    if self._inflight.get(key) is inflight:
                        self._inflight.pop(key, None)
                inflight.event.set()
                raise

            with self._lock:
                self._put_locked(key, value, self._clock.monotonic())
                if self._inflight.get(key) is inflight:
                    self._inflight.pop(key, None)
                inflight.value = value
            inflight.event.set()
            return value

    def stats(self) -> dict[str, int | float | str]:
        with self._lock:
            return {
                "name": self.name,
                "entries": len(self._entries),
                "inflight": len(self._inflight),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }


class CacheLayer:
    """The three pipeline caches plus their periodic sweep."""

    def __init__(self, config: CacheConfig | None = None, *, clock: Clock | None = None) -> None:
        self.config = config or CacheConfig()
        self._clock = clock or SystemClock()
        common = {
            "max_entries": self.config.max_entries,
            "clock": self._clock,
            "inflight_wait_seconds": self.config.inflight_wait_seconds,
        }
        self.samples: TTLCache[Any] = TTLCache("samples", ttl_seconds=self.config.stats_ttl_seconds, **common)
        self.legends: TTLCache[bytes] = TTLCache("legends", ttl_seconds=self.config.legend_ttl_seconds, **common)
        self.queries: TTLCache[Any] = TTLCache("queries", ttl_seconds=self.config.query_ttl_seconds, **common)
        self._last_sweep = self._clock.monotonic()
        self._sweep_lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()

    @property
    def caches(self) -> tuple[TTLCache[Any], ...]:
        return (self.samples, self.legends, self.queries)

    def sweep(self) -> int:
        removed = sum(cache.sweep() for cache in self.caches)
        with self._sweep_lock:
            self._last_sweep = self._clock.monotonic()
        return removed

    def maybe_sweep(self) -> bool:
        """Sweep when the interval has elapsed since the last sweep."""
        with self._sweep_lock:
            due = self._clock.monotonic() - self._last_sweep >= self.config.sweep_interval_seconds
        if due:
            self.sweep()
        return due

    def clear(self) -> None:
        for cache in self.caches:
            cache.clear()

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="marineviz-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout=timeout)
        self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.config.sweep_interval_seconds):
            try:
                removed = self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")
                continue
            if removed:
                logger.info("Cache sweep removed %d expired entries", removed)

    def stats(self) -> list[dict[str, int | float | str]]:
        return [cache.stats() for cache in self.caches]
