"""Bounded, thread-safe memoizer with write-based expiry and single-flight loads.

``LoadingCache`` maps a key to the value produced by a loader callable:

- Entries expire a fixed number of seconds after they were *written*;
  reading an entry does not extend its lifetime.
- Once the cache holds more than ``max_size`` entries the least recently
  used ones are evicted.
- At most one load per key is in flight. Concurrent callers for the same
  key wait for the leading caller and receive its value or its exception.
- A failed load is never stored, so the next ``get`` for that key retries.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
import logging
import threading
import time
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    loads: int = 0
    load_failures: int = 0
    evictions: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "loads": self.loads,
            "load_failures": self.load_failures,
            "evictions": self.evictions,
        }


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    written_at: float


class _Flight:
    """One in-progress load that other callers can wait on."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None

    def resolve(self, value: Any) -> None:
        self.value = value
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._done.set()

    def wait(self) -> Any:
        self._done.wait()
        if self.error is not None:
            raise self.error
        return self.value


class LoadingCache(Generic[K, V]):
    def __init__(
        self,
        loader: Callable[[K], V],
        *,
        max_size: int,
        expire_after_write: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if expire_after_write <= 0:
            raise ValueError(
                f"expire_after_write must be positive, got {expire_after_write}"
            )
        self._loader = loader
        self.max_size = max_size
        self.expire_after_write = expire_after_write
        self.name = name
        self._clock = clock

        self._lock = threading.Lock()
        self._entries: OrderedDict[K, _Entry[V]] = OrderedDict()
        self._flights: dict[K, _Flight] = {}
        self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry)

    def get(self, key: K) -> V:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if not self._is_expired(entry):
                    self._entries.move_to_end(key)
                    self._stats.hits += 1
                    return entry.value
                del self._entries[key]

            self._stats.misses += 1
            flight = self._flights.get(key)
            leader = flight is None
            if flight is None:
                flight = _Flight()
                self._flights[key] = flight

        if not leader:
            logger.debug("%s: waiting on in-flight load for %r", self.name, key)
            return flight.wait()

        return self._load(key, flight)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(**self._stats.as_dict())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, key: K, flight: _Flight) -> V:
        try:
            value = self._loader(key)
        except BaseException as exc:
            with self._lock:
                self._flights.pop(key, None)
                self._stats.load_failures += 1
            logger.debug("%s: load failed for %r: %s", self.name, key, exc)
            flight.fail(exc)
            raise

        with self._lock:
            self._flights.pop(key, None)
            self._stats.loads += 1
            self._entries[key] = _Entry(value=value, written_at=self._clock())
            self._entries.move_to_end(key)
            self._evict_over_capacity()

        flight.resolve(value)
        return value

    def _is_expired(self, entry: _Entry[V]) -> bool:
        return self._clock() - entry.written_at >= self.expire_after_write

    def _purge_expired(self) -> None:
        expired = [k for k, e in self._entries.items() if self._is_expired(e)]
        for key in expired:
            del self._entries[key]

    def _evict_over_capacity(self) -> None:
        while len(self._entries) > self.max_size:
            key, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            logger.debug("%s: evicted %r", self.name, key)
