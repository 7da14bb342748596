"""Bounded in-memory result cache with per-entry expiry.

Entries expire after a fixed time-to-live and the store never holds more
than ``max_entries`` items; inserting into a full cache evicts expired
entries first and then the least recently used one.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from microapis.utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ResultCache:
    """Thread-safe TTL cache with LRU eviction.

    Args:
        ttl_seconds: Lifetime of each entry.
        max_entries: Maximum number of live entries.
        clock: Monotonic time source, replaceable in tests.
        name: Label used in log messages.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default`` on a miss."""
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, evicting if the cache is full."""
        with self._lock:
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._purge_expired(now)
                while len(self._entries) >= self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("%s: evicted %s", self.name, evicted)
            self._entries[key] = (value, now + self.ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, exp) in self._entries.items() if exp <= now]
        for key in expired:
            del self._entries[key]

    def __contains__(self, key: object) -> bool:
        return self.get(key, _MISSING) is not _MISSING  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)
