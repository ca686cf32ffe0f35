"""Short-lived in-memory cache for poll query results.

Absorbs duplicate queries issued within one refresh interval. Nothing
depends on it for correctness: a miss just means the tool is invoked again.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

from .event_log import TRACE

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shorter than the default refresh interval so every automatic cycle sees fresh data
DEFAULT_TTL = 4.0


class _Miss:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


class TTLCache:
    """Key -> value mapping whose entries expire a fixed time after being set.

    Keys are tuples such as ("owner/repo", "runs") or
    ("owner/repo", "jobs", run_id). Expired entries are evicted lazily when
    they are next looked up.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or MISS if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return MISS
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for key, or await fetch() and cache its result.

        Exceptions from fetch propagate and nothing is cached.
        """
        value = self.get(key)
        if value is not MISS:
            logger.log(TRACE, "cache hit %s", key)
            return value
        value = await fetch()
        self.set(key, value)
        return value
