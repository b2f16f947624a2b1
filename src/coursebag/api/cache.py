"""In-memory cache for GET responses."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger


@dataclass
class CacheEntry:
    """A cached payload and the clock reading at which it was stored."""

    payload: Any
    timestamp: float

    def age(self, now: float) -> float:
        return now - self.timestamp


class ResponseCache:
    """Maps `(endpoint, requires_auth)` to the last successful GET payload.

    Entries are never evicted eagerly; an entry older than the TTL the caller
    asks for is treated as a miss and overwritten on the next store.

    Attributes:
        clock: Monotonic time source in seconds. Injected by tests.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        self.clock = clock if clock is not None else time.monotonic
        self._entries: dict[tuple[str, bool], CacheEntry] = {}

    def get(self, endpoint: str, requires_auth: bool, ttl: float) -> Any | None:
        """Return the cached payload if it is younger than `ttl`, else None."""
        entry = self._entries.get((endpoint, requires_auth))
        if entry is None:
            return None
        if entry.age(self.clock()) >= ttl:
            logger.debug(f"Cache entry for {endpoint} expired")
            return None
        logger.debug(f"Using cached response for {endpoint}")
        return entry.payload

    def put(self, endpoint: str, requires_auth: bool, payload: Any) -> None:
        self._entries[(endpoint, requires_auth)] = CacheEntry(payload=payload, timestamp=self.clock())
        logger.debug(f"Cached response for {endpoint}")

    def invalidate(self, endpoint: str) -> None:
        """Drop both the authenticated and anonymous entries for an endpoint."""
        for key in [(endpoint, True), (endpoint, False)]:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, bool]) -> bool:
        return key in self._entries


# Shared by every ApiClient that is not given its own cache, so responses
# survive for the lifetime of the process like the browser's page session.
default_cache = ResponseCache()
