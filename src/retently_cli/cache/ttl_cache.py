"""In-memory TTL cache for API responses.

:class:`TTLCache` memoises the result of an asynchronous fetch per cache key
for a configurable time-to-live.  It knows nothing about HTTP: the caller
hands :meth:`TTLCache.get_or_fetch` a zero-argument callable returning an
awaitable, and the cache decides whether to await it.

Lifetime of the stored entries is the lifetime of the cache object, i.e. the
process.  Failed fetches are never cached.

Identical lookups that miss concurrently each await their own fetch; only the
result is cached, not the in-flight call.

See Also:
    :mod:`retently_cli.cache.keys` -- deterministic key derivation.
    :mod:`retently_cli.client.policy` -- per-operation TTL and key fields.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from retently_cli.models import CacheStats
from retently_cli.output import debug

T = TypeVar("T")

# TTLs in seconds
MINUTE = 60
TWO_MINUTES = 2 * MINUTE
FIVE_MINUTES = 5 * MINUTE
FIFTEEN_MINUTES = 15 * MINUTE
HOUR = 60 * MINUTE


@dataclass
class CacheEntry:
    """A stored value and the clock reading after which it is stale."""

    value: Any
    expires_at: float


class TTLCache:
    """Key/value store with per-entry expiry and hit/miss accounting.

    Args:
        enabled: Initial state of the global switch.  A disabled cache
            passes every call straight through to the fetch function but
            keeps whatever it already stores.
        clock: Monotonic time source in seconds.  Tests inject a fake
            clock to step over TTL boundaries.

    Example::

        cache = TTLCache()
        scores = await cache.get_or_fetch(
            "nps_score", lambda: executor.request("/nps/score"), ttl=HOUR
        )
    """

    def __init__(
        self,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._enabled = enabled
        self._clock = clock
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        ttl: float,
        bypass_cache: bool = False,
    ) -> T:
        """Return the cached value for *key*, or await *fetch* and cache its result.

        Args:
            key: Cache key (see :func:`~retently_cli.cache.keys.make_cache_key`).
            fetch: Zero-argument callable producing an awaitable result.
            ttl: Time-to-live in seconds for a freshly fetched value.
            bypass_cache: When ``True`` the cache is neither read nor
                written for this call.

        Returns:
            The fresh cached value or the result of *fetch*.

        Raises:
            Exception: Whatever *fetch* raises, unchanged.  Nothing is stored
                in that case.
        """
        if bypass_cache or not self._enabled:
            return await fetch()

        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if now < entry.expires_at:
                self._hits += 1
                debug(f"Cache hit: {key}")
                return entry.value
            del self._entries[key]

        self._misses += 1
        debug(f"Cache miss: {key}")
        value = await fetch()
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        return value

    def invalidate(self, key: str) -> bool:
        """Remove one entry.  Returns ``True`` if it existed."""
        if key not in self._entries:
            return False
        del self._entries[key]
        return True

    def invalidate_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Remove every entry whose key matches *pattern* (``re.search`` semantics).

        Args:
            pattern: A regular expression string or compiled pattern, e.g.
                ``"^customer"`` to drop every customer listing and detail.

        Returns:
            The number of entries removed.
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        matched = [key for key in self._entries if regex.search(key)]
        for key in matched:
            del self._entries[key]
        if matched:
            debug(f"Invalidated {len(matched)} cache entries matching {regex.pattern!r}")
        return len(matched)

    def clear(self) -> int:
        """Remove all entries.  Returns how many there were."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def disable(self) -> None:
        self._enabled = False

    def enable(self) -> None:
        self._enabled = True

    def get_stats(self) -> CacheStats:
        """Return a snapshot of the counters.  Counters are not reset."""
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=len(self._entries),
            enabled=self._enabled,
        )
