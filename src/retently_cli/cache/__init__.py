"""In-memory response caching for retently-cli.

This package provides :class:`TTLCache`, the cache engine shared by every
read operation of :class:`~retently_cli.client.RetentlyClient`, and
:func:`make_cache_key`, which turns an operation prefix plus its parameters
into a deterministic key.

Entries live for the lifetime of the process; nothing is written to disk.
"""

from retently_cli.cache.keys import make_cache_key
from retently_cli.cache.ttl_cache import (
    FIFTEEN_MINUTES,
    FIVE_MINUTES,
    HOUR,
    MINUTE,
    TWO_MINUTES,
    CacheEntry,
    TTLCache,
)

__all__ = [
    "TTLCache",
    "CacheEntry",
    "make_cache_key",
    "MINUTE",
    "TWO_MINUTES",
    "FIVE_MINUTES",
    "FIFTEEN_MINUTES",
    "HOUR",
]
