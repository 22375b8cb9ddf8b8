"""HTTP client layer for retently-cli.

Classes:
    :class:`HttpExecutor` -- one authenticated request per call, with a
    deadline, rate-limit header tracking and typed error mapping.
    :class:`RetentlyClient` -- one coroutine per Retently API operation,
    reading through a :class:`~retently_cli.cache.TTLCache`.

Both are async context managers.

Example::

    from retently_cli.client import RetentlyClient

    async with RetentlyClient(api_key) as client:
        nps = await client.get_nps_score()
"""

from retently_cli.client.http import HttpExecutor
from retently_cli.client.retently import RetentlyClient

__all__ = ["HttpExecutor", "RetentlyClient"]
