"""Deterministic cache-key derivation.

A key is built from an operation prefix and a mapping of named fields.
Fields whose value is ``None`` are dropped and the rest are serialised as
canonical JSON with sorted names, mirroring how a request is identified by
its *effective* parameters:

>>> make_cache_key("customers", {"page": 2, "email": None})
'customers:{"page":2}'
>>> make_cache_key("nps_score", {})
'nps_score'

The prefix always comes first so that a regular expression such as
``^customer`` selects every key belonging to one resource.
"""

from __future__ import annotations

import json
from typing import Any, Mapping


def make_cache_key(prefix: str, fields: Mapping[str, Any]) -> str:
    """Build the cache key for *prefix* and *fields*.

    Args:
        prefix: Operation identifier, e.g. ``"feedback"``.
        fields: Field name to value.  ``None`` values are omitted.

    Returns:
        ``prefix`` alone when no field has a value, otherwise
        ``prefix:<json>`` where ``<json>`` is the compact, key-sorted JSON of
        the defined fields.
    """
    defined = {name: value for name, value in fields.items() if value is not None}
    if not defined:
        return prefix
    return f"{prefix}:{json.dumps(defined, sort_keys=True, separators=(',', ':'), default=str)}"
