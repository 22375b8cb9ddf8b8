"""Cache policy table for the read operations of the Retently API.

Each read operation has exactly one :class:`CachePolicy` row stating which
named fields identify a request, how long a response stays fresh, and which
fields force a bypass.  Keys are built only from the declared fields, so an
argument that is not part of a row can never leak into (or be silently left
out of) a key.

Write operations are not cached.  The patterns and keys they invalidate are
defined next to the table so the whole caching contract lives in one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from retently_cli.cache import (
    FIFTEEN_MINUTES,
    FIVE_MINUTES,
    HOUR,
    MINUTE,
    TWO_MINUTES,
    make_cache_key,
)


@dataclass(frozen=True)
class CachePolicy:
    """Key derivation, TTL and bypass rule for one read operation.

    Attributes:
        prefix: Key prefix naming the operation.
        ttl: Freshness window in seconds.
        fields: Names of the parameters that identify a request.
        bypass_fields: Parameters that, when set, skip the cache entirely.
    """

    prefix: str
    ttl: float
    fields: tuple[str, ...] = ()
    bypass_fields: tuple[str, ...] = ()

    def cache_key(self, **values: Any) -> str:
        """Build the key for *values*.

        Raises:
            KeyError: If a value is passed for a field the policy does not
                declare.
        """
        unknown = set(values) - set(self.fields)
        if unknown:
            raise KeyError(
                f"Undeclared cache key field(s) for {self.prefix!r}: {sorted(unknown)}"
            )
        return make_cache_key(self.prefix, {name: values.get(name) for name in self.fields})

    def bypasses(self, **values: Any) -> bool:
        """Return ``True`` if any bypass field is set to a non-empty value."""
        return any(bool(values.get(name)) for name in self.bypass_fields)


LIST_CUSTOMERS = CachePolicy("customers", FIVE_MINUTES, ("page", "per_page", "email"))
GET_CUSTOMER = CachePolicy("customer", MINUTE, ("id",))

# Polling with ``since`` must always see fresh data.
LIST_FEEDBACK = CachePolicy(
    "feedback",
    TWO_MINUTES,
    ("page", "per_page", "campaign_id", "since", "until", "sort"),
    bypass_fields=("since",),
)
GET_FEEDBACK = CachePolicy("feedback_detail", MINUTE, ("id",))

NPS_SCORE = CachePolicy("nps_score", HOUR)
CSAT_SCORE = CachePolicy("csat_score", HOUR)
CES_SCORE = CachePolicy("ces_score", HOUR)

LIST_CAMPAIGNS = CachePolicy("campaigns", FIFTEEN_MINUTES, ("limit",))
LIST_COMPANIES = CachePolicy("companies", FIFTEEN_MINUTES, ("page", "per_page"))

# Dropped after create-customers / delete-customer: every listing and detail.
CUSTOMER_KEYS = re.compile(r"^customer")
