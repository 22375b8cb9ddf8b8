"""Async client for the Retently REST API v2.

:class:`RetentlyClient` exposes one coroutine per API operation.  Read
operations go through the instance's :class:`~retently_cli.cache.TTLCache`
according to the rows of :mod:`retently_cli.client.policy`; write operations
always hit the network and invalidate the cache entries they make stale.

The client owns its cache and its :class:`~retently_cli.client.http.HttpExecutor`
(and with it the rate-limit snapshot), so two clients never share state.

Example::

    async with RetentlyClient(api_key) as client:
        page = await client.list_feedback(per_page=50, sort="desc")
        result = await client.add_feedback_tags("fb_123", ["billing"])
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

import httpx

from retently_cli.cache import TTLCache
from retently_cli.client import policy
from retently_cli.client.http import DEFAULT_TIMEOUT_MS, HttpExecutor
from retently_cli.exceptions import RetentlyError
from retently_cli.models import (
    DEFAULT_BASE_URL,
    BulkEntryResult,
    BulkResult,
    CacheStats,
    RateLimitInfo,
    Settings,
    WriteResult,
)
from retently_cli.output import debug, warning

BULK_CHUNK_SIZE = 1000

READ_OPERATIONS = [
    "list-customers",
    "get-customer",
    "list-feedback",
    "get-feedback",
    "get-nps-score",
    "get-csat-score",
    "get-ces-score",
    "list-campaigns",
    "list-companies",
    "api-status",
    "list-tools",
    "cache-stats",
    "cache-clear",
    "cache-invalidate",
]

WRITE_OPERATIONS = [
    "create-customers",
    "delete-customer",
    "send-survey",
    "add-tags",
]


def dedupe_customers(customers: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Drop customers without an email and repeated emails (case-insensitive).

    The first occurrence of each email wins and input order is preserved.
    """
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for customer in customers:
        email = customer.get("email")
        if not email:
            continue
        folded = str(email).lower()
        if folded in seen:
            continue
        seen.add(folded)
        unique.append(dict(customer))
    return unique


class RetentlyClient:
    """Cached client for customers, feedback, scores, campaigns and companies.

    Args:
        api_key: Retently API key.
        base_url: API root URL.
        timeout_ms: Total deadline per request in milliseconds.
        verify_ssl: Verify TLS certificates.
        cache: Cache instance to use.  A fresh :class:`TTLCache` is created
            when omitted.
        transport: Optional httpx transport, forwarded to the executor.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        verify_ssl: bool = True,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._cache = cache if cache is not None else TTLCache()
        self._executor = HttpExecutor(
            api_key,
            base_url=base_url,
            timeout_ms=timeout_ms,
            verify_ssl=verify_ssl,
            transport=transport,
        )
        self._base_url = base_url

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> RetentlyClient:
        """Build a client from resolved :class:`~retently_cli.models.Settings`."""
        return cls(
            api_key,
            base_url=settings.base_url,
            timeout_ms=settings.request.timeout_ms,
            verify_ssl=settings.request.verify_ssl,
            cache=TTLCache(enabled=settings.cache.enabled),
            transport=transport,
        )

    async def __aenter__(self) -> RetentlyClient:
        await self._executor.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._executor.__aexit__(*args)

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------ #
    # Cache control
    # ------------------------------------------------------------------ #

    def disable_cache(self) -> None:
        """Bypass the cache for all subsequent reads (stored entries are kept)."""
        self._cache.disable()

    def enable_cache(self) -> None:
        self._cache.enable()

    def get_cache_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def clear_cache(self) -> int:
        """Drop every cached response.  Returns the number of entries removed."""
        return self._cache.clear()

    def invalidate_cache_key(self, key: str) -> bool:
        return self._cache.invalidate(key)

    def invalidate_cache_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Drop every cached response whose key matches *pattern*."""
        return self._cache.invalidate_pattern(pattern)

    def get_rate_limit_info(self) -> RateLimitInfo:
        """Rate-limit snapshot from the last API response (a copy)."""
        return self._executor.rate_limit

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _cached(
        self,
        rule: policy.CachePolicy,
        fetch: Callable[[], Awaitable[Any]],
        **fields: Any,
    ) -> Any:
        return await self._cache.get_or_fetch(
            rule.cache_key(**fields),
            fetch,
            ttl=rule.ttl,
            bypass_cache=rule.bypasses(**fields),
        )

    # ------------------------------------------------------------------ #
    # Customers
    # ------------------------------------------------------------------ #

    async def list_customers(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        email: Optional[str] = None,
    ) -> Any:
        """List customers, optionally filtered by email.  Cached for 5 minutes."""
        return await self._cached(
            policy.LIST_CUSTOMERS,
            lambda: self._executor.request(
                "/customers",
                params={"page": page, "per_page": per_page, "email": email or None},
            ),
            page=page,
            per_page=per_page,
            email=email,
        )

    async def get_customer(self, customer_id: str) -> Any:
        """Fetch one customer by ID.  Cached for 1 minute."""
        return await self._cached(
            policy.GET_CUSTOMER,
            lambda: self._executor.request(f"/customers/{customer_id}"),
            id=customer_id,
        )

    async def create_customers(self, customers: Iterable[Mapping[str, Any]]) -> BulkResult:
        """Create or update customers in chunks of :data:`BULK_CHUNK_SIZE`.

        Customers are de-duplicated by email first (see
        :func:`dedupe_customers`).  Chunks are submitted one after another;
        a failing chunk marks each of its customers as failed and the next
        chunk is still sent.  Customer cache entries are invalidated
        afterwards.

        Returns:
            A :class:`~retently_cli.models.BulkResult` with one entry per
            submitted customer.
        """
        unique = dedupe_customers(customers)
        results: list[BulkEntryResult] = []
        success_count = 0
        error_count = 0

        for start in range(0, len(unique), BULK_CHUNK_SIZE):
            chunk = unique[start:start + BULK_CHUNK_SIZE]
            try:
                await self._executor.request(
                    "/customers", method="POST", json_body={"customers": chunk}
                )
            except RetentlyError as exc:
                debug(f"Customer chunk at offset {start} failed: {exc}")
                results.extend(
                    BulkEntryResult(email=str(c["email"]), success=False, error=str(exc))
                    for c in chunk
                )
                error_count += len(chunk)
            else:
                results.extend(BulkEntryResult(email=str(c["email"]), success=True) for c in chunk)
                success_count += len(chunk)

        self._cache.invalidate_pattern(policy.CUSTOMER_KEYS)
        if error_count:
            warning(f"{error_count} of {len(unique)} customers were not created")

        return BulkResult(
            action="create-customers",
            success_count=success_count,
            error_count=error_count,
            results=results,
        )

    async def delete_customer(self, email: str) -> WriteResult:
        """Delete a customer by email and drop customer cache entries."""
        await self._executor.request("/customers", method="DELETE", json_body={"email": email})
        self._cache.invalidate_pattern(policy.CUSTOMER_KEYS)
        return WriteResult(action="delete-customer", deleted=True)

    # ------------------------------------------------------------------ #
    # Feedback
    # ------------------------------------------------------------------ #

    async def list_feedback(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        campaign_id: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Any:
        """List survey responses.

        Cached for 2 minutes, except when *since* is given: polling for new
        responses always goes to the network.

        Args:
            since: Only responses created after this ISO 8601 date.
            until: Only responses created before this ISO 8601 date.
            sort: ``"asc"`` or ``"desc"``.
        """
        return await self._cached(
            policy.LIST_FEEDBACK,
            lambda: self._executor.request(
                "/feedback",
                params={
                    "page": page,
                    "per_page": per_page,
                    "campaign_id": campaign_id,
                    "created_after": since,
                    "created_before": until,
                    "sort": sort,
                },
            ),
            page=page,
            per_page=per_page,
            campaign_id=campaign_id,
            since=since,
            until=until,
            sort=sort,
        )

    async def get_feedback(self, feedback_id: str) -> Any:
        """Fetch one survey response by ID.  Cached for 1 minute."""
        return await self._cached(
            policy.GET_FEEDBACK,
            lambda: self._executor.request(f"/feedback/{feedback_id}"),
            id=feedback_id,
        )

    # ------------------------------------------------------------------ #
    # Scores
    # ------------------------------------------------------------------ #

    async def get_nps_score(self) -> Any:
        """Net Promoter Score (-100..100) with promoter/passive/detractor counts."""
        return await self._cached(policy.NPS_SCORE, lambda: self._executor.request("/nps/score"))

    async def get_csat_score(self) -> Any:
        return await self._cached(policy.CSAT_SCORE, lambda: self._executor.request("/csat/score"))

    async def get_ces_score(self) -> Any:
        return await self._cached(policy.CES_SCORE, lambda: self._executor.request("/ces/score"))

    # ------------------------------------------------------------------ #
    # Campaigns and companies
    # ------------------------------------------------------------------ #

    async def list_campaigns(self, limit: Optional[int] = None) -> Any:
        """List survey campaigns.  Cached for 15 minutes."""
        return await self._cached(
            policy.LIST_CAMPAIGNS,
            lambda: self._executor.request("/campaigns", params={"per_page": limit}),
            limit=limit,
        )

    async def list_companies(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Any:
        """List companies with aggregated NPS/CSAT scores.  Cached for 15 minutes."""
        return await self._cached(
            policy.LIST_COMPANIES,
            lambda: self._executor.request(
                "/companies", params={"page": page, "per_page": per_page}
            ),
            page=page,
            per_page=per_page,
        )

    # ------------------------------------------------------------------ #
    # Surveys and tags
    # ------------------------------------------------------------------ #

    async def send_survey(
        self,
        email: str,
        campaign_id: str,
        delay_days: Optional[int] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> WriteResult:
        """Queue a transactional survey for *email*.  Nothing is invalidated."""
        body = {
            "email": email,
            "campaign_id": campaign_id,
            "delay": delay_days,
            "properties": dict(properties) if properties is not None else None,
        }
        await self._executor.request(
            "/survey",
            method="POST",
            json_body={k: v for k, v in body.items() if v is not None},
        )
        return WriteResult(action="send-survey", queued=True)

    async def add_feedback_tags(self, feedback_id: str, tags: list[str]) -> WriteResult:
        """Add *tags* to a survey response and drop its cached detail."""
        await self._executor.request(
            "/response/tags",
            method="POST",
            json_body={"feedback_id": feedback_id, "tags": tags},
        )
        self._cache.invalidate(policy.GET_FEEDBACK.cache_key(id=feedback_id))
        return WriteResult(action="add-tags", added=True)

    # ------------------------------------------------------------------ #
    # Utility
    # ------------------------------------------------------------------ #

    @staticmethod
    def list_tools() -> list[str]:
        """Names of every CLI command backed by this client."""
        return [*READ_OPERATIONS, *WRITE_OPERATIONS]
