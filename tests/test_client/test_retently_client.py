"""Tests for the cached Retently client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from retently_cli.cache import TTLCache
from retently_cli.client import RetentlyClient
from retently_cli.client.retently import BULK_CHUNK_SIZE, dedupe_customers
from retently_cli.exceptions import NotFoundError, RateLimitedError
from retently_cli.models import Settings

API = "/api/v2"


def _json(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def _client(transport: httpx.MockTransport, **kwargs: Any) -> RetentlyClient:
    return RetentlyClient("key", transport=transport, **kwargs)


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


class TestReadCaching:
    async def test_identical_list_customers_served_from_cache(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/customers": _json({"data": [{"id": "c1"}]})})

        async with _client(transport) as client:
            first = await client.list_customers(page=1, per_page=20)
            second = await client.list_customers(per_page=20, page=1)
            stats = client.get_cache_stats()

        assert first == second == {"data": [{"id": "c1"}]}
        assert len(handler.calls("GET", f"{API}/customers")) == 1
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)

    async def test_different_params_are_cached_separately(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/customers": _json({"data": []})})

        async with _client(transport) as client:
            await client.list_customers(page=1)
            await client.list_customers(page=2)
            await client.list_customers(email="a@b.co")

        assert len(handler.requests) == 3
        assert dict(handler.requests[2].url.params) == {"email": "a@b.co"}

    async def test_list_feedback_with_since_always_fetches(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/feedback": _json({"data": []})})

        async with _client(transport) as client:
            await client.list_feedback(since="2024-05-01")
            await client.list_feedback(since="2024-05-01")
            stats = client.get_cache_stats()

        assert len(handler.requests) == 2
        assert stats.size == 0
        assert dict(handler.requests[0].url.params) == {"created_after": "2024-05-01"}

    async def test_list_feedback_query_mapping(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/feedback": _json({"data": []})})

        async with _client(transport) as client:
            await client.list_feedback(
                page=2, per_page=50, campaign_id="cmp", until="2024-06-01", sort="asc"
            )
            await client.list_feedback(
                page=2, per_page=50, campaign_id="cmp", until="2024-06-01", sort="asc"
            )

        assert len(handler.requests) == 1
        assert dict(handler.requests[0].url.params) == {
            "page": "2",
            "per_page": "50",
            "campaign_id": "cmp",
            "created_before": "2024-06-01",
            "sort": "asc",
        }

    @pytest.mark.parametrize(
        "method, path",
        [
            ("get_nps_score", "/nps/score"),
            ("get_csat_score", "/csat/score"),
            ("get_ces_score", "/ces/score"),
        ],
    )
    async def test_scores_cached(self, mock_api, method: str, path: str) -> None:
        handler, transport = mock_api({f"GET {API}{path}": _json({"score": 50})})

        async with _client(transport) as client:
            await getattr(client, method)()
            assert await getattr(client, method)() == {"score": 50}

        assert len(handler.requests) == 1

    async def test_campaign_limit_sent_as_per_page(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/campaigns": _json({"data": []})})

        async with _client(transport) as client:
            await client.list_campaigns(limit=5)

        assert dict(handler.requests[0].url.params) == {"per_page": "5"}

    async def test_errors_are_not_cached(self, mock_api) -> None:
        handler, transport = mock_api({})

        async with _client(transport) as client:
            for _ in range(2):
                with pytest.raises(NotFoundError):
                    await client.get_customer("missing")
            assert client.get_cache_stats().size == 0

        assert len(handler.requests) == 2

    async def test_disabled_cache_always_fetches(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/companies": _json({"data": []})})

        async with _client(transport) as client:
            client.disable_cache()
            await client.list_companies()
            await client.list_companies()
            assert client.get_cache_stats().enabled is False

        assert len(handler.requests) == 2

    async def test_clients_do_not_share_caches(self, mock_api) -> None:
        handler, transport = mock_api({f"GET {API}/nps/score": _json({"score": 1})})

        async with _client(transport) as a, _client(transport) as b:
            await a.get_nps_score()
            await b.get_nps_score()

        assert len(handler.requests) == 2


# ---------------------------------------------------------------------------
# Bulk create
# ---------------------------------------------------------------------------


class TestDedupeCustomers:
    def test_case_insensitive_first_wins(self) -> None:
        unique = dedupe_customers(
            [
                {"email": "Ada@Example.com", "first_name": "Ada"},
                {"email": "ada@example.com", "first_name": "Dup"},
                {"email": "bob@example.com"},
            ]
        )
        assert [c.get("first_name") for c in unique] == ["Ada", None]

    def test_entries_without_email_are_skipped(self) -> None:
        assert dedupe_customers([{"first_name": "x"}, {"email": ""}]) == []


class TestCreateCustomers:
    async def test_chunks_and_partial_failure(self, mock_api) -> None:
        calls = 0

        def create(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 2:
                return httpx.Response(500, text="server exploded")
            return _json({"ok": True})

        handler, transport = mock_api({f"POST {API}/customers": create})
        customers = [{"email": f"user{i}@example.com"} for i in range(1500)]

        async with _client(transport) as client:
            result = await client.create_customers(customers)

        assert [len(handler.body(i)["customers"]) for i in range(2)] == [BULK_CHUNK_SIZE, 500]
        assert result.write_operation is True
        assert result.success_count == 1000
        assert result.error_count == 500
        assert len(result.results) == 1500
        assert all(r.success for r in result.results[:1000])
        failed = result.results[1000]
        assert failed.success is False
        assert failed.email == "user1000@example.com"
        assert "500" in failed.error

    async def test_undecodable_chunk_is_reported_per_entry(self, mock_api, capfd) -> None:
        calls = 0

        def create(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 2:
                return httpx.Response(
                    200,
                    headers={"Content-Encoding": "gzip"},
                    stream=httpx.ByteStream(b"junk"),
                )
            return _json({"ok": True})

        _, transport = mock_api({f"POST {API}/customers": create})
        customers = [{"email": f"user{i}@example.com"} for i in range(1500)]

        async with _client(transport) as client:
            result = await client.create_customers(customers)

        assert calls == 2
        assert (result.success_count, result.error_count) == (1000, 500)
        assert all("Request failed for /customers" in r.error for r in result.results[1000:])
        assert "500 of 1500 customers were not created" in capfd.readouterr().err

    async def test_duplicates_sent_once(self, mock_api) -> None:
        handler, transport = mock_api({f"POST {API}/customers": _json({})})

        async with _client(transport) as client:
            result = await client.create_customers(
                [{"email": "a@x.io"}, {"email": "A@X.IO"}, {"name": "no email"}]
            )

        assert handler.body()["customers"] == [{"email": "a@x.io"}]
        assert result.success_count == 1
        assert result.error_count == 0

    async def test_empty_input_sends_nothing(self, mock_api) -> None:
        handler, transport = mock_api({})

        async with _client(transport) as client:
            result = await client.create_customers([])

        assert handler.requests == []
        assert result.results == []

    async def test_customer_cache_invalidated_even_on_failure(self, mock_api) -> None:
        handler, transport = mock_api(
            {
                f"GET {API}/customers": _json({"data": []}),
                f"GET {API}/customers/c1": _json({"id": "c1"}),
                f"GET {API}/companies": _json({"data": []}),
                f"POST {API}/customers": httpx.Response(500, text="down"),
            }
        )

        async with _client(transport) as client:
            await client.list_customers()
            await client.get_customer("c1")
            await client.list_companies()
            await client.create_customers([{"email": "a@x.io"}])
            assert client.get_cache_stats().size == 1

            await client.list_customers()

        assert len(handler.calls("GET", f"{API}/customers")) == 2


# ---------------------------------------------------------------------------
# Other writes
# ---------------------------------------------------------------------------


class TestWrites:
    async def test_delete_customer(self, mock_api) -> None:
        handler, transport = mock_api(
            {
                f"GET {API}/customers": _json({"data": []}),
                f"DELETE {API}/customers": httpx.Response(200, json={"ok": True}),
            }
        )

        async with _client(transport) as client:
            await client.list_customers(email="a@x.io")
            result = await client.delete_customer("a@x.io")
            assert client.get_cache_stats().size == 0

        assert handler.body()["email"] == "a@x.io"
        dumped = result.model_dump()
        assert dumped["write_operation"] is True
        assert dumped["action"] == "delete-customer"
        assert dumped["deleted"] is True

    async def test_send_survey_body(self, mock_api) -> None:
        handler, transport = mock_api({f"POST {API}/survey": _json({"queued": 1})})

        async with _client(transport) as client:
            result = await client.send_survey("a@x.io", "cmp_1", delay_days=3)
            await client.send_survey("b@x.io", "cmp_1")

        assert handler.body(0) == {"email": "a@x.io", "campaign_id": "cmp_1", "delay": 3}
        assert handler.body(1) == {"email": "b@x.io", "campaign_id": "cmp_1"}
        assert result.model_dump()["queued"] is True

    async def test_add_tags_invalidates_feedback_detail(self, mock_api) -> None:
        handler, transport = mock_api(
            {
                f"GET {API}/feedback/fb1": _json({"id": "fb1", "tags": []}),
                f"GET {API}/feedback/fb2": _json({"id": "fb2", "tags": []}),
                f"POST {API}/response/tags": _json({}),
            }
        )

        async with _client(transport) as client:
            await client.get_feedback("fb1")
            await client.get_feedback("fb2")
            result = await client.add_feedback_tags("fb1", ["billing", "vip"])
            await client.get_feedback("fb1")
            await client.get_feedback("fb2")

        assert handler.body(2) == {"feedback_id": "fb1", "tags": ["billing", "vip"]}
        assert len(handler.calls("GET", f"{API}/feedback/fb1")) == 2
        assert len(handler.calls("GET", f"{API}/feedback/fb2")) == 1
        assert result.model_dump()["added"] is True

    async def test_rate_limited_write_propagates(self, mock_api) -> None:
        _, transport = mock_api({f"POST {API}/survey": httpx.Response(429)})

        async with _client(transport) as client:
            with pytest.raises(RateLimitedError):
                await client.send_survey("a@x.io", "cmp_1")


# ---------------------------------------------------------------------------
# Cache control and construction
# ---------------------------------------------------------------------------


class TestCacheControl:
    async def test_invalidate_key_and_pattern(self, mock_api) -> None:
        _, transport = mock_api(
            {
                f"GET {API}/nps/score": _json({}),
                f"GET {API}/csat/score": _json({}),
                f"GET {API}/campaigns": _json({}),
            }
        )

        async with _client(transport) as client:
            await client.get_nps_score()
            await client.get_csat_score()
            await client.list_campaigns()
            assert client.invalidate_cache_key("nps_score") is True
            assert client.invalidate_cache_pattern("_score$") == 1
            assert client.clear_cache() == 1

    async def test_injected_cache_is_used(self, mock_api) -> None:
        _, transport = mock_api({f"GET {API}/nps/score": _json({})})
        cache = TTLCache()

        async with _client(transport, cache=cache) as client:
            await client.get_nps_score()

        assert "nps_score" in cache

    def test_from_settings(self) -> None:
        settings = Settings(base_url="https://example.test/api")
        settings.cache.enabled = False
        client = RetentlyClient.from_settings(settings, "key")

        assert client.base_url == "https://example.test/api"
        assert client.get_cache_stats().enabled is False

    def test_list_tools(self) -> None:
        tools = RetentlyClient.list_tools()
        assert "add-tags" in tools
        assert "cache-invalidate" in tools
        assert len(tools) == len(set(tools)) == 18
