"""
Unit tests for the cache-aside LookupService.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from service_search.app.caching.cache_store import InMemoryCacheStore
from service_search.app.lookup.service import CACHE_TTL_SECONDS, LookupService
from service_search.app.models import SearchResult, UpstreamResponse
from shared.errors import MalformedUpstreamResponse, UpstreamUnavailable
from shared.metrics import MetricsCollector


def _document(index: int) -> dict:
    return {
        "id": str(26338954 + index),
        "place_name": f"카페 {index}호점",
        "category_name": "음식점 > 카페",
        "category_group_code": "CE7",
        "category_group_name": "카페",
        "phone": "02-000-0000",
        "address_name": "서울 강남구 역삼동 123",
        "road_address_name": "서울 강남구 테헤란로 1",
        "x": "127.0276",
        "y": "37.4979",
        "place_url": f"http://place.map.kakao.com/{26338954 + index}",
        "distance": "",
    }


def _payload(total_count: int = 3) -> dict:
    return {
        "meta": {
            "total_count": total_count,
            "pageable_count": total_count,
            "is_end": True,
            "same_name": {"keyword": "카페", "region": [], "selected_region": ""},
        },
        "documents": [_document(i) for i in range(total_count)],
    }


def _ok(payload: dict) -> UpstreamResponse:
    return UpstreamResponse(
        status_code=200,
        body=json.dumps(payload).encode("utf-8"),
        content_type="application/json;charset=UTF-8",
    )


class FakeFetcher:
    """Upstream fetcher double that records every keyword it is asked for."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def fetch(self, keyword):
        self.calls.append(keyword)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.response


class RecordingCache(InMemoryCacheStore):
    """In-memory store that remembers which keys were read."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.read_keys = []

    async def get(self, key):
        self.read_keys.append(key)
        return await super().get(key)


class TestLookupService:
    """Test cases for LookupService."""

    @pytest.fixture
    def clock(self):
        """Mutable fake clock."""
        return {"now": 1000.0}

    @pytest.fixture
    def store(self, clock):
        return RecordingCache(clock=lambda: clock["now"])

    @pytest.fixture
    def result(self):
        return SearchResult.model_validate(_payload())

    @pytest.mark.asyncio
    async def test_cache_hit_short_circuits_upstream(self, store, result):
        """A fresh entry is returned without touching the upstream."""
        await store.put("카페", result, CACHE_TTL_SECONDS)
        fetcher = FakeFetcher(error=AssertionError("upstream must not be called"))
        service = LookupService(store, fetcher)

        outcome = await service.resolve("카페")

        assert outcome.source == "cache"
        assert outcome.cached is True
        assert outcome.result == result
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_cache_hit_performs_no_write(self, result):
        cache = AsyncMock()
        cache.get = AsyncMock(return_value=result)
        cache.put = AsyncMock(return_value=True)
        service = LookupService(cache, FakeFetcher())

        await service.resolve("카페")

        cache.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_miss_populates_store(self, store):
        """A miss fetches once, caches the parsed result and returns it."""
        fetcher = FakeFetcher(response=_ok(_payload(total_count=3)))
        service = LookupService(store, fetcher)

        outcome = await service.resolve("카페")

        assert outcome.source == "upstream"
        assert outcome.cached is False
        assert outcome.result.metadata.total_count == 3
        assert [item.name for item in outcome.result.items] == ["카페 0호점", "카페 1호점", "카페 2호점"]
        assert await store.get("카페") == outcome.result
        assert fetcher.calls == ["카페"]

    @pytest.mark.asyncio
    async def test_cache_miss_writes_with_fixed_ttl(self, result):
        cache = AsyncMock()
        cache.get = AsyncMock(return_value=None)
        cache.put = AsyncMock(return_value=True)
        service = LookupService(cache, FakeFetcher(response=_ok(_payload())))

        outcome = await service.resolve("카페")

        cache.put.assert_awaited_once_with("카페", outcome.result, 60)
        assert outcome.result == result

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, store, clock):
        """An entry read at or after 60 seconds triggers a fresh fetch."""
        fetcher = FakeFetcher(response=_ok(_payload()))
        service = LookupService(store, fetcher)

        await service.resolve("카페")

        clock["now"] += 59.5
        outcome = await service.resolve("카페")
        assert outcome.source == "cache"
        assert len(fetcher.calls) == 1

        clock["now"] = 1000.0 + CACHE_TTL_SECONDS
        outcome = await service.resolve("카페")
        assert outcome.source == "upstream"
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["{not json", '{"meta": 1}', "[]", ""])
    async def test_corrupt_entry_is_a_miss(self, store, raw):
        """Undecodable cache contents fall through to the upstream."""
        store.put_raw("카페", raw, CACHE_TTL_SECONDS)
        fetcher = FakeFetcher(response=_ok(_payload()))
        service = LookupService(store, fetcher)

        outcome = await service.resolve("카페")

        assert outcome.source == "upstream"
        assert fetcher.calls == ["카페"]
        assert await store.get("카페") == outcome.result

    @pytest.mark.asyncio
    async def test_non_ok_response_passes_through_uncached(self, store):
        """Rate limits and other non-OK replies are relayed and never cached."""
        body = b'{"errorType":"RequestThrottled","message":"API limit has been exceeded."}'
        throttled = UpstreamResponse(status_code=429, body=body, content_type="application/json")
        fetcher = FakeFetcher(response=throttled)
        service = LookupService(store, fetcher)

        outcome = await service.resolve("카페")

        assert outcome.source == "passthrough"
        assert outcome.result is None
        assert outcome.response is throttled
        assert await store.get("카페") is None
        assert "카페" not in store

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [301, 400, 401, 500])
    async def test_any_non_ok_status_is_passthrough(self, store, status_code):
        fetcher = FakeFetcher(response=UpstreamResponse(status_code=status_code, body=b""))
        service = LookupService(store, fetcher)

        outcome = await service.resolve("카페")

        assert outcome.source == "passthrough"
        assert outcome.response.status_code == status_code
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_keyword_is_used_verbatim_as_key(self, store):
        """Keys are never normalized: case and whitespace matter."""
        fetcher = FakeFetcher(response=_ok(_payload()))
        service = LookupService(store, fetcher)

        await service.resolve("a")
        await service.resolve("a")
        await service.resolve("A")
        await service.resolve(" a ")

        assert store.read_keys == ["a", "a", "A", " a "]
        assert fetcher.calls == ["a", "A", " a "]

    @pytest.mark.asyncio
    async def test_empty_keyword_is_a_valid_key(self, store):
        fetcher = FakeFetcher(response=_ok(_payload(total_count=0)))
        service = LookupService(store, fetcher)

        first = await service.resolve("")
        second = await service.resolve("")

        assert first.source == "upstream"
        assert second.source == "cache"
        assert fetcher.calls == [""]

    @pytest.mark.asyncio
    async def test_transport_failure_raises_without_cache_write(self, store):
        fetcher = FakeFetcher(error=UpstreamUnavailable(service="kakao_local", message="connection refused"))
        service = LookupService(store, fetcher)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await service.resolve("카페")

        assert exc_info.value.code == "UPSTREAM_UNAVAILABLE"
        assert len(store) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"<html>Bad Gateway</html>",
            b'{"documents": []}',
            b'{"meta": {"total_count": "many"}, "documents": []}',
            b'{"meta": {"total_count": 3, "pageable_count": 3, "is_end": true}}',
            b'{"meta": {"total_count": "3", "pageable_count": 3.0, "is_end": "yes"}, "documents": []}',
        ],
        ids=["html", "no-meta", "bad-count", "no-documents", "coerced-types"],
    )
    async def test_malformed_ok_response_raises_without_cache_write(self, store, body):
        fetcher = FakeFetcher(response=UpstreamResponse(status_code=200, body=body))
        service = LookupService(store, fetcher)

        with pytest.raises(MalformedUpstreamResponse) as exc_info:
            await service.resolve("카페")

        assert exc_info.value.details["keyword"] == "카페"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_concurrent_misses_are_not_coalesced(self, store):
        """Simultaneous cold lookups each reach the upstream; last write wins."""
        fetcher = FakeFetcher(response=_ok(_payload()))
        service = LookupService(store, fetcher)

        outcomes = await asyncio.gather(service.resolve("카페"), service.resolve("카페"))

        assert [outcome.source for outcome in outcomes] == ["upstream", "upstream"]
        assert fetcher.calls == ["카페", "카페"]
        assert await store.get("카페") == outcomes[0].result

    @pytest.mark.asyncio
    async def test_records_cache_and_upstream_metrics(self, store):
        metrics = MetricsCollector("search")
        service = LookupService(store, FakeFetcher(response=_ok(_payload())), metrics=metrics)

        await service.resolve("카페")
        await service.resolve("카페")

        registry = metrics.registry
        assert registry.get_sample_value("cache_misses_total", {"cache_type": "search"}) == 1.0
        assert registry.get_sample_value("cache_hits_total", {"cache_type": "search"}) == 1.0
        assert registry.get_sample_value(
            "upstream_requests_total", {"upstream": "kakao_local", "outcome": "ok"}
        ) == 1.0
        assert registry.get_sample_value(
            "upstream_request_duration_seconds_count", {"upstream": "kakao_local"}
        ) == 1.0
