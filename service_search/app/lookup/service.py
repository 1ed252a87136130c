"""
Cache-aside keyword lookup.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Protocol, TYPE_CHECKING

from pydantic import ValidationError

from shared.logging import get_logger
from shared.errors import MalformedUpstreamResponse, UpstreamUnavailable
from ..caching.cache_store import CacheStore
from ..models import SearchResult, UpstreamResponse

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_TTL_SECONDS = 60

SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "upstream"
SOURCE_PASSTHROUGH = "passthrough"


class UpstreamFetcher(Protocol):
    """Performs one upstream lookup for a keyword.

    Returns the raw reply whatever its status; raises ``UpstreamUnavailable``
    when the upstream cannot be reached.
    """

    async def fetch(self, keyword: str) -> UpstreamResponse:
        ...


@dataclass(frozen=True)
class LookupOutcome:
    """How a keyword was resolved.

    ``result`` is set for the "cache" and "upstream" sources, ``response``
    for "passthrough".
    """

    source: str
    result: Optional[SearchResult] = None
    response: Optional[UpstreamResponse] = None

    @property
    def cached(self) -> bool:
        return self.source == SOURCE_CACHE


class LookupService:
    """Resolves keywords through the cache, falling back to the upstream.

    Keywords are used verbatim as cache keys. Concurrent misses for the same
    keyword are not coalesced; each fetches and writes independently.
    """

    def __init__(
        self,
        cache: CacheStore,
        fetcher: UpstreamFetcher,
        *,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
        cache_type: str = "search",
        upstream_name: str = "kakao_local",
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.metrics = metrics
        self.cache_type = cache_type
        self.upstream_name = upstream_name
        self.logger = get_logger("search.lookup")

    async def resolve(self, keyword: str) -> LookupOutcome:
        """
        Resolve a keyword to a search result.

        Raises ``UpstreamUnavailable`` when the upstream cannot be reached and
        ``MalformedUpstreamResponse`` when an OK reply cannot be parsed. The
        cache is written only after a fresh result has been parsed.
        """
        cached = await self.cache.get(keyword)
        if cached is not None:
            self.logger.info("Cache hit", keyword=keyword)
            self._record_lookup(hit=True)
            return LookupOutcome(source=SOURCE_CACHE, result=cached)

        self._record_lookup(hit=False)
        response = await self._fetch(keyword)

        if not response.ok:
            self.logger.info(
                "Relaying non-OK upstream response",
                keyword=keyword,
                status_code=response.status_code,
            )
            self._record_outcome("passthrough")
            return LookupOutcome(source=SOURCE_PASSTHROUGH, response=response)

        try:
            result = SearchResult.from_json(response.body)
        except (ValidationError, ValueError) as exc:
            self.logger.error("Malformed upstream response", keyword=keyword, error=str(exc))
            self._record_outcome("malformed")
            raise MalformedUpstreamResponse(
                details={"keyword": keyword, "error": str(exc)}
            ) from exc

        self._record_outcome("ok")
        await self.cache.put(keyword, result, self.ttl_seconds)
        self.logger.info(
            "Cache miss populated",
            keyword=keyword,
            total_count=result.metadata.total_count,
            ttl=self.ttl_seconds,
        )
        return LookupOutcome(source=SOURCE_UPSTREAM, result=result)

    async def _fetch(self, keyword: str) -> UpstreamResponse:
        start = time.perf_counter()
        try:
            return await self.fetcher.fetch(keyword)
        except UpstreamUnavailable:
            self._record_outcome("unavailable")
            raise
        finally:
            if self.metrics:
                self.metrics.observe_upstream_duration(self.upstream_name, time.perf_counter() - start)

    def _record_lookup(self, hit: bool) -> None:
        if self.metrics:
            self.metrics.record_cache_lookup(self.cache_type, hit)

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_upstream_outcome(self.upstream_name, outcome)
