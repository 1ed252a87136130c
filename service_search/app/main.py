"""
Search service for the Place Search Proxy.
"""

from typing import Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.secrets_manager import SecretsManager
from service_search.app.adapters.kakao_client import KakaoLocalClient
from service_search.app.caching.cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from service_search.app.lookup.service import (
    CACHE_TTL_SECONDS,
    LookupOutcome,
    LookupService,
    UpstreamFetcher,
)


CACHE_HEADER = "X-Cache"


class SearchService(BaseService):
    """Keyword search service implementation."""

    def __init__(
        self,
        cache: Optional[CacheStore] = None,
        fetcher: Optional[UpstreamFetcher] = None,
        secrets: Optional[SecretsManager] = None,
    ):
        super().__init__("search", 8000)
        self.secrets = secrets if secrets is not None else SecretsManager(
            master_key=self.config.master_key,
            secrets_file=self.config.secrets_file,
        )
        if not self._get_api_key():
            self.logger.warning(
                "Kakao API key not found; searches will fail until it is configured",
                secret=self.config.kakao_api_key_secret,
            )

        self.cache = cache if cache is not None else self._create_cache()
        self.fetcher = fetcher if fetcher is not None else KakaoLocalClient(
            search_url=self.config.kakao_search_url,
            timeout=self.config.upstream_timeout_seconds,
            api_key_provider=self._get_api_key,
        )
        self.lookup_service = LookupService(
            self.cache,
            self.fetcher,
            ttl_seconds=CACHE_TTL_SECONDS,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            for resource in (self.cache, self.fetcher):
                close = getattr(resource, "close", None)
                if close is not None:
                    await close()

        self._setup_search_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.search_service = self

    def _get_api_key(self) -> Optional[str]:
        """Current Kakao API key; looked up on every call so rotation needs no restart."""
        return self.secrets.get_secret(self.config.kakao_api_key_secret)

    def _create_cache(self) -> CacheStore:
        """Build the configured cache backend."""
        backend = self.config.cache_backend.lower()
        if backend == "memory":
            self.logger.info("Using in-memory cache store")
            return InMemoryCacheStore()
        if backend != "redis":
            self.logger.warning("Unknown cache backend, falling back to redis", backend=backend)
        return RedisCacheStore(self.config.redis_url, namespace=self.config.cache_namespace)

    @staticmethod
    def _extract_keyword(request: Request) -> str:
        """First ``keyword`` query parameter, or an empty string."""
        values = request.query_params.getlist("keyword")
        return values[0] if values else ""

    @staticmethod
    def _render(outcome: LookupOutcome) -> Response:
        if outcome.response is not None:
            upstream = outcome.response
            return Response(
                content=upstream.body,
                status_code=upstream.status_code,
                media_type=upstream.content_type,
                headers={CACHE_HEADER: "PASS"},
            )

        return JSONResponse(
            content=outcome.result.to_dict(),
            headers={CACHE_HEADER: "HIT" if outcome.cached else "MISS"},
        )

    def _setup_search_routes(self):
        """Set up search routes."""

        @self.app.post("/search")
        async def search(request: Request):
            """Search places by keyword, served from cache when fresh."""
            keyword = self._extract_keyword(request)
            outcome = await self.lookup_service.resolve(keyword)
            return self._render(outcome)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "search",
                "message": "Place Search Proxy",
                "version": "1.0.0",
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check search service dependencies."""
        dependencies = {}

        health_check = getattr(self.cache, "health_check", None)
        if health_check is not None:
            dependencies["cache"] = "ok" if await health_check() else "error"
        dependencies["kakao_api_key"] = "ok" if self._get_api_key() else "missing"
        return dependencies


def create_app(**kwargs):
    """Create FastAPI application."""
    service = SearchService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = SearchService()
    service.run()
