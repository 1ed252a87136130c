"""
Kakao Local keyword search client.
"""

from typing import Callable, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ServiceError, UpstreamUnavailable
from ..models import UpstreamResponse


DEFAULT_SEARCH_URL = "https://dapi.kakao.com/v2/local/search/keyword.json"


class KakaoLocalClient:
    """Fetches raw keyword search replies from the Kakao Local API.

    One attempt per call. Non-OK replies are returned, not raised; only a
    failure to reach the API at all becomes ``UpstreamUnavailable``.

    When ``api_key_provider`` is given it is called on every fetch, so a key
    configured or rotated after startup is picked up without a restart. An
    injected ``client`` stays owned by the caller and is never closed here.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        search_url: str = DEFAULT_SEARCH_URL,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        api_key_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.api_key = api_key
        self.api_key_provider = api_key_provider
        self.search_url = search_url
        self.timeout = timeout
        self.logger = get_logger("search.kakao_client")
        self._client = client

    def _resolve_api_key(self) -> Optional[str]:
        if self.api_key_provider is not None:
            return self.api_key_provider()
        return self.api_key

    async def fetch(self, keyword: str) -> UpstreamResponse:
        """POST the keyword to the search endpoint and return the raw reply."""
        api_key = self._resolve_api_key()
        if not api_key:
            raise ServiceError("Kakao API key is not configured", details={"secret": "KAKAO_API_KEY"})

        headers = {"Authorization": f"KakaoAK {api_key}"}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.search_url, params={"query": keyword}, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
                    response = await client.post(
                        self.search_url, params={"query": keyword}, headers=headers
                    )
        except httpx.TransportError as exc:
            self.logger.error("Kakao search transport error", keyword=keyword, error=str(exc))
            raise UpstreamUnavailable(
                service="kakao_local",
                message=str(exc) or exc.__class__.__name__,
                details={"error_type": exc.__class__.__name__}
            ) from exc

        if response.status_code != 200:
            self.logger.warning(
                "Kakao search returned non-OK status",
                keyword=keyword,
                status_code=response.status_code,
            )

        return UpstreamResponse(
            status_code=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type"),
        )
