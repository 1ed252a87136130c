"""
Lookup package for the Search Service.

Holds the cache-aside orchestration that sits between the HTTP route and
the cache store / upstream client.
"""

from .service import CACHE_TTL_SECONDS, LookupOutcome, LookupService, UpstreamFetcher

__all__ = ["CACHE_TTL_SECONDS", "LookupOutcome", "LookupService", "UpstreamFetcher"]
