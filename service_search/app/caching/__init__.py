"""
Search caching package.

Provides the time-expiring stores that hold serialized search results.
Entries expire on their own; nothing in the service deletes them.
"""

from .cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore

__all__ = ["CacheStore", "InMemoryCacheStore", "RedisCacheStore"]
