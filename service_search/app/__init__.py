"""
Search Service package for the Place Search Proxy.

The service fronts the Kakao Local keyword search with a short-lived
cache:
- Cache-aside lookup keyed by the raw keyword, 60 second TTL
- Non-OK upstream replies relayed as-is and never cached

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.lookup: Cache-aside orchestration.
- app.caching: Cache store implementations.
- app.adapters: Upstream HTTP client.
- app.models: Result payload models.
"""
