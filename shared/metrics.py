"""
Prometheus metrics for the Place Search Proxy.

Each collector owns its own ``CollectorRegistry`` so several service
instances (e.g. in tests) can coexist in one process.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info


class MetricsCollector:
    """Metrics for one service instance."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()

        info = Info("service", "Service information", registry=self.registry)
        info.info({"service": service_name, "version": "1.0.0"})

        self.http_requests = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )
        self.health_checks = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )
        self.errors = Counter(
            "errors_total",
            "Total errors by error code",
            ["error_type", "service"],
            registry=self.registry
        )

        # Lookup path
        self.cache_hits = Counter(
            "cache_hits_total",
            "Total cache hits",
            ["cache_type"],
            registry=self.registry
        )
        self.cache_misses = Counter(
            "cache_misses_total",
            "Total cache misses (absent, expired or undecodable)",
            ["cache_type"],
            registry=self.registry
        )
        self.upstream_requests = Counter(
            "upstream_requests_total",
            "Upstream lookups by outcome",
            ["upstream", "outcome"],
            registry=self.registry
        )
        self.upstream_duration = Histogram(
            "upstream_request_duration_seconds",
            "Upstream lookup duration in seconds",
            ["upstream"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self.http_requests.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        self.http_request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str):
        self.health_checks.labels(status=status).inc()

    def record_error(self, error_type: str):
        self.errors.labels(error_type=error_type, service=self.service_name).inc()

    def record_cache_lookup(self, cache_type: str, hit: bool):
        """Count a cache read as a hit or a miss."""
        counter = self.cache_hits if hit else self.cache_misses
        counter.labels(cache_type=cache_type).inc()

    def record_upstream_outcome(self, upstream: str, outcome: str):
        """Count an upstream lookup: ok, passthrough, malformed or unavailable."""
        self.upstream_requests.labels(upstream=upstream, outcome=outcome).inc()

    def observe_upstream_duration(self, upstream: str, duration: float):
        self.upstream_duration.labels(upstream=upstream).observe(duration)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
