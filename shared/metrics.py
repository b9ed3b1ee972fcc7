"""
Shared metrics configuration for the method result cache.
"""

from typing import Dict, Any, Optional
from prometheus_client import Counter, Histogram, Info, CollectorRegistry, generate_latest


class MetricsCollector:
    """Centralized metrics collector for the cache engine and admin service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._setup_cache_metrics()

    def _setup_cache_metrics(self):
        """Set up method cache metrics."""
        self._metrics["method_cache_lookups_total"] = Counter(
            "method_cache_lookups_total",
            "Total cache lookups by outcome",
            ["method", "result"],
            registry=self.registry
        )

        self._metrics["method_cache_store_failures_total"] = Counter(
            "method_cache_store_failures_total",
            "Total non-fatal backing store failures",
            ["operation"],
            registry=self.registry
        )

        self._metrics["method_cache_index_updates_total"] = Counter(
            "method_cache_index_updates_total",
            "Total key-variant index writes",
            ["method"],
            registry=self.registry
        )

        self._metrics["method_cache_invalidations_total"] = Counter(
            "method_cache_invalidations_total",
            "Total method invalidations",
            ["method"],
            registry=self.registry
        )

        self._metrics["method_cache_factory_duration_seconds"] = Histogram(
            "method_cache_factory_duration_seconds",
            "Duration of the real computation on a cache miss",
            ["method"],
            registry=self.registry
        )

    def render(self) -> bytes:
        """Render the registry in the Prometheus exposition format."""
        if self.registry is None:
            return b""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_lookup(self, method: str, hit: bool):
        """Record a cache hit or miss."""
        self._metrics["method_cache_lookups_total"].labels(
            method=method,
            result="hit" if hit else "miss"
        ).inc()

    def record_store_failure(self, operation: str):
        """Record a non-fatal store failure (read, write, index, remove)."""
        self._metrics["method_cache_store_failures_total"].labels(operation=operation).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
