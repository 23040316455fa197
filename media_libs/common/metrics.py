"""Metrics collection for the media search gateway.

Provides a thin convenience wrapper around ``prometheus_client`` so the
service consistently records HTTP, search, and upstream metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for tests)
"""

import time
from functools import wraps
from typing import Any, Callable, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the search service.

    Parameters
    - service_name: Logical name used for scoping
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.search_requests = Counter(
            'media_search_requests_total',
            'Total media search requests by answering source',
            ['media_type', 'source'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'media_search_duration_seconds',
            'Media search duration by answering source',
            ['source'],
            registry=self.registry
        )

        self.primary_outcomes = Counter(
            'media_search_primary_outcomes_total',
            'Outcomes of the primary index stage',
            ['outcome'],
            registry=self.registry
        )

        self.upstream_duration = Histogram(
            'media_search_upstream_duration_seconds',
            'Duration of calls to upstream search backends',
            ['backend'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_search(
        self,
        media_type: str,
        source: str,
        duration: float
    ) -> None:
        """Record a completed search and which backend answered it."""
        self.search_requests.labels(media_type=media_type, source=source).inc()
        self.search_duration.labels(source=source).observe(duration)

    def record_primary_outcome(self, outcome: str) -> None:
        """Record the kind of result the primary stage produced."""
        self.primary_outcomes.labels(outcome=outcome).inc()

    def record_upstream_call(self, backend: str, duration: float) -> None:
        """Record the duration of a single upstream call."""
        self.upstream_duration.labels(backend=backend).observe(duration)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the process-wide metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector


def measure_time(operation: str, **labels: Any) -> Callable:
    """Decorator to log how long a coroutine function takes.

    Example
    >>> @measure_time("primary_search", backend="meilisearch")
    ... async def search(...):
    ...     ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                duration = time.time() - start_time
                logger.debug(
                    f"Operation {operation} completed",
                    operation=operation,
                    duration_ms=duration * 1000,
                    **labels
                )
                return result
            except Exception as e:
                duration = time.time() - start_time
                logger.debug(
                    f"Operation {operation} failed",
                    operation=operation,
                    duration_ms=duration * 1000,
                    error=str(e),
                    **labels
                )
                raise
        return wrapper
    return decorator
