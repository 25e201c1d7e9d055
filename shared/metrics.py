"""
Shared metrics configuration for the catalog service.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, generate_latest
from typing import Dict, Any, Iterable, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry, so several services (or test
    fixtures) can live in one process without duplicate registration.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service",
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

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Cache service metrics
        self._metrics["cache_service_state"] = Gauge(
            "cache_service_state",
            "Current cache service connection state (1 for the active state)",
            ["state"],
            registry=self.registry
        )

        self._metrics["cache_service_transitions_total"] = Counter(
            "cache_service_transitions_total",
            "Total cache service connection state transitions",
            ["state"],
            registry=self.registry
        )

        self._metrics["cache_service_reconnect_attempts_total"] = Counter(
            "cache_service_reconnect_attempts_total",
            "Total cache service reconnect attempts",
            registry=self.registry
        )

        # Lifecycle metrics
        self._metrics["shutdowns_total"] = Counter(
            "shutdowns_total",
            "Total shutdown sequences by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["shutdown_duration_seconds"] = Histogram(
            "shutdown_duration_seconds",
            "Shutdown sequence duration in seconds",
            registry=self.registry
        )

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

    def record_cache_state(self, state: str, known_states: Iterable[str]):
        """Flip the cache state gauge to ``state`` and count the transition."""
        with self._lock:
            for candidate in known_states:
                self._metrics["cache_service_state"].labels(state=candidate).set(
                    1 if candidate == state else 0
                )
        self._metrics["cache_service_transitions_total"].labels(state=state).inc()

    def record_reconnect_attempt(self):
        self._metrics["cache_service_reconnect_attempts_total"].inc()

    def record_shutdown(self, outcome: str, duration: float):
        """Record a finished shutdown sequence."""
        self._metrics["shutdowns_total"].labels(outcome=outcome).inc()
        self._metrics["shutdown_duration_seconds"].observe(duration)

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read a sample value back from the registry."""
        return self.registry.get_sample_value(name, labels or {})

    def render(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
