"""
Shared metrics configuration for the feature-flag runtime.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, CollectorRegistry


class RuntimeMetrics:
    """Prometheus metrics for the cache family and the event queues."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        # A private registry keeps independent runtimes (and tests) from colliding
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_cache_metrics()
        self._setup_event_metrics()

    def _setup_cache_metrics(self):
        """Set up read-through cache metrics."""
        self._metrics["cache_refresh_total"] = Counter(
            "cache_refresh_total",
            "Total cache refreshes",
            ["cache", "outcome"],
            registry=self.registry
        )

        self._metrics["cache_refresh_duration_seconds"] = Histogram(
            "cache_refresh_duration_seconds",
            "Cache refresh duration in seconds",
            ["cache"],
            registry=self.registry
        )

        self._metrics["cache_reads_total"] = Counter(
            "cache_reads_total",
            "Total asynchronous cache reads",
            ["cache", "result"],
            registry=self.registry
        )

    def _setup_event_metrics(self):
        """Set up batch queue metrics."""
        self._metrics["event_batches_flushed_total"] = Counter(
            "event_batches_flushed_total",
            "Total event batches handed to a sink",
            ["reason"],
            registry=self.registry
        )

        self._metrics["event_batch_size"] = Histogram(
            "event_batch_size",
            "Number of events per flushed batch",
            buckets=(1, 2, 5, 10, 20, 50, 100, 500),
            registry=self.registry
        )

        self._metrics["events_dropped_total"] = Counter(
            "events_dropped_total",
            "Events dropped because the queue was stopped",
            registry=self.registry
        )

        self._metrics["event_delivery_failures_total"] = Counter(
            "event_delivery_failures_total",
            "Fire-and-forget deliveries that failed",
            registry=self.registry
        )

    def record_cache_refresh(self, cache: str, outcome: str, duration: float):
        """Record a settled cache refresh."""
        self._metrics["cache_refresh_total"].labels(cache=cache, outcome=outcome).inc()
        self._metrics["cache_refresh_duration_seconds"].labels(cache=cache).observe(duration)

    def record_cache_read(self, cache: str, hit: bool):
        """Record an asynchronous cache read."""
        self._metrics["cache_reads_total"].labels(cache=cache, result="hit" if hit else "miss").inc()

    def record_flush(self, reason: str, size: int):
        """Record a batch handed to a sink."""
        self._metrics["event_batches_flushed_total"].labels(reason=reason).inc()
        self._metrics["event_batch_size"].observe(size)

    def record_dropped_event(self):
        """Record an event dropped by a stopped queue."""
        self._metrics["events_dropped_total"].inc()

    def record_delivery_failure(self):
        """Record a failed fire-and-forget delivery."""
        self._metrics["event_delivery_failures_total"].inc()

    def sample(self, metric_name: str, **labels) -> Optional[float]:
        """Read the current value of a metric sample from the registry."""
        return self.registry.get_sample_value(metric_name, labels or None)
