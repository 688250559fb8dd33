"""Prometheus metrics for freshkey.

Provides metrics collection for the cache-aside path:
- Cache metrics (hits, misses, degraded operations)
- Store metrics (probe and load latency)

Usage:
    from freshkey.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(record_type="items", strategy="set").inc()

When prometheus_client is not installed, or metrics are disabled in
settings, every helper is a no-op.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from freshkey.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_degraded_total: Any = None

    # Store metrics
    probe_duration_seconds: Any = None
    load_duration_seconds: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        try:
            from prometheus_client import REGISTRY, Counter, Histogram

            self._registry = REGISTRY

            self.cache_hits_total = Counter(
                "freshkey_cache_hits_total",
                "Cache hits",
                ["record_type", "strategy"],
            )

            self.cache_misses_total = Counter(
                "freshkey_cache_misses_total",
                "Cache misses",
                ["record_type", "strategy"],
            )

            self.cache_degraded_total = Counter(
                "freshkey_cache_degraded_total",
                "Cache operations that failed and were bypassed",
                ["operation"],
            )

            self.probe_duration_seconds = Histogram(
                "freshkey_probe_duration_seconds",
                "Version probe latency in seconds",
                ["record_type", "kind"],
                buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
            )

            self.load_duration_seconds = Histogram(
                "freshkey_load_duration_seconds",
                "Full record load latency in seconds",
                ["record_type"],
                buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            )

            self._initialized = True
            logger.info("Prometheus metrics initialized")

        except ImportError:
            logger.warning("prometheus_client not installed, metrics disabled")
            self._initialized = True

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics or self._registry is None:
            return b"# Metrics disabled\n"

        try:
            from prometheus_client import generate_latest

            return generate_latest(self._registry)
        except ImportError:
            return b"# prometheus_client not installed\n"


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(record_type: str, strategy: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(record_type=record_type, strategy=strategy).inc()


def record_cache_miss(record_type: str, strategy: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(record_type=record_type, strategy=strategy).inc()


def record_cache_degraded(operation: str) -> None:
    """Record a cache get/put that failed and was bypassed."""
    metrics = get_metrics()
    if metrics.cache_degraded_total:
        metrics.cache_degraded_total.labels(operation=operation).inc()


@contextmanager
def time_probe(record_type: str, kind: str) -> Iterator[None]:
    """Observe version probe duration.

    Args:
        record_type: Record type name
        kind: Probe kind (single, many, first, aggregate)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        metrics = get_metrics()
        if metrics.probe_duration_seconds:
            metrics.probe_duration_seconds.labels(record_type=record_type, kind=kind).observe(
                time.perf_counter() - start
            )


@contextmanager
def time_load(record_type: str) -> Iterator[None]:
    """Observe full load duration."""
    start = time.perf_counter()
    try:
        yield
    finally:
        metrics = get_metrics()
        if metrics.load_duration_seconds:
            metrics.load_duration_seconds.labels(record_type=record_type).observe(
                time.perf_counter() - start
            )
