"""Tests for cache metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from freshkey.observability.metrics import (
    get_metrics,
    record_cache_degraded,
    record_cache_hit,
    record_cache_miss,
    time_load,
    time_probe,
)

pytestmark = pytest.mark.skipif(
    get_metrics().cache_hits_total is None, reason="metrics disabled"
)


def sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestCacheMetrics:
    """Tests for the metric helpers."""

    def test_hit_and_miss(self) -> None:
        hits = sample("freshkey_cache_hits_total", record_type="metrics_items", strategy="rec")
        misses = sample("freshkey_cache_misses_total", record_type="metrics_items", strategy="set")

        record_cache_hit("metrics_items", "rec")
        record_cache_hit("metrics_items", "rec")
        record_cache_miss("metrics_items", "set")

        assert sample(
            "freshkey_cache_hits_total", record_type="metrics_items", strategy="rec"
        ) == hits + 2
        assert sample(
            "freshkey_cache_misses_total", record_type="metrics_items", strategy="set"
        ) == misses + 1

    def test_degraded(self) -> None:
        before = sample("freshkey_cache_degraded_total", operation="put")

        record_cache_degraded("put")

        assert sample("freshkey_cache_degraded_total", operation="put") == before + 1

    def test_probe_timer_observes_on_error(self) -> None:
        labels = {"record_type": "metrics_items", "kind": "single"}
        before = sample("freshkey_probe_duration_seconds_count", **labels)

        with pytest.raises(RuntimeError):
            with time_probe("metrics_items", "single"):
                raise RuntimeError("store down")

        assert sample("freshkey_probe_duration_seconds_count", **labels) == before + 1

    def test_load_timer(self) -> None:
        before = sample("freshkey_load_duration_seconds_count", record_type="metrics_items")

        with time_load("metrics_items"):
            pass

        assert sample(
            "freshkey_load_duration_seconds_count", record_type="metrics_items"
        ) == before + 1

    def test_exposition(self) -> None:
        record_cache_hit("metrics_items", "rec")

        assert b"freshkey_cache_hits_total" in get_metrics().generate_latest()
