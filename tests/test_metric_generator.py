"""Tests for the per-tick Prometheus series."""

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from heartbeat.generators.metric_generator import (
    DEFAULT_LATENCY_BUCKETS,
    MetricsRecorder,
    linear_buckets,
)


def _bucket(registry: CollectorRegistry, iteration: str, le: str) -> float | None:
    return registry.get_sample_value(
        "test_request_duration_seconds_bucket", {"iteration": iteration, "le": le}
    )


def test_linear_buckets_match_expected_bounds() -> None:
    """20 buckets from 0.05 to 1.00 in 0.05 steps, without float drift."""
    assert len(DEFAULT_LATENCY_BUCKETS) == 20
    assert DEFAULT_LATENCY_BUCKETS[0] == 0.05
    assert DEFAULT_LATENCY_BUCKETS[2] == 0.15
    assert DEFAULT_LATENCY_BUCKETS[-1] == 1.0
    assert linear_buckets(1, 2, 3) == (1, 3, 5)


@pytest.mark.parametrize("count, width", [(0, 0.1), (3, 0)])
def test_linear_buckets_rejects_bad_arguments(count: int, width: float) -> None:
    with pytest.raises(ValueError):
        linear_buckets(0.05, width, count)


def test_record_request_counts_per_endpoint(registry: CollectorRegistry) -> None:
    recorder = MetricsRecorder(registry)
    recorder.record_request("/foo")
    recorder.record_request("/foo")
    recorder.record_request("/bar")

    assert recorder.request_count("/foo") == 2
    assert recorder.request_count("/bar") == 1
    assert recorder.request_count("/baz") == 0


def test_record_request_accepts_any_label(registry: CollectorRegistry) -> None:
    recorder = MetricsRecorder(registry)
    recorder.record_request("/not-configured")
    assert recorder.request_count("/not-configured") == 1


def test_record_latency_lands_in_covering_bucket(registry: CollectorRegistry) -> None:
    """0.37 is counted by le=0.4 and every larger bucket, not by le=0.35."""
    recorder = MetricsRecorder(registry)
    recorder.record_latency("0", 0.37)

    assert _bucket(registry, "0", "0.35") == 0
    assert _bucket(registry, "0", "0.4") == 1
    assert _bucket(registry, "0", "1.0") == 1
    assert registry.get_sample_value(
        "test_request_duration_seconds_count", {"iteration": "0"}
    ) == 1
    assert registry.get_sample_value(
        "test_request_duration_seconds_sum", {"iteration": "0"}
    ) == pytest.approx(0.37)


def test_record_latency_out_of_range_goes_to_overflow(registry: CollectorRegistry) -> None:
    recorder = MetricsRecorder(registry)
    recorder.record_latency("3", 1.5)

    assert _bucket(registry, "3", "1.0") == 0
    assert _bucket(registry, "3", "+Inf") == 1


def test_set_temperature_overwrites(registry: CollectorRegistry) -> None:
    recorder = MetricsRecorder(registry)
    recorder.set_temperature(21.5)
    recorder.set_temperature(28.25)
    assert registry.get_sample_value("test_temperature_celsius") == 28.25


def test_namespace_is_configurable(registry: CollectorRegistry) -> None:
    recorder = MetricsRecorder(registry, namespace="demo")
    recorder.record_request("/foo")
    assert recorder.metric_name("requests_total") == "demo_requests_total"
    assert registry.get_sample_value("demo_requests_total", {"endpoint": "/foo"}) == 1


def test_exposition_lists_all_series(registry: CollectorRegistry) -> None:
    """Text exposition contains the counter, gauge and histogram with help text."""
    recorder = MetricsRecorder(registry)
    recorder.record_request("/baz")
    recorder.record_latency("0", 0.2)
    recorder.set_temperature(22.0)

    text = generate_latest(registry).decode("utf-8")
    assert "# HELP test_requests_total Total number of test requests" in text
    assert 'test_requests_total{endpoint="/baz"} 1.0' in text
    assert "test_temperature_celsius 22.0" in text
    assert 'test_request_duration_seconds_bucket{iteration="0",le="0.2"} 1.0' in text


def test_two_recorders_need_separate_registries() -> None:
    """Series are registered once per registry; a second recorder needs its own."""
    first = CollectorRegistry()
    MetricsRecorder(first)
    with pytest.raises(ValueError):
        MetricsRecorder(first)
    MetricsRecorder(CollectorRegistry())
