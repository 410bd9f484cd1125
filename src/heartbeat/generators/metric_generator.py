"""
Record per-tick metrics into an explicitly constructed Prometheus registry.

Three series live for the whole process:
- <namespace>_requests_total{endpoint}       counter, +1 per tick
- <namespace>_temperature_celsius            gauge, overwritten per tick
- <namespace>_request_duration_seconds{iteration}  histogram, one observation per tick

The registry is owned by the bootstrap code and shared with the /metrics
server; prometheus_client metrics are thread-safe, so the loop thread writes
while the scrape thread reads.
"""

from collections.abc import Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from ..defaults import DEFAULT_METRIC_NAMESPACE

ENDPOINT_LABEL = "endpoint"
ITERATION_LABEL = "iteration"


def linear_buckets(start: float, width: float, count: int) -> tuple[float, ...]:
    """
    Build `count` bucket upper bounds: start, start+width, ...

    Bounds are rounded so that 0.05 * 3 renders as le="0.15" rather than
    le="0.15000000000000002" in the exposition.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    if width <= 0:
        raise ValueError("width must be positive")
    return tuple(round(start + width * i, 10) for i in range(count))


# 0.05s to 1.0s in 0.05s steps; +Inf is appended by prometheus_client.
DEFAULT_LATENCY_BUCKETS = linear_buckets(0.05, 0.05, 20)


class MetricsRecorder:
    """Counter, gauge and histogram updated once per emission tick."""

    def __init__(
        self,
        registry: CollectorRegistry,
        namespace: str = DEFAULT_METRIC_NAMESPACE,
        buckets: Sequence[float] = DEFAULT_LATENCY_BUCKETS,
    ):
        """Register the three series on `registry`."""
        self.registry = registry
        self.namespace = namespace
        self._setup_instruments(buckets)

    def _setup_instruments(self, buckets: Sequence[float]):
        self.requests = Counter(
            "requests_total",
            "Total number of test requests",
            labelnames=(ENDPOINT_LABEL,),
            namespace=self.namespace,
            registry=self.registry,
        )

        self.temperature = Gauge(
            "temperature_celsius",
            "Random test temperature in Celsius",
            namespace=self.namespace,
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "request_duration_seconds",
            "Histogram of request durations.",
            labelnames=(ITERATION_LABEL,),
            namespace=self.namespace,
            buckets=tuple(buckets),
            registry=self.registry,
        )

    def metric_name(self, base: str) -> str:
        """Exposed sample name for `base` (e.g. requests_total -> test_requests_total)."""
        return f"{self.namespace}_{base}" if self.namespace else base

    def record_request(self, endpoint: str) -> None:
        """Count one request for `endpoint` (any label value is accepted)."""
        self.requests.labels(endpoint=endpoint).inc()

    def record_latency(self, iteration_label: str, value: float) -> None:
        """Observe `value` seconds under the given iteration label."""
        self.request_duration.labels(iteration=iteration_label).observe(value)

    def set_temperature(self, value: float) -> None:
        """Overwrite the temperature gauge."""
        self.temperature.set(value)

    def request_count(self, endpoint: str) -> float:
        """Current counter value for `endpoint` (0.0 if never recorded)."""
        value = self.registry.get_sample_value(
            self.metric_name("requests_total"), {ENDPOINT_LABEL: endpoint}
        )
        return value or 0.0
