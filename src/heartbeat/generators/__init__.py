"""Per-tick telemetry generators for traces, metrics, and logs."""

from .log_generator import LogCorrelator
from .metric_generator import DEFAULT_LATENCY_BUCKETS, MetricsRecorder, linear_buckets
from .trace_generator import TracingEmitter, build_tracer_provider, shutdown_tracer_provider

__all__ = [
    "TracingEmitter",
    "build_tracer_provider",
    "shutdown_tracer_provider",
    "MetricsRecorder",
    "linear_buckets",
    "DEFAULT_LATENCY_BUCKETS",
    "LogCorrelator",
]
