"""
Heartbeat - synthetic telemetry emitter.

This package runs a long-lived loop that produces correlated logs, Prometheus
metrics and OpenTelemetry traces to exercise an observability pipeline.
"""

__version__ = "1.0.0"
