"""
Console span exporter for debugging and development.

Prints finished spans to stdout for quick verification.
"""

from opentelemetry.sdk.trace.export import ConsoleSpanExporter


def create_console_exporter() -> ConsoleSpanExporter:
    """Create a span exporter that writes JSON spans to stdout."""
    return ConsoleSpanExporter()
