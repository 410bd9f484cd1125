"""Span exporters for various backends."""

from .console_exporter import create_console_exporter
from .file_exporter import FileSpanExporter
from .otlp_exporter import (
    CollectorUnreachableError,
    create_otlp_trace_exporter,
    wait_for_collector,
)

__all__ = [
    "create_otlp_trace_exporter",
    "wait_for_collector",
    "CollectorUnreachableError",
    "FileSpanExporter",
    "create_console_exporter",
]
