"""
JSONL span sink for runs without a collector.

    heartbeat run --ticks 10 --output-file spans.jsonl

Each finished span becomes one line; work1/work2 lines carry the do-request
span id in ``parent_span_id`` so a tick's tree can be rebuilt offline.
"""

import json
import threading
from collections.abc import Sequence
from pathlib import Path

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from opentelemetry.trace import format_span_id, format_trace_id


def span_to_dict(span: ReadableSpan) -> dict:
    ctx = span.get_span_context()
    record = {
        "name": span.name,
        "trace_id": format_trace_id(ctx.trace_id),
        "span_id": format_span_id(ctx.span_id),
        "parent_span_id": format_span_id(span.parent.span_id) if span.parent else None,
        "start_time_unix_nano": span.start_time,
        "end_time_unix_nano": span.end_time,
        "duration_ms": None,
        "status": span.status.status_code.name,
        "attributes": dict(span.attributes or {}),
        "resource": dict(span.resource.attributes) if span.resource else {},
    }
    if span.start_time is not None and span.end_time is not None:
        record["duration_ms"] = (span.end_time - span.start_time) / 1e6
    if span.status.description:
        record["status_description"] = span.status.description
    return record


class FileSpanExporter(SpanExporter):
    """Append finished spans to a JSONL file; safe across span processor threads."""

    def __init__(self, output_path: str | Path):
        self.path = Path(output_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            payload = "".join(json.dumps(span_to_dict(s), default=str) + "\n" for s in spans)
            with self._write_lock:
                with self.path.open("a", encoding="utf-8") as out:
                    out.write(payload)
        except (OSError, TypeError, ValueError):
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        """Nothing held open between exports."""

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
