"""
Emit one structured log record per emission tick.

Records go through the stdlib logger "heartbeat.emitter", so whatever sinks
logging_setup.configure_logging() installed (console, rotating JSON file)
receive them. The tick's iteration and latency travel as record attributes;
trace_id/span_id are added when a span context is supplied so the log line
can be joined to the trace.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context

EMITTER_LOGGER_NAME = "heartbeat.emitter"
PROGRESS_MESSAGE = "in progress ..."


class LogCorrelator:
    """Write the per-tick "in progress ..." record."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(EMITTER_LOGGER_NAME)
        self.dropped = 0

    def _fields(
        self,
        iteration: int,
        latency: float,
        endpoint: str | None,
        context: Context | None,
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {"iteration": iteration, "latency": latency}
        if endpoint is not None:
            fields["endpoint"] = endpoint
        if context is not None:
            span_context = trace.get_current_span(context).get_span_context()
            if span_context.is_valid:
                fields["trace_id"] = format(span_context.trace_id, "032x")
                fields["span_id"] = format(span_context.span_id, "016x")
        return fields

    def emit(
        self,
        iteration: int,
        latency: float,
        endpoint: str | None = None,
        context: Context | None = None,
    ) -> None:
        """
        Log the tick at INFO.

        Handler write errors are reported by logging.Handler.handleError. Errors
        raised past the handlers (a broken logger or handler) are counted in
        `dropped` so a failing sink cannot stop the loop.
        """
        try:
            self.logger.info(
                PROGRESS_MESSAGE,
                extra=self._fields(iteration, latency, endpoint, context),
            )
        except (OSError, RuntimeError, ValueError):
            self.dropped += 1
