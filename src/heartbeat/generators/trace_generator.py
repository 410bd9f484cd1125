"""
Generate the per-tick trace: one root span with two concurrent child spans.

Trace shape per tick:
  main (process lifetime, owned by app.py)
  └── do-request        sleeps request_delay, then ends
      ├── work1         own thread, sleeps work_delay
      └── work2         own thread, sleeps work_delay

The children are fire-and-forget: do-request ends after its own delay without
waiting for them, so with the default delays (1s root, 2s children) each
child outlives its parent. The root span therefore measures only the root's
own work, not the whole operation. This overlapping-but-not-nested-in-time
shape is kept on purpose; set join_children=True to have run_tick() wait for
the children after the root has ended (root timing is unchanged).

Spans are ended by context managers, so every span ends exactly once, also
when the sleep raises.
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Tracer

from ..defaults import (
    DEFAULT_REQUEST_DELAY,
    DEFAULT_SERVICE_NAME,
    DEFAULT_SERVICE_VERSION,
    DEFAULT_WORK_DELAY,
)

logger = logging.getLogger(__name__)

MAIN_SPAN_NAME = "main"
ROOT_SPAN_NAME = "do-request"
CHILD_SPAN_NAMES = ("work1", "work2")
TRACER_NAME = "heartbeat"


def build_tracer_provider(
    exporter: SpanExporter,
    service_name: str = DEFAULT_SERVICE_NAME,
    service_version: str = DEFAULT_SERVICE_VERSION,
    batch: bool = True,
) -> TracerProvider:
    """
    Create a TracerProvider exporting through `exporter`.

    Args:
        exporter: Span exporter (OTLP, file, console, in-memory)
        service_name: service.name resource attribute
        service_version: service.version resource attribute
        batch: BatchSpanProcessor when True (spans are buffered and flushed in
            batches), SimpleSpanProcessor when False (export on end)

    Returns:
        Configured TracerProvider (not installed globally)
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
        }
    )
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(exporter) if batch else SimpleSpanProcessor(exporter)
    provider.add_span_processor(processor)
    return provider


def shutdown_tracer_provider(provider: TracerProvider, timeout_millis: int = 5000) -> None:
    """Flush buffered spans, then shut the provider down."""
    if not provider.force_flush(timeout_millis):
        logger.warning("Span flush did not complete within %d ms", timeout_millis)
    provider.shutdown()


class TracingEmitter:
    """Start and end the correlated spans for one simulated request."""

    def __init__(
        self,
        tracer: Tracer,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        work_delay: float = DEFAULT_WORK_DELAY,
        join_children: bool = False,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """
        Args:
            tracer: Tracer used for all spans
            request_delay: seconds the root span works before ending
            work_delay: seconds each child span works before ending
            join_children: wait for both children before run_tick() returns
            sleep: delay function (tests substitute a controllable one)
        """
        self.tracer = tracer
        self.request_delay = request_delay
        self.work_delay = work_delay
        self.join_children = join_children
        self._sleep = sleep
        self._active: set[threading.Thread] = set()
        self._lock = threading.Lock()

    @property
    def active_children(self) -> int:
        """Child operations started but not finished yet."""
        with self._lock:
            return len(self._active)

    def run_tick(
        self,
        parent_ctx: Context | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> list[threading.Thread]:
        """
        Emit one do-request span and fork work1/work2 under it.

        Blocks for request_delay (plus the children's remaining time when
        join_children is set). Returns the child threads; callers normally
        discard them.
        """
        threads: list[threading.Thread] = []
        with self.tracer.start_as_current_span(
            ROOT_SPAN_NAME,
            context=parent_ctx,
            attributes=dict(attributes) if attributes else None,
        ) as span:
            child_ctx = trace.set_span_in_context(span, parent_ctx)
            for name in CHILD_SPAN_NAMES:
                thread = threading.Thread(
                    target=self._work,
                    args=(child_ctx, name),
                    name=f"heartbeat-{name}",
                    daemon=True,
                )
                with self._lock:
                    self._active.add(thread)
                thread.start()
                threads.append(thread)

            self._sleep(self.request_delay)

        if self.join_children:
            for thread in threads:
                thread.join()
        return threads

    def _work(self, ctx: Context, name: str) -> None:
        try:
            with self.tracer.start_as_current_span(name, context=ctx):
                self._sleep(self.work_delay)
        finally:
            with self._lock:
                self._active.discard(threading.current_thread())

    def wait_for_children(self, timeout: float | None = None) -> bool:
        """
        Join in-flight child operations (used at shutdown).

        Returns:
            True when no child is still running afterwards
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            pending = list(self._active)
        for thread in pending:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return self.active_children == 0
