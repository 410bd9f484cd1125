"""
Process bootstrap: build the collaborators in startup order and own shutdown.

Startup (any failure raises StartupError, nothing is left running):
  1. Prometheus registry and MetricsRecorder
  2. span exporter (OTLP after a collector reachability probe, file or console)
  3. TracerProvider and the process-lifetime "main" span
  4. LogCorrelator, TracingEmitter, RandomSource, EmissionLoop
  5. /metrics listener

Shutdown: stop loop -> drain child spans -> end "main" -> flush/shutdown the
provider -> stop the listener.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SpanExporter
from opentelemetry.trace import Span
from prometheus_client import CollectorRegistry

from .config import ExporterConfig, HeartbeatConfig
from .exporters import (
    CollectorUnreachableError,
    FileSpanExporter,
    create_console_exporter,
    create_otlp_trace_exporter,
    wait_for_collector,
)
from .generators.log_generator import LogCorrelator
from .generators.metric_generator import MetricsRecorder
from .generators.trace_generator import (
    MAIN_SPAN_NAME,
    TRACER_NAME,
    TracingEmitter,
    build_tracer_provider,
    shutdown_tracer_provider,
)
from .metrics_server import MetricsServer, start_metrics_server
from .runner import EmissionLoop
from .statistics import RandomSource

logger = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Fatal initialization failure; the process must exit non-zero."""


def create_span_exporter(config: ExporterConfig) -> SpanExporter:
    """Build the span exporter selected by config.kind."""
    if config.kind == "file":
        if not config.output_file:
            raise StartupError("exporter.output_file is required for the file exporter")
        return FileSpanExporter(config.output_file)
    if config.kind == "console":
        return create_console_exporter()

    if config.wait_for_collector:
        logger.info(
            "Waiting up to %ss for OTLP collector at %s (%s)",
            config.connect_timeout,
            config.endpoint,
            config.protocol,
        )
        try:
            wait_for_collector(config.endpoint, config.protocol, timeout=config.connect_timeout)
        except CollectorUnreachableError as exc:
            raise StartupError(str(exc)) from exc
    try:
        return create_otlp_trace_exporter(
            config.endpoint, protocol=config.protocol, insecure=config.insecure
        )
    except Exception as exc:
        raise StartupError(f"Cannot create OTLP exporter for {config.endpoint}: {exc}") from exc


@dataclass
class HeartbeatApp:
    """Running emitter with its collaborators."""

    config: HeartbeatConfig
    registry: CollectorRegistry
    recorder: MetricsRecorder
    tracer_provider: TracerProvider
    main_span: Span
    emitter: TracingEmitter
    loop: EmissionLoop
    metrics_server: MetricsServer | None = None
    _closed: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def start(self) -> threading.Thread:
        """Start the emission loop thread."""
        return self.loop.start()

    def wait(self, poll_interval: float = 0.5) -> None:
        """Block until the loop ends; polls so KeyboardInterrupt is delivered."""
        while self.loop.running:
            self.loop.join(poll_interval)

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop everything in order. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if timeout is None:
            timeout = self.emitter.request_delay + self.emitter.work_delay + 1.0
        if not self.loop.stop(timeout):
            logger.warning("Emission loop did not stop within %.1fs", timeout)
        if not self.emitter.wait_for_children(timeout):
            logger.warning("%d child spans still running at shutdown", self.emitter.active_children)
        self.main_span.end()
        shutdown_tracer_provider(self.tracer_provider)
        if self.metrics_server is not None:
            self.metrics_server.shutdown()
        logger.info("Shutdown complete after %d ticks", self.loop.ticks)


def build_app(
    config: HeartbeatConfig,
    exporter: SpanExporter | None = None,
    registry: CollectorRegistry | None = None,
    random_source: Any = None,
    sleep: Callable[[float], Any] = time.sleep,
    batch_spans: bool = True,
    install_global: bool = False,
) -> HeartbeatApp:
    """
    Wire collaborators from config. Does not start the loop.

    Args:
        config: validated HeartbeatConfig
        exporter: span exporter; built from config.exporter when None
        registry: Prometheus registry; a fresh one when None
        random_source: object with uniform()/choice(); RandomSource(config.loop.seed) when None
        sleep: delay function for span work (tests pass a fast one)
        batch_spans: BatchSpanProcessor (True) or SimpleSpanProcessor (False)
        install_global: also register the provider as the global tracer provider

    Raises:
        StartupError: exporter, collector or listener could not be set up
    """
    registry = registry if registry is not None else CollectorRegistry()
    recorder = MetricsRecorder(registry, namespace=config.metrics.namespace)

    if exporter is None:
        exporter = create_span_exporter(config.exporter)

    provider = build_tracer_provider(
        exporter,
        service_name=config.service_name,
        service_version=config.service_version,
        batch=batch_spans,
    )
    if install_global:
        trace.set_tracer_provider(provider)
    tracer = provider.get_tracer(TRACER_NAME)

    main_span = tracer.start_span(MAIN_SPAN_NAME)
    root_context = trace.set_span_in_context(main_span)

    emitter = TracingEmitter(
        tracer,
        request_delay=config.loop.request_delay,
        work_delay=config.loop.work_delay,
        join_children=config.loop.join_children,
        sleep=sleep,
    )
    loop = EmissionLoop(
        recorder,
        LogCorrelator(),
        emitter,
        random_source or RandomSource(config.loop.seed),
        endpoints=config.loop.endpoints,
        interval=config.loop.interval,
        root_context=root_context,
        max_ticks=config.loop.max_ticks,
    )

    try:
        metrics_server = start_metrics_server(
            registry, host=config.metrics.host, port=config.metrics.port
        )
    except OSError as exc:
        main_span.end()
        provider.shutdown()
        raise StartupError(
            f"Cannot bind metrics listener on {config.metrics.host}:{config.metrics.port}: {exc}"
        ) from exc

    return HeartbeatApp(
        config=config,
        registry=registry,
        recorder=recorder,
        tracer_provider=provider,
        main_span=main_span,
        emitter=emitter,
        loop=loop,
        metrics_server=metrics_server,
    )
