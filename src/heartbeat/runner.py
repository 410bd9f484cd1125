"""
Drive the emission loop: one correlated unit of logs, metrics and traces per tick.

Per tick, in order:
  1. draw latency in [0, 1) and pick an endpoint label
  2. count the request, observe the latency under str(iteration), log the tick,
     set the temperature gauge to a value in [20, 30)
  3. emit the do-request trace (blocks for the root span's own delay)
  4. wait `interval` seconds, unless stop() was requested

Ticks never overlap, and iteration indices increase by one per tick. Child
spans of one tick may still be running when the next tick starts.
"""

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from opentelemetry.context import Context

from .defaults import (
    DEFAULT_ENDPOINTS,
    DEFAULT_INTERVAL,
    DEFAULT_LATENCY_RANGE,
    DEFAULT_TEMPERATURE_RANGE,
)
from .generators.log_generator import LogCorrelator
from .generators.metric_generator import MetricsRecorder
from .generators.trace_generator import TracingEmitter

logger = logging.getLogger(__name__)


class UniformSource(Protocol):
    def uniform(self, min_val: float, max_val: float) -> float: ...

    def choice(self, seq: Sequence[str]) -> str: ...


@dataclass(frozen=True)
class Tick:
    """Values shared by the metrics, log record and trace of one loop pass."""

    iteration: int
    latency: float
    endpoint: str
    temperature: float

    @property
    def iteration_label(self) -> str:
        return str(self.iteration)

    def span_attributes(self) -> dict[str, str | int | float]:
        return {
            "heartbeat.iteration": self.iteration,
            "heartbeat.endpoint": self.endpoint,
            "heartbeat.latency": self.latency,
        }


class EmissionLoop:
    """Cancellable fixed-cadence scheduler for the per-tick generators."""

    def __init__(
        self,
        recorder: MetricsRecorder,
        correlator: LogCorrelator,
        emitter: TracingEmitter,
        random_source: UniformSource,
        endpoints: Sequence[str] = DEFAULT_ENDPOINTS,
        interval: float = DEFAULT_INTERVAL,
        root_context: Context | None = None,
        max_ticks: int | None = None,
        stop_event: threading.Event | None = None,
    ):
        if not endpoints:
            raise ValueError("endpoints must not be empty")
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.recorder = recorder
        self.correlator = correlator
        self.emitter = emitter
        self.random_source = random_source
        self.endpoints = tuple(endpoints)
        self.interval = interval
        self.root_context = root_context
        self.max_ticks = max_ticks
        self._stop = stop_event or threading.Event()
        self._thread: threading.Thread | None = None
        self.iteration = 0

    @property
    def ticks(self) -> int:
        """Completed loop passes."""
        return self.iteration

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def next_tick(self) -> Tick:
        """Draw the random values for the current iteration."""
        latency = self.random_source.uniform(*DEFAULT_LATENCY_RANGE)
        endpoint = self.random_source.choice(self.endpoints)
        temperature = self.random_source.uniform(*DEFAULT_TEMPERATURE_RANGE)
        return Tick(self.iteration, latency, endpoint, temperature)

    def run_once(self) -> Tick:
        """Run one tick and advance the iteration index."""
        tick = self.next_tick()

        self.recorder.record_request(tick.endpoint)
        self.recorder.record_latency(tick.iteration_label, tick.latency)
        self.correlator.emit(
            tick.iteration, tick.latency, endpoint=tick.endpoint, context=self.root_context
        )
        self.recorder.set_temperature(tick.temperature)

        self.emitter.run_tick(self.root_context, attributes=tick.span_attributes())

        logger.debug(
            "tick %d done: endpoint=%s latency=%.3f temperature=%.2f",
            tick.iteration,
            tick.endpoint,
            tick.latency,
            tick.temperature,
        )
        self.iteration += 1
        return tick

    def run(self) -> int:
        """
        Tick until stop() is called or max_ticks ticks have run.

        Returns:
            Number of ticks completed by this call
        """
        started_at = self.iteration
        logger.info(
            "Emission loop started (interval=%ss, endpoints=%s)",
            self.interval,
            ",".join(self.endpoints),
        )

        def budget_left() -> bool:
            return self.max_ticks is None or self.iteration - started_at < self.max_ticks

        while not self._stop.is_set() and budget_left():
            self.run_once()
            if not budget_left() or self._stop.wait(self.interval):
                break
        completed = self.iteration - started_at
        logger.info("Emission loop stopped after %d ticks", completed)
        return completed

    def start(self) -> threading.Thread:
        """Run the loop in a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Emission loop already running")
        self._thread = threading.Thread(target=self.run, name="heartbeat-loop", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> bool:
        """
        Request the loop to stop and wait for the current tick to finish.

        Returns:
            True when the loop thread is no longer running
        """
        self._stop.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
