"""Shared fixtures: private registry, in-memory span capture, scripted randomness."""

import time
from collections.abc import Callable, Sequence

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import CollectorRegistry

from heartbeat.generators.trace_generator import TRACER_NAME, build_tracer_provider


class ScriptedRandom:
    """Random source replaying fixed values; uniform() answers come from the
    latencies and temperatures queues in the order the loop asks for them."""

    def __init__(
        self,
        latencies: Sequence[float],
        endpoints: Sequence[str],
        temperatures: Sequence[float] | None = None,
    ):
        self.latencies = list(latencies)
        self.endpoints = list(endpoints)
        self.temperatures = list(temperatures or [25.0] * len(latencies))

    def uniform(self, min_val: float, max_val: float) -> float:
        queue = self.latencies if (min_val, max_val) == (0.0, 1.0) else self.temperatures
        value = queue.pop(0)
        assert min_val <= value < max_val
        return value

    def choice(self, seq: Sequence[str]) -> str:
        endpoint = self.endpoints.pop(0)
        assert endpoint in seq
        return endpoint


def no_sleep(_seconds: float) -> None:
    return None


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter):
    provider: TracerProvider = build_tracer_provider(span_exporter, batch=False)
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider: TracerProvider):
    return tracer_provider.get_tracer(TRACER_NAME)
