"""
OTLP trace exporter factory and collector reachability probe.

Supports both gRPC (default, localhost:4317) and HTTP (localhost:4318) protocols.
The exporter itself connects lazily; wait_for_collector() is called at startup
so that an unreachable collector fails fast instead of silently dropping spans.
"""

import socket
from typing import Any
from urllib.parse import urlparse

import grpc


class CollectorUnreachableError(ConnectionError):
    """The OTLP endpoint did not accept a connection within the timeout."""


def _strip_scheme(endpoint: str) -> str:
    return endpoint.replace("http://", "").replace("https://", "")


def create_otlp_trace_exporter(
    endpoint: str = "localhost:4317",
    protocol: str = "grpc",
    insecure: bool = True,
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Create an OTLP trace exporter.

    Args:
        endpoint: host:port for gRPC, base URL for HTTP
        protocol: "grpc" or "http"
        insecure: disable TLS (gRPC only)
        headers: Optional headers to include
        **kwargs: Additional exporter configuration

    Returns:
        Configured SpanExporter
    """
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter(
            endpoint=_strip_scheme(endpoint),
            insecure=insecure,
            headers=headers,
            **kwargs,
        )
    else:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
            OTLPSpanExporter,
        )

        traces_endpoint = endpoint
        if not traces_endpoint.startswith(("http://", "https://")):
            traces_endpoint = f"http://{traces_endpoint}"
        if not traces_endpoint.endswith("/v1/traces"):
            traces_endpoint = f"{traces_endpoint.rstrip('/')}/v1/traces"
        return OTLPSpanExporter(
            endpoint=traces_endpoint,
            headers=headers,
            **kwargs,
        )


def _host_port(endpoint: str, default_port: int) -> tuple[str, int]:
    """Split 'host:port' or 'http://host:port/path' into (host, port)."""
    target = endpoint if "://" in endpoint else f"//{endpoint}"
    parsed = urlparse(target)
    host = parsed.hostname or "localhost"
    return host, parsed.port or default_port


def wait_for_collector(endpoint: str, protocol: str = "grpc", timeout: float = 10.0) -> None:
    """
    Block until the collector accepts a connection.

    gRPC waits for channel readiness; HTTP waits for a TCP connect.

    Raises:
        CollectorUnreachableError: endpoint not reachable within `timeout` seconds
    """
    if protocol == "grpc":
        target = _strip_scheme(endpoint)
        channel = grpc.insecure_channel(target)
        try:
            grpc.channel_ready_future(channel).result(timeout=timeout)
        except grpc.FutureTimeoutError as exc:
            raise CollectorUnreachableError(
                f"OTLP collector at {target} not reachable within {timeout}s"
            ) from exc
        finally:
            channel.close()
        return

    host, port = _host_port(endpoint, 4318)
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as exc:
        raise CollectorUnreachableError(
            f"OTLP collector at {host}:{port} not reachable: {exc}"
        ) from exc
