"""
Prometheus `/metrics` endpoint over an injected registry.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


@dataclass
class MetricsServer:
    """Handle on the running exposition server."""

    host: str
    port: int
    server: Any
    thread: threading.Thread

    def shutdown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(timeout=5)


def start_metrics_server(
    registry: CollectorRegistry,
    *,
    host: str,
    port: int,
) -> MetricsServer | None:
    """
    Serve the registry's text exposition on http://host:port/metrics.

    A port of 0 or less disables the server. Bind errors (port in use,
    permission denied) propagate as OSError.
    """
    if port <= 0:
        logger.info("Metrics endpoint disabled (port=%d)", port)
        return None
    server, thread = start_http_server(port, addr=host, registry=registry)
    logger.info("Prometheus metrics running on %s:%d/metrics", host, port)
    return MetricsServer(host=host, port=port, server=server, thread=thread)
