# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Lightweight asyncio HTTP server for Prometheus scrapes and health checks.

Serves:
    GET /metrics  - Prometheus text exposition of the MetricsRegistry
    GET /healthz  - Liveness of the attached health source
    GET /readyz   - Readiness of the attached health source

Configuration via environment variables:
    FLOWBENCH_METRICS_ENABLED=true          # Serve the endpoint
    FLOWBENCH_METRICS_HOST=0.0.0.0          # Bind address
    FLOWBENCH_METRICS_PORT=9090             # Port
    FLOWBENCH_METRICS_REQUEST_TIMEOUT=5.0   # Request read timeout
"""

from __future__ import annotations

import asyncio
from asyncio import StreamReader, StreamWriter
from typing import Protocol

from prometheus_client import CONTENT_TYPE_LATEST

from flowbench.common.environment import Environment
from flowbench.common.mixins import FlowBenchLoggerMixin
from flowbench.metrics.registry import MetricsRegistry

__all__ = ["MetricsServer"]


class HealthSource(Protocol):
    def is_healthy(self) -> bool: ...

    def is_ready(self) -> bool: ...


def _make_response(
    status_code: int,
    status_text: str,
    body: bytes | None = None,
    content_type: str = "text/plain",
) -> bytes:
    """Build an HTTP response as bytes."""
    body = body if body is not None else status_text.encode()
    head = (
        f"HTTP/1.1 {status_code} {status_text}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(body)}\r\n"
        f"Connection: close\r\n"
        f"\r\n"
    ).encode()
    return head + body


# Pre-computed responses (avoid string formatting on every request)
_RESP_OK = _make_response(200, "OK", b"ok")
_RESP_UNHEALTHY = _make_response(503, "Service Unavailable", b"unhealthy")
_RESP_NOT_READY = _make_response(503, "Service Unavailable", b"not ready")
_RESP_NOT_FOUND = _make_response(404, "Not Found")
_RESP_BAD_REQUEST = _make_response(400, "Bad Request")
_RESP_METHOD_NOT_ALLOWED = _make_response(405, "Method Not Allowed")


class MetricsServer(FlowBenchLoggerMixin):
    """Process-lifetime HTTP endpoint for the metrics registry.

    Without a health source attached, /healthz answers ok and /readyz answers
    not ready.
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        host: str | None = None,
        port: int | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._registry = registry
        self._host = host if host is not None else Environment.METRICS.HOST
        self._port = port if port is not None else Environment.METRICS.PORT
        self._server: asyncio.Server | None = None
        self._health_source: HealthSource | None = None

    @property
    def port(self) -> int:
        """Bound port; differs from the configured one when started on port 0."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def set_health_source(self, source: HealthSource | None) -> None:
        self._health_source = source

    async def start(self) -> None:
        if self._server is not None:
            self.debug("Metrics server already running. Ignoring start request.")
            return
        try:
            self._server = await asyncio.start_server(
                self._handle_request, host=self._host, port=self._port
            )
        except OSError as e:
            self.error(
                f"Metrics server failed to bind to {self._host}:{self._port}: {e!r}. "
                "Set FLOWBENCH_METRICS_ENABLED=false or choose another port."
            )
            raise
        self.info(f"Metrics server listening on {self._host}:{self.port}")

    async def stop(self) -> None:
        if self._server is None:
            self.debug("Metrics server is not running. Ignoring stop request.")
            return
        server = self._server
        self._server = None
        server.close()
        await server.wait_closed()
        self.debug("Metrics server stopped.")

    def _health_response(self) -> bytes:
        if self._health_source is None or self._health_source.is_healthy():
            return _RESP_OK
        return _RESP_UNHEALTHY

    def _ready_response(self) -> bytes:
        if self._health_source is not None and self._health_source.is_ready():
            return _RESP_OK
        return _RESP_NOT_READY

    async def _handle_request(self, reader: StreamReader, writer: StreamWriter) -> None:
        try:
            request_line = await asyncio.wait_for(
                reader.readline(), timeout=Environment.METRICS.REQUEST_TIMEOUT
            )
            if not request_line:
                return

            # Example: "GET /metrics HTTP/1.1\r\n"
            parts = request_line.split(maxsplit=2)
            if len(parts) < 2:
                writer.write(_RESP_BAD_REQUEST)
                await writer.drain()
                return

            method, path = parts[0], parts[1].split(b"?", 1)[0]

            if method != b"GET":
                writer.write(_RESP_METHOD_NOT_ALLOWED)
            elif path == b"/metrics":
                writer.write(
                    _make_response(
                        200, "OK", self._registry.render(), CONTENT_TYPE_LATEST
                    )
                )
            elif path == b"/healthz":
                writer.write(self._health_response())
            elif path == b"/readyz":
                writer.write(self._ready_response())
            else:
                writer.write(_RESP_NOT_FOUND)

            await writer.drain()

        except TimeoutError:
            self.warning("Metrics request timed out")
        except (ConnectionError, OSError) as e:
            self.debug(f"Metrics client disconnected: {e!r}")
        finally:
            writer.close()
            await writer.wait_closed()
