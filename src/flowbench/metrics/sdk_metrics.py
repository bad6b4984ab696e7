# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Temporal SDK client metrics on the benchmark's Prometheus endpoint.

The SDK runtime records its client metrics (request latency, request failures,
long requests) into a ``MetricBuffer``. ``SdkMetricsBridge`` drains that buffer
into collectors on the benchmark ``CollectorRegistry``, creating one collector
per SDK metric the first time it appears. The label names of a metric are
fixed by its first update; later updates fill missing labels with ``""`` and
drop attributes that are not labels.

Durations are buffered in seconds and observed into histograms with
``LATENCY_BUCKETS``.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from prometheus_client import Counter, Gauge, Histogram
from temporalio.runtime import (
    BUFFERED_METRIC_KIND_COUNTER,
    BUFFERED_METRIC_KIND_GAUGE,
    MetricBuffer,
    MetricBufferDurationFormat,
    Runtime,
    TelemetryConfig,
)

from flowbench.common.constants import SDK_METRIC_BUFFER_SIZE
from flowbench.common.environment import Environment
from flowbench.common.mixins import FlowBenchLoggerMixin
from flowbench.metrics.registry import LATENCY_BUCKETS

if TYPE_CHECKING:
    from flowbench.metrics.registry import MetricsRegistry

__all__ = ["SdkMetricsBridge"]

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")
_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def _metric_name(name: str) -> str:
    return _INVALID_NAME_CHARS.sub("_", name)


def _label_name(name: str) -> str:
    return _INVALID_LABEL_CHARS.sub("_", name)


class SdkMetricsBridge(FlowBenchLoggerMixin):
    """Copies buffered Temporal SDK metric updates into a MetricsRegistry.

    Args:
        registry: Registry the SDK metrics are exposed on
        buffer: SDK metric buffer, created with seconds durations when omitted
        interval: Seconds between background drains, defaults to
            ``Environment.METRICS.SDK_DRAIN_INTERVAL``
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        buffer: MetricBuffer | None = None,
        interval: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._registry = registry
        self._buffer = buffer or MetricBuffer(
            SDK_METRIC_BUFFER_SIZE, duration_format=MetricBufferDurationFormat.SECONDS
        )
        self._interval = (
            Environment.METRICS.SDK_DRAIN_INTERVAL if interval is None else interval
        )
        self._runtime: Runtime | None = None
        self._collectors: dict[str, tuple[Counter | Gauge | Histogram, tuple[str, ...]]] = {}
        self._rejected: set[str] = set()
        self._task: asyncio.Task | None = None
        registry.add_collect_hook(self.drain)

    @property
    def runtime(self) -> Runtime:
        """SDK runtime recording into the buffer. Pass it to ``Client.connect``."""
        if self._runtime is None:
            self._runtime = Runtime(telemetry=TelemetryConfig(metrics=self._buffer))
        return self._runtime

    def drain(self) -> int:
        """Apply every buffered update to the registry. Returns the number applied."""
        if self._runtime is None:
            # The buffer only exists once a runtime was created for it.
            return 0
        updates = self._buffer.retrieve_updates()
        for update in updates:
            self._apply(
                update.metric.name,
                update.metric.description,
                update.metric.kind,
                update.value,
                update.attributes,
            )
        return len(updates)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._drain_periodically())

    async def stop(self) -> None:
        """Stop background drains and flush what is left in the buffer."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.drain()

    async def _drain_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.drain()

    def _apply(
        self,
        name: str,
        description: str | None,
        kind: int,
        value: float,
        attributes: Mapping[str, Any],
    ) -> None:
        entry = self._collector(name, description, kind, attributes)
        if entry is None:
            return
        collector, labelnames = entry
        if labelnames:
            collector = collector.labels(
                *(str(attributes.get(label, "")) for label in labelnames)
            )
        if kind == BUFFERED_METRIC_KIND_COUNTER:
            collector.inc(value)
        elif kind == BUFFERED_METRIC_KIND_GAUGE:
            collector.set(value)
        else:
            collector.observe(value)

    def _collector(
        self,
        name: str,
        description: str | None,
        kind: int,
        attributes: Mapping[str, Any],
    ) -> tuple[Counter | Gauge | Histogram, tuple[str, ...]] | None:
        entry = self._collectors.get(name)
        if entry is not None or name in self._rejected:
            return entry

        metric_name = _metric_name(name)
        labelnames = tuple(sorted(_label_name(key) for key in attributes))
        documentation = description or f"Temporal SDK metric {name}"
        try:
            if kind == BUFFERED_METRIC_KIND_COUNTER:
                collector = Counter(
                    metric_name, documentation, labelnames, registry=self._registry.registry
                )
            elif kind == BUFFERED_METRIC_KIND_GAUGE:
                collector = Gauge(
                    metric_name, documentation, labelnames, registry=self._registry.registry
                )
            else:
                collector = Histogram(
                    metric_name,
                    documentation,
                    labelnames,
                    buckets=LATENCY_BUCKETS,
                    registry=self._registry.registry,
                )
        except ValueError as e:
            self._rejected.add(name)
            self.warning(f"Not exposing SDK metric {name}: {e}")
            return None

        # Label values are looked up by the SDK attribute keys, not the sanitised names.
        keys = {_label_name(key): key for key in attributes}
        entry = (collector, tuple(keys[label] for label in labelnames))
        self._collectors[name] = entry
        return entry
