# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the benchmark engine.

A single ``MetricsRegistry`` is created per process and handed explicitly to the
components that record into it. Each instance owns its own
``CollectorRegistry``, so tests can build as many as they like.
Collect hooks run before every render so buffered sources, such as the SDK
metric bridge, can flush into the registry first.
"""

from collections.abc import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from flowbench.common.enums import CompletionOutcome

__all__ = ["LATENCY_BUCKETS", "MetricsRegistry"]

# 1ms doubling up to roughly 8.7 minutes.
LATENCY_BUCKETS = tuple(0.001 * 2**n for n in range(20))


class MetricsRegistry:
    """Counters, gauges and the latency histogram exposed on /metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._collect_hooks: list[Callable[[], object]] = []

        self.workflow_starts_total = Counter(
            "benchmark_workflow_starts_total",
            "Workflow start attempts by result",
            labelnames=["result"],
            registry=self.registry,
        )
        self.workflows_total = Counter(
            "benchmark_workflows_total",
            "Completed workflows by result",
            labelnames=["result"],
            registry=self.registry,
        )
        self.workflow_latency_seconds = Histogram(
            "benchmark_workflow_latency_seconds",
            "Workflow end-to-end latency in seconds",
            labelnames=["workflow_type"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.current_rate = Gauge(
            "benchmark_current_rate",
            "Achieved workflow start rate per second",
            registry=self.registry,
        )
        self.target_rate = Gauge(
            "benchmark_target_rate",
            "Instantaneous target start rate per second",
            registry=self.registry,
        )
        self.throughput = Gauge(
            "benchmark_throughput_per_second",
            "Completed workflows per second for the last finished iteration",
            registry=self.registry,
        )
        self.in_flight = Gauge(
            "benchmark_workflows_in_flight",
            "Started workflows that have not completed or failed",
            registry=self.registry,
        )

    def record_start(self, success: bool) -> None:
        outcome = CompletionOutcome.SUCCESS if success else CompletionOutcome.FAILURE
        self.workflow_starts_total.labels(result=outcome.value).inc()

    def record_completion(
        self, workflow_type: str, duration_seconds: float, success: bool
    ) -> None:
        outcome = CompletionOutcome.SUCCESS if success else CompletionOutcome.FAILURE
        self.workflows_total.labels(result=outcome.value).inc()
        if success:
            self.workflow_latency_seconds.labels(workflow_type=workflow_type).observe(
                duration_seconds
            )

    def get_sample_value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of a sample, 0.0 if it has not been recorded yet."""
        value = self.registry.get_sample_value(name, labels or {})
        return 0.0 if value is None else value

    def add_collect_hook(self, hook: Callable[[], object]) -> None:
        self._collect_hooks.append(hook)

    def render(self) -> bytes:
        """Prometheus text exposition of every metric in the registry."""
        for hook in self._collect_hooks:
            hook()
        return generate_latest(self.registry)
