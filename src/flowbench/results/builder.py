# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Pure construction of RunResult records and threshold evaluation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from flowbench.common.config.durations import format_duration
from flowbench.results.models import (
    ResultConfig,
    ResultLatency,
    ResultMetrics,
    ResultThresholds,
    RunResult,
)

if TYPE_CHECKING:
    from flowbench.common.config import RunConfig
    from flowbench.generator import GeneratorStats
    from flowbench.metrics import AggregatorSnapshot

__all__ = [
    "build_failed_result",
    "build_result_config",
    "build_run_result",
    "calculate_actual_rate",
    "evaluate_thresholds",
    "incomplete_drain_note",
]


def calculate_actual_rate(completed: int, duration_seconds: float) -> float:
    """Completed workflows per second; 0 for a non-positive duration."""
    if duration_seconds <= 0:
        return 0.0
    return completed / duration_seconds


def evaluate_thresholds(
    p99_ms: float, actual_rate: float, max_p99_ms: float, min_throughput: float
) -> tuple[bool, list[str]]:
    """Check both thresholds independently.

    Returns:
        (passed, reasons) with one reason per violated threshold.
    """
    reasons: list[str] = []
    if p99_ms > max_p99_ms:
        reasons.append(
            f"p99 latency {p99_ms:.2f}ms exceeds threshold {max_p99_ms:.2f}ms"
        )
    if actual_rate < min_throughput:
        reasons.append(
            f"throughput {actual_rate:.2f}/s below threshold {min_throughput:.2f}/s"
        )
    return not reasons, reasons


def incomplete_drain_note(started: int, completed: int, failed: int) -> str:
    return (
        f"IncompleteDrain: {started - completed - failed} workflow(s) still in flight "
        f"at report time (started {started} > completed {completed} + failed {failed})"
    )


def build_result_config(config: RunConfig, namespace: str) -> ResultConfig:
    return ResultConfig(
        workflow_type=config.workflow.kind,
        **config.workflow.result_parameters(),
        target_rate=config.target_rate,
        duration=format_duration(config.test_duration),
        ramp_up_duration=format_duration(config.ramp_up_duration),
        worker_count=config.worker_count,
        iterations=config.iterations,
        namespace=namespace,
    )


def build_run_result(
    config: RunConfig,
    stats: GeneratorStats,
    snapshot: AggregatorSnapshot,
    system_context: Mapping[str, Any] | None = None,
    *,
    namespace: str,
    start_time: datetime,
    duration_actual: float,
    end_time: datetime | None = None,
    iteration: int = 1,
    drain_complete: bool = True,
    extra_failure_reasons: Iterable[str] = (),
    notes: Iterable[str] = (),
) -> RunResult:
    """Assemble the result for one iteration. No side effects.

    ``actual_rate`` is completed workflows over ``duration_actual``. Threshold
    violations come first in ``failure_reasons``, followed by any
    ``extra_failure_reasons``; ``passed`` is False whenever the list is non-empty.
    An incomplete drain adds a note and never changes the verdict. ``end_time``
    defaults to ``start_time`` plus ``duration_actual``.
    """
    actual_rate = calculate_actual_rate(stats.completed, duration_actual)
    _, reasons = evaluate_thresholds(
        snapshot.p99, actual_rate, config.max_p99_latency_ms, config.min_throughput
    )
    reasons.extend(extra_failure_reasons)

    all_notes = list(notes)
    if not drain_complete:
        all_notes.insert(
            0, incomplete_drain_note(stats.started, stats.completed, stats.failed)
        )

    return RunResult(
        timestamp=start_time,
        start_time=start_time,
        end_time=end_time or start_time + timedelta(seconds=duration_actual),
        iteration=iteration,
        config=build_result_config(config, namespace),
        results=ResultMetrics(
            workflows_started=stats.started,
            workflows_completed=stats.completed,
            workflows_failed=stats.failed,
            actual_rate=actual_rate,
            duration_actual=duration_actual,
            drain_complete=drain_complete,
            latency=ResultLatency(
                p50=snapshot.p50, p95=snapshot.p95, p99=snapshot.p99, max=snapshot.max
            ),
        ),
        system=dict(system_context or config.system_context),
        thresholds=ResultThresholds(
            max_p99_latency_ms=config.max_p99_latency_ms,
            min_throughput=config.min_throughput,
        ),
        passed=not reasons,
        failure_reasons=reasons,
        notes=all_notes,
    )


def build_failed_result(
    config: RunConfig,
    *,
    namespace: str,
    start_time: datetime,
    iteration: int,
    reason: str,
    end_time: datetime | None = None,
    system_context: Mapping[str, Any] | None = None,
) -> RunResult:
    """Result for an iteration that generated no load, e.g. a failed pre-flight gate."""
    return RunResult(
        timestamp=start_time,
        start_time=start_time,
        end_time=end_time or start_time,
        iteration=iteration,
        config=build_result_config(config, namespace),
        results=ResultMetrics(
            workflows_started=0,
            workflows_completed=0,
            workflows_failed=0,
            actual_rate=0.0,
            duration_actual=0.0,
        ),
        system=dict(system_context or config.system_context),
        thresholds=ResultThresholds(
            max_p99_latency_ms=config.max_p99_latency_ms,
            min_throughput=config.min_throughput,
        ),
        passed=False,
        failure_reasons=[reason],
    )
