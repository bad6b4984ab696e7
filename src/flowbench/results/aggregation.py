# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Cross-iteration statistics for multi-iteration benchmarks.

Per-iteration results are never modified; this module only summarizes them.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
from scipy import stats

from flowbench.results.models import RunResult

logger = logging.getLogger(__name__)

__all__ = ["ConfidenceMetric", "IterationAggregate", "aggregate_iterations"]

# metric name -> (extractor, unit)
_METRICS = {
    "actual_rate": (lambda r: r.results.actual_rate, "workflows/s"),
    "latency_p50": (lambda r: r.results.latency.p50, "ms"),
    "latency_p95": (lambda r: r.results.latency.p95, "ms"),
    "latency_p99": (lambda r: r.results.latency.p99, "ms"),
    "latency_max": (lambda r: r.results.latency.max, "ms"),
    "workflows_completed": (lambda r: float(r.results.workflows_completed), "workflows"),
    "workflows_failed": (lambda r: float(r.results.workflows_failed), "workflows"),
}


@dataclass(slots=True)
class ConfidenceMetric:
    """Statistics for a single metric across iterations.

    Attributes:
        mean: Sample mean
        std: Sample standard deviation (ddof=1), 0 for a single iteration
        min: Minimum value
        max: Maximum value
        cv: Coefficient of variation (std/mean)
        se: Standard error (std/sqrt(n))
        ci_low: Lower bound of confidence interval
        ci_high: Upper bound of confidence interval
        t_critical: t-distribution critical value used for CI
        unit: Unit of measurement (e.g., "ms", "workflows/s")
    """

    mean: float
    std: float
    min: float
    max: float
    cv: float
    se: float
    ci_low: float
    ci_high: float
    t_critical: float
    unit: str


@dataclass(slots=True)
class IterationAggregate:
    """Summary of all iterations of one benchmark invocation."""

    num_iterations: int
    num_passed: int
    num_measured: int
    confidence_level: float
    total_started: int
    total_completed: int
    total_failed: int
    metrics: dict[str, ConfidenceMetric] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.num_iterations > 0 and self.num_passed == self.num_iterations

    def to_dict(self) -> dict[str, Any]:
        return {
            "numIterations": self.num_iterations,
            "numPassed": self.num_passed,
            "numMeasured": self.num_measured,
            "passed": self.passed,
            "confidenceLevel": self.confidence_level,
            "totalStarted": self.total_started,
            "totalCompleted": self.total_completed,
            "totalFailed": self.total_failed,
            "metrics": {name: asdict(metric) for name, metric in self.metrics.items()},
        }


def compute_confidence_stats(
    values: list[float], confidence_level: float, unit: str
) -> ConfidenceMetric:
    n = len(values)
    mean = float(np.mean(values))
    if n < 2:
        return ConfidenceMetric(
            mean=mean,
            std=0.0,
            min=mean,
            max=mean,
            cv=0.0,
            se=0.0,
            ci_low=mean,
            ci_high=mean,
            t_critical=0.0,
            unit=unit,
        )

    std = float(np.std(values, ddof=1))  # Sample std (N-1)
    # CV is a ratio, not a percentage
    cv = std / mean if mean != 0 else float("inf")
    se = std / float(np.sqrt(n))

    alpha = 1 - confidence_level
    t_critical = float(stats.t.ppf(1 - alpha / 2, n - 1))
    margin = t_critical * se

    return ConfidenceMetric(
        mean=mean,
        std=std,
        min=float(min(values)),
        max=float(max(values)),
        cv=cv,
        se=se,
        ci_low=mean - margin,
        ci_high=mean + margin,
        t_critical=t_critical,
        unit=unit,
    )


def aggregate_iterations(
    results: list[RunResult], confidence_level: float = 0.95
) -> IterationAggregate:
    """Summarize iterations; only iterations that started workflows contribute to metrics.

    Raises:
        ValueError: If confidence_level is not between 0 and 1.
    """
    if not 0 < confidence_level < 1:
        raise ValueError(
            f"Invalid confidence level: {confidence_level}. "
            "Confidence level must be between 0 and 1 (exclusive)."
        )

    measured = [r for r in results if r.results.workflows_started > 0]
    if len(measured) < len(results):
        logger.warning(
            f"{len(results) - len(measured)} iteration(s) generated no load and are "
            "excluded from aggregate statistics"
        )

    metrics: dict[str, ConfidenceMetric] = {}
    if measured:
        for name, (extract, unit) in _METRICS.items():
            metrics[name] = compute_confidence_stats(
                [extract(r) for r in measured], confidence_level, unit
            )

    return IterationAggregate(
        num_iterations=len(results),
        num_passed=sum(1 for r in results if r.passed),
        num_measured=len(measured),
        confidence_level=confidence_level,
        total_started=sum(r.results.workflows_started for r in results),
        total_completed=sum(r.results.workflows_completed for r in results),
        total_failed=sum(r.results.workflows_failed for r in results),
        metrics=metrics,
    )
