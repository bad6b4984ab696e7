# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Nearest-rank percentile selection over latency samples."""

import math
from collections.abc import Iterable
from dataclasses import dataclass

__all__ = [
    "LatencyPercentiles",
    "calculate_percentiles",
    "nearest_rank",
    "validate_percentile_ordering",
]


@dataclass(frozen=True, slots=True)
class LatencyPercentiles:
    """p50/p95/p99/max latencies in milliseconds. All zero for an empty sample set."""

    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    max: float = 0.0


def nearest_rank(sorted_values: list[float], percentile: float) -> float:
    """Select the ``percentile`` (0-100) value from an ascending list.

    Uses index ``ceil(p/100 * n) - 1``, clamped to ``[0, n - 1]``. No interpolation, so
    the result is always one of the recorded samples.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = math.ceil(percentile / 100 * n) - 1
    return sorted_values[min(max(index, 0), n - 1)]


def calculate_percentiles(latencies_ms: Iterable[float]) -> LatencyPercentiles:
    """Compute p50/p95/p99/max on a sorted copy of ``latencies_ms``."""
    ordered = sorted(latencies_ms)
    if not ordered:
        return LatencyPercentiles()
    return LatencyPercentiles(
        p50=nearest_rank(ordered, 50),
        p95=nearest_rank(ordered, 95),
        p99=nearest_rank(ordered, 99),
        max=ordered[-1],
    )


def validate_percentile_ordering(p: LatencyPercentiles) -> bool:
    """True if p50 <= p95 <= p99 <= max."""
    return p.p50 <= p.p95 <= p.p99 <= p.max
