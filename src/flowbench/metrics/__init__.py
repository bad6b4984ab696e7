# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Latency aggregation, percentile math and Prometheus exposition."""

from flowbench.metrics.aggregator import AggregatorSnapshot, LatencyAggregator
from flowbench.metrics.percentiles import (
    LatencyPercentiles,
    calculate_percentiles,
    nearest_rank,
    validate_percentile_ordering,
)
from flowbench.metrics.registry import LATENCY_BUCKETS, MetricsRegistry
from flowbench.metrics.server import MetricsServer

__all__ = [
    "AggregatorSnapshot",
    "LATENCY_BUCKETS",
    "LatencyAggregator",
    "LatencyPercentiles",
    "MetricsRegistry",
    "MetricsServer",
    "calculate_percentiles",
    "nearest_rank",
    "validate_percentile_ordering",
]
