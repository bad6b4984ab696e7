# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Concurrency-safe latency sample store.

Samples are spread over lock-striped shards. Each recording thread is assigned
a shard round-robin on its first record call, so recorders on different threads
rarely contend and no single lock serializes all of them. Within one event loop
every record call lands on the same shard and the lock is uncontended.
"""

import itertools
import threading
from dataclasses import dataclass

from flowbench.common.constants import MILLIS_PER_SECOND
from flowbench.metrics.percentiles import LatencyPercentiles, calculate_percentiles

__all__ = ["AggregatorSnapshot", "LatencyAggregator"]

_DEFAULT_SHARDS = 16


@dataclass(frozen=True, slots=True)
class AggregatorSnapshot:
    """Frozen view of the aggregator. Percentiles cover successful samples only."""

    p50: float
    p95: float
    p99: float
    max: float
    count: int
    failure_count: int

    @property
    def total_count(self) -> int:
        return self.count + self.failure_count

    @property
    def percentiles(self) -> LatencyPercentiles:
        return LatencyPercentiles(p50=self.p50, p95=self.p95, p99=self.p99, max=self.max)


class _Shard:
    __slots__ = ("lock", "successes_ms", "failures")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.successes_ms: list[float] = []
        self.failures = 0


class LatencyAggregator:
    """Records (duration, success) samples and answers exact percentile queries."""

    def __init__(self, shard_count: int = _DEFAULT_SHARDS) -> None:
        if shard_count < 1:
            raise ValueError(f"shard_count must be at least 1, got {shard_count}")
        self._shards = tuple(_Shard() for _ in range(shard_count))
        self._next_shard = itertools.count()
        self._local = threading.local()

    def _shard(self) -> _Shard:
        index = getattr(self._local, "shard_index", None)
        if index is None:
            index = next(self._next_shard) % len(self._shards)
            self._local.shard_index = index
        return self._shards[index]

    def record(self, duration_seconds: float, success: bool) -> None:
        """Record one completion. Safe from any thread; O(1) amortized."""
        shard = self._shard()
        with shard.lock:
            if success:
                shard.successes_ms.append(duration_seconds * MILLIS_PER_SECOND)
            else:
                shard.failures += 1

    def snapshot(self) -> AggregatorSnapshot:
        successes: list[float] = []
        failures = 0
        for shard in self._shards:
            with shard.lock:
                successes.extend(shard.successes_ms)
                failures += shard.failures
        p = calculate_percentiles(successes)
        return AggregatorSnapshot(
            p50=p.p50,
            p95=p.p95,
            p99=p.p99,
            max=p.max,
            count=len(successes),
            failure_count=failures,
        )
