# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Periodic progress reporting for a running generator.

A background task samples the generator every interval, publishes the achieved
rate to the metrics registry and logs progress. Once ramp-up has finished, each
interval's start rate is compared with the target; an interval below 90% of the
target logs a warning. The observations feed an informational note in the
result and never affect the verdict.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from flowbench.common.constants import RATE_SHORTFALL_FRACTION
from flowbench.common.environment import Environment
from flowbench.common.mixins import FlowBenchLoggerMixin

if TYPE_CHECKING:
    from flowbench.generator.generator import WorkflowGenerator
    from flowbench.metrics import MetricsRegistry

__all__ = ["RateMonitor"]


class RateMonitor(FlowBenchLoggerMixin):
    """Samples a WorkflowGenerator on a fixed interval until stopped."""

    def __init__(
        self,
        generator: WorkflowGenerator,
        registry: MetricsRegistry,
        interval: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._generator = generator
        self._registry = registry
        self._interval = (
            interval if interval is not None else Environment.RUNNER.PROGRESS_INTERVAL
        )
        self._task: asyncio.Task | None = None
        self._stop_requested = False
        self._steady_rates: list[float] = []

    @property
    def steady_rates(self) -> list[float]:
        """Start rate of each full interval observed after ramp-up."""
        return list(self._steady_rates)

    @property
    def achieved_steady_rate(self) -> float | None:
        if not self._steady_rates:
            return None
        return sum(self._steady_rates) / len(self._steady_rates)

    def below_target(self) -> bool:
        """True if the mean post-ramp-up start rate fell short of the target."""
        rate = self.achieved_steady_rate
        return (
            rate is not None
            and rate < self._generator.target_rate * RATE_SHORTFALL_FRACTION
        )

    def start(self) -> None:
        self._stop_requested = False
        if self._task is None:
            self._task = asyncio.create_task(self._monitor())

    async def stop(self) -> None:
        if self._stop_requested:
            return
        self._stop_requested = True
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    def sample(self, previous_started: int, window: float, counted: bool) -> int:
        """Record one observation; returns the started count for the next window."""
        stats = self._generator.stats()
        window_rate = (stats.started - previous_started) / window if window > 0 else 0.0
        self._registry.current_rate.set(window_rate)
        self._registry.in_flight.set(stats.in_flight)
        self.info(
            f"Progress: {stats.started} started, {stats.completed} completed, "
            f"{stats.failed} failed, {stats.in_flight} in flight, "
            f"rate {window_rate:.2f}/s (target {stats.target_rate:.2f}/s)"
        )
        if counted:
            self._steady_rates.append(window_rate)
            if window_rate < stats.target_rate * RATE_SHORTFALL_FRACTION:
                self.warning(
                    f"Actual rate ({window_rate:.2f}/s) is below target ({stats.target_rate:.2f}/s)"
                )
        return stats.started

    async def _monitor(self) -> None:
        loop = asyncio.get_running_loop()
        previous_started = self._generator.stats().started
        while not self._stop_requested:
            window_start = loop.time()
            ramp_done_at_start = self._generator.is_ramp_up_complete()
            await asyncio.sleep(self._interval)
            previous_started = self.sample(
                previous_started, loop.time() - window_start, ramp_done_at_start
            )
