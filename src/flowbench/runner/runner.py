# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Benchmark runner: sequences the phases of each benchmark iteration.

Per iteration the runner passes the pre-flight gate, drives the generator
through ramp-up and steady load, drains, builds the result and cleans up the
namespace. Cleanup runs whenever the namespace was ensured, including after
errors and cancellation.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from flowbench.cleanup import CleanupAgent, CleanupResult
from flowbench.common.enums import RunPhase
from flowbench.common.environment import Environment
from flowbench.common.exceptions import PreflightError
from flowbench.common.mixins import FlowBenchLoggerMixin, HealthCheckMixin
from flowbench.gate import PreflightGate
from flowbench.generator import RateMonitor, WorkflowGenerator
from flowbench.metrics import LatencyAggregator
from flowbench.results import (
    IterationAggregate,
    RunResult,
    aggregate_iterations,
    build_failed_result,
    build_run_result,
)

if TYPE_CHECKING:
    from flowbench.client.protocols import OrchestrationClientProtocol
    from flowbench.common.config import RunConfig
    from flowbench.metrics import MetricsRegistry

__all__ = ["BenchmarkRunner"]


class BenchmarkRunner(FlowBenchLoggerMixin, HealthCheckMixin):
    """Runs every configured iteration of a benchmark and collects the results.

    Args:
        client: Orchestration service client
        config: Validated run configuration
        registry: Process-wide metrics registry
        gate: Pre-flight gate, built from ``client`` when omitted
        cleaner: Cleanup agent, built from ``client`` when omitted
        progress_interval: Seconds between progress samples, defaults to
            ``Environment.RUNNER.PROGRESS_INTERVAL``
        iteration_cooldown: Pause between iterations, defaults to
            ``Environment.RUNNER.ITERATION_COOLDOWN``
    """

    def __init__(
        self,
        client: OrchestrationClientProtocol,
        config: RunConfig,
        registry: MetricsRegistry,
        gate: PreflightGate | None = None,
        cleaner: CleanupAgent | None = None,
        *,
        progress_interval: float | None = None,
        iteration_cooldown: float | None = None,
        confidence_level: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        settings = Environment.RUNNER
        self._client = client
        self._config = config
        self._registry = registry
        self._gate = gate or PreflightGate(client)
        self._cleaner = cleaner or CleanupAgent(client)
        self._progress_interval = (
            settings.PROGRESS_INTERVAL if progress_interval is None else progress_interval
        )
        self._iteration_cooldown = (
            settings.ITERATION_COOLDOWN
            if iteration_cooldown is None
            else iteration_cooldown
        )
        self._confidence_level = (
            settings.CONFIDENCE_LEVEL if confidence_level is None else confidence_level
        )

        self._id = f"runner-{uuid.uuid4().hex[:8]}"
        self._state = RunPhase.CREATED
        self._cancel_event = asyncio.Event()
        self._results: list[RunResult] = []
        self._cleanup_results: list[CleanupResult] = []
        self._aggregate: IterationAggregate | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def state(self) -> RunPhase:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def results(self) -> list[RunResult]:
        return list(self._results)

    @property
    def cleanup_results(self) -> list[CleanupResult]:
        return list(self._cleanup_results)

    @property
    def aggregate(self) -> IterationAggregate | None:
        """Cross-iteration statistics, available once ``run()`` returns."""
        return self._aggregate

    def cancel(self) -> None:
        """Request a graceful stop: load ends now and a partial result is reported."""
        if not self._cancel_event.is_set():
            self.warning("Cancellation requested, stopping load generation")
            self._cancel_event.set()

    async def run(self) -> list[RunResult]:
        """Run all iterations in order.

        Raises:
            PreflightError: If the first iteration's pre-flight gate fails.
        """
        total = self._config.iterations
        self.info(
            f"Starting benchmark: {self._config.workflow.kind} at "
            f"{self._config.target_rate:.2f}/s for {self._config.test_duration:g}s, "
            f"{total} iteration(s)"
        )
        for iteration in range(1, total + 1):
            if self.cancelled:
                self.info(f"Skipping remaining {total - iteration + 1} iteration(s) after cancellation")
                break

            self.info(f"[{iteration}/{total}] Starting iteration")
            result = await self._run_iteration(iteration)
            self._results.append(result)
            self._log_verdict(result)

            if iteration < total and self._iteration_cooldown > 0 and not self.cancelled:
                self.info(f"Applying cooldown: {self._iteration_cooldown:g}s")
                await self._wait_unless_cancelled(self._iteration_cooldown)

        if self._results:
            self._aggregate = aggregate_iterations(self._results, self._confidence_level)
            if len(self._results) > 1:
                self.info(
                    f"All iterations complete: {self._aggregate.num_passed}/"
                    f"{self._aggregate.num_iterations} passed"
                )
        if self._state != RunPhase.FAILED:
            self._set_state(RunPhase.DONE)
        return self.results

    async def _run_iteration(self, iteration: int) -> RunResult:
        start_time = datetime.now(timezone.utc)
        namespace = self._config.resolve_namespace()

        self._set_state(RunPhase.GATING)
        try:
            await self._gate.check_health()
            await self._gate.ensure_namespace(namespace)
        except PreflightError as e:
            self._set_state(RunPhase.FAILED)
            if iteration == 1:
                self.error(f"Pre-flight check failed: {e}")
                raise
            self.error(f"[{iteration}] Pre-flight check failed, recording failed iteration: {e}")
            return build_failed_result(
                self._config,
                namespace=namespace,
                start_time=start_time,
                end_time=datetime.now(timezone.utc),
                iteration=iteration,
                reason=f"pre-flight check failed: {e}",
            )

        aggregator = LatencyAggregator()
        generator = WorkflowGenerator.from_config(
            self._client, self._config, namespace, aggregator, self._registry
        )
        monitor = RateMonitor(generator, self._registry, interval=self._progress_interval)
        failed = False
        try:
            result = await self._generate_load(
                iteration, namespace, start_time, generator, monitor, aggregator
            )
        except asyncio.CancelledError:
            self.warning(f"[{iteration}] Benchmark task cancelled, aborting load generation")
            await monitor.stop()
            await generator.abort()
            raise
        except Exception as e:
            failed = True
            self.exception(f"[{iteration}] Benchmark iteration failed: {e!r}")
            self._set_state(RunPhase.FAILED)
            await monitor.stop()
            result = await self._salvage_result(
                iteration, namespace, start_time, generator, aggregator, e
            )
        finally:
            await self._cleanup(namespace)

        if not failed:
            self._set_state(RunPhase.DONE)
        return result

    async def _generate_load(
        self,
        iteration: int,
        namespace: str,
        start_time: datetime,
        generator: WorkflowGenerator,
        monitor: RateMonitor,
        aggregator: LatencyAggregator,
    ) -> RunResult:
        config = self._config
        loop = asyncio.get_running_loop()

        self._set_state(RunPhase.RAMPING)
        generator.start()
        monitor.start()
        load_started = loop.time()

        if config.ramp_up_duration > 0:
            await self._wait_unless_cancelled(config.ramp_up_duration)
        if not self.cancelled:
            self._set_state(RunPhase.STEADY_LOAD)
            remaining = config.test_duration - (loop.time() - load_started)
            await self._wait_unless_cancelled(max(remaining, 0.0))

        self._set_state(RunPhase.DRAINING)
        generator.stop()
        await monitor.stop()
        duration_actual = generator.elapsed()

        if self.cancelled:
            drain_complete = generator.stats().in_flight == 0
        else:
            timeout = config.effective_drain_timeout
            self.info(f"Waiting up to {timeout:g}s for in-flight workflows to complete...")
            drain_complete = await self._drain_unless_cancelled(generator, timeout)
        end_time = datetime.now(timezone.utc)

        self._set_state(RunPhase.REPORTING)
        stats = generator.stats()
        snapshot = aggregator.snapshot()
        await generator.abort()

        notes: list[str] = []
        if self.cancelled:
            notes.append(
                f"Cancelled: load stopped after {duration_actual:.2f}s of "
                f"{config.test_duration:g}s configured"
            )
        if monitor.below_target():
            notes.append(
                f"RateBelowTarget: achieved steady start rate "
                f"{monitor.achieved_steady_rate:.2f}/s is below target {config.target_rate:.2f}/s"
            )

        result = build_run_result(
            config,
            stats,
            snapshot,
            namespace=namespace,
            start_time=start_time,
            duration_actual=duration_actual,
            end_time=end_time,
            iteration=iteration,
            drain_complete=drain_complete,
            notes=notes,
        )
        self._registry.throughput.set(result.results.actual_rate)
        self._registry.in_flight.set(result.results.in_flight)
        return result

    async def _drain_unless_cancelled(
        self, generator: WorkflowGenerator, timeout: float
    ) -> bool:
        """Wait for the drain, giving up early if ``cancel()`` is called meanwhile."""
        drain = asyncio.create_task(
            generator.wait_for_drain(timeout), name="flowbench-drain"
        )
        cancelled = asyncio.create_task(
            self._cancel_event.wait(), name="flowbench-drain-cancel"
        )
        try:
            await asyncio.wait({drain, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (drain, cancelled):
                task.cancel()
            await asyncio.gather(drain, cancelled, return_exceptions=True)
        if not drain.cancelled():
            return drain.result()
        in_flight = generator.stats().in_flight
        self.warning(f"Drain cancelled with {in_flight} workflow(s) still in flight")
        return in_flight == 0

    async def _salvage_result(
        self,
        iteration: int,
        namespace: str,
        start_time: datetime,
        generator: WorkflowGenerator,
        aggregator: LatencyAggregator,
        error: Exception,
    ) -> RunResult:
        """Failed result for an iteration that raised, keeping whatever load it generated."""
        generator.stop()
        stats = generator.stats()
        snapshot = aggregator.snapshot()
        duration_actual = generator.elapsed()
        await generator.abort()
        reason = f"benchmark iteration failed: {error!r}"
        if stats.started == 0:
            return build_failed_result(
                self._config,
                namespace=namespace,
                start_time=start_time,
                end_time=datetime.now(timezone.utc),
                iteration=iteration,
                reason=reason,
            )
        return build_run_result(
            self._config,
            stats,
            snapshot,
            namespace=namespace,
            start_time=start_time,
            duration_actual=duration_actual,
            end_time=datetime.now(timezone.utc),
            iteration=iteration,
            drain_complete=stats.in_flight == 0,
            extra_failure_reasons=[reason],
        )

    async def _cleanup(self, namespace: str) -> None:
        self._set_state(RunPhase.CLEANING_UP)
        try:
            result = await self._cleaner.cleanup(namespace)
        except Exception as e:
            self.error(f"Cleanup of namespace {namespace} failed: {e!r}")
            return
        self._cleanup_results.append(result)

    async def _wait_unless_cancelled(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    def _set_state(self, state: RunPhase) -> None:
        if state != self._state:
            self.debug(f"Runner phase: {self._state} -> {state}")
            self._state = state

    def _log_verdict(self, result: RunResult) -> None:
        res = result.results
        summary = (
            f"[{result.iteration}] {res.workflows_completed}/{res.workflows_started} completed, "
            f"rate {res.actual_rate:.2f}/s, p99 {res.latency.p99:.2f}ms"
        )
        if result.passed:
            self.info(f"{summary} - PASSED")
        else:
            self.warning(f"{summary} - FAILED: {'; '.join(result.failure_reasons)}")
