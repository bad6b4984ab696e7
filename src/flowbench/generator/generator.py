# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Rate-limited workflow submission.

The generator runs ``worker_count`` submission workers, each pacing its share of
the aggregate target rate with a fixed-interval schedule driven by the ramp-up
controller. Each tick's start call runs in its own task, so a slow start RPC
delays only that workflow and never the schedule. Every started workflow gets a
completion waiter that pushes a ``CompletionEvent`` onto a queue; a single
listener task drains the queue into the latency aggregator and the metrics
registry.

All counters are mutated on the event loop thread only.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from flowbench.common.exceptions import WorkflowStartError
from flowbench.common.mixins import FlowBenchLoggerMixin
from flowbench.generator.rampup import RampUpController

if TYPE_CHECKING:
    from flowbench.client.protocols import (
        OrchestrationClientProtocol,
        WorkflowHandleProtocol,
    )
    from flowbench.common.config import RunConfig
    from flowbench.common.config.workflow_spec import WorkflowSpec
    from flowbench.metrics import LatencyAggregator, MetricsRegistry

__all__ = ["CompletionEvent", "GeneratorStats", "WorkflowGenerator"]

# Shortest gap between two starts of one worker.
MIN_TICK_INTERVAL = 0.001

# Individual start failures are logged at WARNING up to this many times per run.
_MAX_LOGGED_START_FAILURES = 10


@dataclass(frozen=True, slots=True)
class GeneratorStats:
    """Point-in-time counters of a generator.

    Attributes:
        started: Start attempts issued, successful or not
        completed: Workflows that finished successfully
        failed: Failed start calls plus workflows that finished with an error
        current_rate: Achieved start rate (started / elapsed seconds)
        target_rate: Configured aggregate target rate
    """

    started: int
    completed: int
    failed: int
    current_rate: float
    target_rate: float

    @property
    def in_flight(self) -> int:
        return self.started - self.completed - self.failed


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    """A started workflow reached a terminal state."""

    workflow_id: str
    duration: float
    error: BaseException | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class WorkflowGenerator(FlowBenchLoggerMixin):
    """Submits workflows at a ramped target rate across concurrent workers."""

    def __init__(
        self,
        client: OrchestrationClientProtocol,
        namespace: str,
        workflow: WorkflowSpec,
        aggregator: LatencyAggregator,
        registry: MetricsRegistry,
        *,
        target_rate: float,
        worker_count: int,
        ramp_up_duration: float = 0.0,
        task_queue: str,
        start_timeout: float = 10.0,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._client = client
        self._namespace = namespace
        self._workflow = workflow
        self._aggregator = aggregator
        self._registry = registry
        self.target_rate = target_rate
        self.worker_count = worker_count
        self.ramp_up_duration = ramp_up_duration
        self._task_queue = task_queue
        self._start_timeout = start_timeout

        self._started = 0
        self._completed = 0
        self._failed = 0
        self._id_counter = itertools.count(1)
        self._run_id = ""

        self._ramp: RampUpController | None = None
        self._start_time: float | None = None
        self._stop_time: float | None = None
        self._stop_event = asyncio.Event()
        self._drained = asyncio.Event()
        self._completions: asyncio.Queue[CompletionEvent] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._submissions: set[asyncio.Task] = set()
        self._waiters: set[asyncio.Task] = set()
        self._listener: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls,
        client: OrchestrationClientProtocol,
        config: RunConfig,
        namespace: str,
        aggregator: LatencyAggregator,
        registry: MetricsRegistry,
        **kwargs,
    ) -> WorkflowGenerator:
        return cls(
            client,
            namespace,
            config.workflow,
            aggregator,
            registry,
            target_rate=config.target_rate,
            worker_count=config.worker_count,
            ramp_up_duration=config.ramp_up_duration,
            task_queue=config.task_queue,
            start_timeout=config.start_timeout,
            **kwargs,
        )

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._stop_event.is_set()

    @property
    def run_id(self) -> str:
        return self._run_id

    def start(self) -> None:
        """Spawn the submission workers and the completion listener. Returns immediately.

        Raises:
            ValueError: If the target rate is not positive or there are no workers.
            RuntimeError: If the generator was already started.
        """
        if self.target_rate <= 0:
            raise ValueError(f"Target rate must be positive, got {self.target_rate}")
        if self.worker_count < 1:
            raise ValueError(f"Worker count must be at least 1, got {self.worker_count}")
        if self._workers:
            raise RuntimeError("Generator already started")

        loop = asyncio.get_running_loop()
        self._start_time = loop.time()
        self._run_id = datetime.now().strftime("%Y%m%d-%H%M%S")
        self._ramp = RampUpController(
            self.target_rate,
            self.ramp_up_duration,
            start_time=self._start_time,
            clock=loop.time,
        )
        self._registry.target_rate.set(self._ramp.initial_rate)

        self.info(
            f"Starting workflow generator: {self._workflow.workflow_type} in {self._namespace}, "
            f"target rate={self.target_rate:.2f}/s, workers={self.worker_count}, "
            f"ramp-up={self.ramp_up_duration:g}s"
        )
        self._listener = asyncio.create_task(
            self._listen(), name="flowbench-completion-listener"
        )
        for index in range(self.worker_count):
            task = asyncio.create_task(
                self._run_worker(index), name=f"flowbench-worker-{index}"
            )
            task.add_done_callback(self._on_worker_done)
            self._workers.append(task)

    def stop(self) -> None:
        """Stop issuing new starts. In-flight starts and completions continue. Idempotent."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if self._start_time is not None:
            self._stop_time = asyncio.get_running_loop().time()
        self.info("Workflow generator stopping")
        self._check_drained()

    def stats(self) -> GeneratorStats:
        return GeneratorStats(
            started=self._started,
            completed=self._completed,
            failed=self._failed,
            current_rate=self._achieved_rate(),
            target_rate=self.target_rate,
        )

    def target_rate_at(self, t: float) -> float:
        """Aggregate target rate at loop time ``t``."""
        if self._ramp is None:
            raise RuntimeError("Generator has not been started")
        return self._ramp.rate_at(t)

    def elapsed(self) -> float:
        """Seconds since start, frozen once stopped."""
        if self._start_time is None:
            return 0.0
        end = (
            self._stop_time
            if self._stop_time is not None
            else asyncio.get_running_loop().time()
        )
        return max(end - self._start_time, 0.0)

    def is_ramp_up_complete(self) -> bool:
        return self._ramp is not None and self._ramp.is_complete()

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait until every started workflow is accounted for.

        Only meaningful after ``stop()``. Returns False if ``timeout`` elapses first.
        """
        if not self._workers:
            return True
        self._check_drained()
        try:
            await asyncio.wait_for(self._drained.wait(), timeout=timeout)
        except TimeoutError:
            stats = self.stats()
            self.warning(
                f"Drain timed out after {timeout:g}s with {stats.in_flight} workflow(s) still in flight"
            )
            return False
        return True

    async def abort(self) -> None:
        """Stop and cancel every task the generator owns, including pending completion waiters."""
        self.stop()
        tasks = [*self._workers, *self._submissions, *self._waiters]
        if self._listener is not None:
            tasks.append(self._listener)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._submissions.clear()
        self._waiters.clear()
        self._listener = None

    def _achieved_rate(self) -> float:
        elapsed = self.elapsed()
        return self._started / elapsed if elapsed > 0 else 0.0

    def _on_worker_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            self.error(f"Worker {task.get_name()} crashed: {task.exception()!r}")
        self._check_drained()

    def _check_drained(self) -> None:
        if (
            self._stop_event.is_set()
            and all(task.done() for task in self._workers)
            and self._completed + self._failed == self._started
        ):
            self._drained.set()

    async def _run_worker(self, index: int) -> None:
        loop = asyncio.get_running_loop()
        assert self._ramp is not None
        first_interval = self.worker_count / self._ramp.initial_rate
        next_at = loop.time() + first_interval * index / self.worker_count

        while not self._stop_event.is_set():
            delay = next_at - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break
                except TimeoutError:
                    pass
            else:
                await asyncio.sleep(0)
                if self._stop_event.is_set():
                    break

            now = loop.time()
            rate = self._ramp.rate_at(now)
            self._registry.target_rate.set(rate)
            interval = max(self.worker_count / rate, MIN_TICK_INTERVAL)

            workflow_id = f"{self._workflow.kind}-{self._run_id}-{next(self._id_counter)}"
            self._started += 1
            submission = asyncio.create_task(
                self._submit(workflow_id), name=f"flowbench-worker-{index}-start"
            )
            self._submissions.add(submission)
            submission.add_done_callback(self._submissions.discard)

            next_at += interval
            now = loop.time()
            if next_at < now:
                # Behind schedule: continue from now instead of bursting to catch up.
                next_at = now

    async def _submit(self, workflow_id: str) -> None:
        """Issue one start call. ``_started`` was already counted by the worker."""
        loop = asyncio.get_running_loop()
        submitted_at = loop.time()
        try:
            async with asyncio.timeout(self._start_timeout):
                handle = await self._client.start_workflow(
                    self._namespace,
                    workflow_id,
                    self._workflow.workflow_type,
                    self._workflow.start_args(),
                    self._task_queue,
                )
        except Exception as e:
            self._record_start_failure(
                WorkflowStartError(workflow_id, e), loop.time() - submitted_at
            )
            return

        self._registry.record_start(success=True)
        waiter = asyncio.create_task(
            self._await_completion(workflow_id, handle, submitted_at)
        )
        self._waiters.add(waiter)
        waiter.add_done_callback(self._waiters.discard)

    def _record_start_failure(self, error: WorkflowStartError, duration: float) -> None:
        self._failed += 1
        self._aggregator.record(duration, success=False)
        self._registry.record_start(success=False)
        if self._failed <= _MAX_LOGGED_START_FAILURES:
            self.warning(str(error))
        elif self.is_debug_enabled:
            self.debug(str(error))
        self._check_drained()

    async def _await_completion(
        self, workflow_id: str, handle: WorkflowHandleProtocol, submitted_at: float
    ) -> None:
        loop = asyncio.get_running_loop()
        error: BaseException | None = None
        try:
            await handle.result()
        except Exception as e:
            error = e
        await self._completions.put(
            CompletionEvent(workflow_id, loop.time() - submitted_at, error)
        )

    async def _listen(self) -> None:
        while True:
            event = await self._completions.get()
            self._aggregator.record(event.duration, success=event.success)
            self._registry.record_completion(
                self._workflow.workflow_type, event.duration, success=event.success
            )
            if event.success:
                self._completed += 1
            else:
                self._failed += 1
                if self.is_debug_enabled:
                    self.debug(f"Workflow {event.workflow_id} failed: {event.error!r}")
            self._completions.task_done()
            self._check_drained()
