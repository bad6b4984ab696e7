# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: an in-memory, multi-namespace orchestration service."""

import asyncio
import itertools
import uuid
from collections import defaultdict
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from flowbench.client.models import WorkflowExecution
from flowbench.common.config import RunConfig, SimpleWorkflowSpec
from flowbench.common.exceptions import NamespaceAlreadyExistsError
from flowbench.metrics import LatencyAggregator, MetricsRegistry


class FakeRPCError(Exception):
    """Mimics an SDK error carrying a status code."""

    def __init__(self, message: str, status_name: str = "UNAVAILABLE") -> None:
        super().__init__(message)
        self.status = type("Status", (), {"name": status_name})()


@dataclass
class FakeWorkflow:
    workflow_id: str
    run_id: str
    workflow_type: str
    args: list[Any]
    task_queue: str
    done: asyncio.Event = field(default_factory=asyncio.Event)
    status: str = "Running"
    error: BaseException | None = None


class FakeWorkflowHandle:
    def __init__(self, workflow: FakeWorkflow, delay: float | None, error: BaseException | None):
        self.id = workflow.workflow_id
        self._workflow = workflow
        self._delay = delay
        self._error = error

    async def result(self) -> Any:
        if self._delay is None:
            await self._workflow.done.wait()
        else:
            try:
                await asyncio.wait_for(self._workflow.done.wait(), timeout=self._delay)
            except TimeoutError:
                self._workflow.status = "Failed" if self._error else "Completed"
                self._workflow.error = self._error
                self._workflow.done.set()
        if self._workflow.error is not None:
            raise self._workflow.error
        return None


class FakeOrchestrationClient:
    """In-memory stand-in for the orchestration service.

    Args:
        namespaces: Namespaces that exist up front
        healthy: Whether check_health succeeds
        health_delay: Seconds check_health takes
        workflow_delay: Seconds until a started workflow completes; None never completes
        workflow_error: Error every workflow finishes with
        start_error: Error every start call raises
        fail_every_nth_start: Make every n-th start call fail
        visibility_lag: describe_namespace calls a new namespace stays invisible for
    """

    def __init__(
        self,
        namespaces: list[str] | None = None,
        *,
        healthy: bool = True,
        health_delay: float = 0.0,
        workflow_delay: float | None = 0.005,
        workflow_error: BaseException | None = None,
        start_error: BaseException | None = None,
        fail_every_nth_start: int = 0,
        visibility_lag: int = 0,
    ) -> None:
        self.namespaces: set[str] = set(namespaces or [])
        self.healthy = healthy
        self.health_delay = health_delay
        self.workflow_delay = workflow_delay
        self.workflow_error = workflow_error
        self.start_error = start_error
        self.fail_every_nth_start = fail_every_nth_start
        self.visibility_lag = visibility_lag

        self.workflows: dict[str, dict[str, FakeWorkflow]] = defaultdict(dict)
        self.start_calls: list[tuple[str, str, str, list[Any], str]] = []
        self.terminate_calls: list[tuple[str, str]] = []
        self.registered: list[str] = []
        self.list_calls: list[str] = []
        self.health_calls = 0
        self.describe_errors: list[BaseException] = []
        self.list_error: BaseException | None = None
        # workflow_id -> remaining number of failed terminate attempts
        self.terminate_failures: dict[str, int] = {}
        self.terminate_error: BaseException = FakeRPCError("service unavailable")
        self._pending_visibility: dict[str, int] = {}
        self._start_counter = itertools.count(1)

    # Test helpers

    def seed_running(self, namespace: str, count: int, prefix: str = "seeded") -> list[str]:
        self.namespaces.add(namespace)
        ids = []
        for i in range(count):
            workflow_id = f"{prefix}-{i}"
            self.workflows[namespace][workflow_id] = FakeWorkflow(
                workflow_id, uuid.uuid4().hex, "SimpleWorkflow", [], "benchmark-task-queue"
            )
            ids.append(workflow_id)
        return ids

    def running(self, namespace: str) -> list[str]:
        return [
            wf.workflow_id
            for wf in self.workflows.get(namespace, {}).values()
            if wf.status == "Running"
        ]

    def started_in(self, namespace: str) -> int:
        return sum(1 for call in self.start_calls if call[0] == namespace)

    # OrchestrationClientProtocol

    async def check_health(self) -> None:
        self.health_calls += 1
        if self.health_delay:
            await asyncio.sleep(self.health_delay)
        if not self.healthy:
            raise FakeRPCError("connection refused")

    async def describe_namespace(self, namespace: str) -> bool:
        if self.describe_errors:
            raise self.describe_errors.pop(0)
        if namespace in self._pending_visibility:
            remaining = self._pending_visibility[namespace]
            if remaining > 0:
                self._pending_visibility[namespace] = remaining - 1
                return False
            del self._pending_visibility[namespace]
            self.namespaces.add(namespace)
        return namespace in self.namespaces

    async def register_namespace(self, namespace: str, retention_seconds: int) -> None:
        if namespace in self.namespaces or namespace in self._pending_visibility:
            raise NamespaceAlreadyExistsError(namespace)
        self.registered.append(namespace)
        if self.visibility_lag:
            self._pending_visibility[namespace] = self.visibility_lag
        else:
            self.namespaces.add(namespace)

    async def start_workflow(
        self,
        namespace: str,
        workflow_id: str,
        workflow_type: str,
        args: list[Any],
        task_queue: str,
    ) -> FakeWorkflowHandle:
        self.start_calls.append((namespace, workflow_id, workflow_type, args, task_queue))
        n = next(self._start_counter)
        if namespace not in self.namespaces:
            raise FakeRPCError(f"namespace {namespace} not found", "NOT_FOUND")
        if self.start_error is not None:
            raise self.start_error
        if self.fail_every_nth_start and n % self.fail_every_nth_start == 0:
            raise FakeRPCError(f"start {n} rejected", "INVALID_ARGUMENT")
        workflow = FakeWorkflow(workflow_id, uuid.uuid4().hex, workflow_type, args, task_queue)
        self.workflows[namespace][workflow_id] = workflow
        return FakeWorkflowHandle(workflow, self.workflow_delay, self.workflow_error)

    async def list_open_workflows(
        self, namespace: str, page_size: int = 100
    ) -> AsyncIterator[WorkflowExecution]:
        self.list_calls.append(namespace)
        if self.list_error is not None:
            raise self.list_error
        for wf in list(self.workflows.get(namespace, {}).values()):
            if wf.status == "Running":
                yield WorkflowExecution(wf.workflow_id, wf.run_id, wf.workflow_type)

    async def terminate_workflow(
        self, namespace: str, workflow_id: str, run_id: str | None, reason: str
    ) -> None:
        self.terminate_calls.append((namespace, workflow_id))
        remaining = self.terminate_failures.get(workflow_id, 0)
        if remaining:
            self.terminate_failures[workflow_id] = remaining - 1
            raise self.terminate_error
        workflow = self.workflows.get(namespace, {}).get(workflow_id)
        if workflow is None or workflow.status != "Running":
            raise FakeRPCError(f"workflow {workflow_id} not found", "NOT_FOUND")
        workflow.status = "Terminated"
        workflow.error = RuntimeError(f"terminated: {reason}")
        workflow.done.set()


@pytest.fixture
def fake_client() -> FakeOrchestrationClient:
    return FakeOrchestrationClient()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    return MetricsRegistry(CollectorRegistry())


@pytest.fixture
def latency_aggregator() -> LatencyAggregator:
    return LatencyAggregator()


def make_run_config(**overrides) -> RunConfig:
    """RunConfig with short, test-friendly defaults."""
    values: dict[str, Any] = {
        "workflow": SimpleWorkflowSpec(),
        "target_rate": 50.0,
        "test_duration": 0.3,
        "ramp_up_duration": 0.0,
        "worker_count": 2,
        "max_p99_latency_ms": 5000.0,
        "min_throughput": 1.0,
        "completion_drain_timeout": 2.0,
        "start_timeout": 1.0,
    }
    values.update(overrides)
    return RunConfig(**values)


@pytest.fixture
def zero_delay_gate_settings(monkeypatch):
    """Pre-flight and cleanup settings without sleeps."""
    from flowbench.common.environment import Environment

    monkeypatch.setattr(Environment.GATE, "NAMESPACE_PROPAGATION_DELAY", 0.0)
    monkeypatch.setattr(Environment.GATE, "NAMESPACE_POLL_INTERVAL", 0.0)
    monkeypatch.setattr(Environment.GATE, "NAMESPACE_BACKOFF", 0.0)
    monkeypatch.setattr(Environment.GATE, "HEALTH_TIMEOUT", 1.0)
    monkeypatch.setattr(Environment.CLEANUP, "RETRY_BACKOFF", 0.0)
    monkeypatch.setattr(Environment.RUNNER, "PROGRESS_INTERVAL", 0.05)
    monkeypatch.setattr(Environment.RUNNER, "ITERATION_COOLDOWN", 0.0)
    return Environment
