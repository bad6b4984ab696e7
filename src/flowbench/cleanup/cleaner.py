# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Terminates workflows left running in a benchmark namespace.

The agent only ever lists and terminates within the namespace it is given, and
refuses any namespace outside the benchmark prefix. Failures are logged with
manual remediation steps instead of being raised.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from flowbench.client.models import (
    WorkflowExecution,
    is_not_found_error,
    is_transient_error,
)
from flowbench.common.config import is_benchmark_namespace
from flowbench.common.constants import (
    CLEANUP_MAX_REPORTED_ERRORS,
    CLEANUP_PROGRESS_STEP_PERCENT,
    CLEANUP_TERMINATION_REASON,
)
from flowbench.common.environment import Environment
from flowbench.common.exceptions import CleanupIncompleteError, NamespaceIsolationError
from flowbench.common.mixins import FlowBenchLoggerMixin

if TYPE_CHECKING:
    from flowbench.client.protocols import OrchestrationClientProtocol

__all__ = [
    "CleanupAgent",
    "CleanupResult",
    "TerminationFailure",
    "generate_cleanup_script",
    "manual_cleanup_commands",
]

_RUNNING_QUERY = "'ExecutionStatus=\"Running\"'"


@dataclass(frozen=True, slots=True)
class TerminationFailure:
    workflow_id: str
    run_id: str | None
    error: str


@dataclass(slots=True)
class CleanupResult:
    """Outcome of one cleanup pass over a namespace.

    Workflows that closed on their own between listing and termination are
    counted in ``workflows_already_closed`` and are not errors.
    """

    namespace: str
    workflows_found: int = 0
    workflows_terminated: int = 0
    workflows_already_closed: int = 0
    termination_errors: list[TerminationFailure] = field(default_factory=list)
    list_error: str | None = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.list_error is None and not self.termination_errors


def manual_cleanup_commands(namespace: str) -> list[str]:
    """Shell commands an operator can run to finish a cleanup by hand."""
    return [
        f"temporal workflow list --namespace {namespace} --query {_RUNNING_QUERY}",
        f"temporal workflow terminate --namespace {namespace} --query {_RUNNING_QUERY}",
        f"temporal workflow terminate --namespace {namespace} --workflow-id <WORKFLOW_ID>",
    ]


def generate_cleanup_script(
    namespace: str, failures: list[TerminationFailure] | None = None
) -> str:
    """Render a bash script terminating the given workflows and anything else still running."""
    lines = [
        "#!/bin/bash",
        "# Benchmark Cleanup Script",
        f"# Generated for namespace: {namespace}",
        f"# Timestamp: {datetime.now(timezone.utc).isoformat()}",
        "",
        f'NAMESPACE="{namespace}"',
        "",
        'echo "Starting cleanup for namespace: $NAMESPACE"',
        "",
    ]
    if failures:
        lines.append("# Terminate specific failed workflows")
        for failure in failures:
            run_flag = f' --run-id "{failure.run_id}"' if failure.run_id else ""
            lines.append(f'echo "Terminating workflow: {failure.workflow_id}"')
            lines.append(
                f'temporal workflow terminate --namespace "$NAMESPACE" '
                f'--workflow-id "{failure.workflow_id}"{run_flag} || true'
            )
        lines.append("")
    lines.extend(
        [
            "# Terminate any remaining running workflows",
            'echo "Terminating all remaining running workflows..."',
            f'temporal workflow terminate --namespace "$NAMESPACE" --query {_RUNNING_QUERY} '
            f'--reason "{CLEANUP_TERMINATION_REASON}" --yes || true',
            "",
            'echo "Verifying cleanup..."',
            f'temporal workflow count --namespace "$NAMESPACE" --query {_RUNNING_QUERY}',
            "",
            'echo "Cleanup complete"',
        ]
    )
    return "\n".join(lines) + "\n"


class CleanupAgent(FlowBenchLoggerMixin):
    """Terminates open workflows in a benchmark namespace with bounded concurrency."""

    def __init__(
        self,
        client: OrchestrationClientProtocol,
        max_concurrency: int | None = None,
        max_attempts: int | None = None,
        retry_backoff: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        settings = Environment.CLEANUP
        self._client = client
        self.max_concurrency = (
            settings.MAX_CONCURRENCY if max_concurrency is None else max_concurrency
        )
        self.max_attempts = settings.MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.retry_backoff = (
            settings.RETRY_BACKOFF if retry_backoff is None else retry_backoff
        )

    def _require_benchmark_namespace(self, namespace: str) -> None:
        if not is_benchmark_namespace(namespace):
            raise NamespaceIsolationError(namespace)

    async def list_open_workflows(self, namespace: str) -> list[WorkflowExecution]:
        self._require_benchmark_namespace(namespace)
        return [wf async for wf in self._client.list_open_workflows(namespace)]

    async def running_workflow_count(self, namespace: str) -> int:
        return len(await self.list_open_workflows(namespace))

    async def cleanup(self, namespace: str) -> CleanupResult:
        """Terminate every open workflow in ``namespace``. Never raises for service errors.

        Raises:
            NamespaceIsolationError: If ``namespace`` is not a benchmark namespace.
        """
        self._require_benchmark_namespace(namespace)
        started = time.perf_counter()
        result = CleanupResult(namespace=namespace)
        self.info(f"Starting cleanup of namespace {namespace}")

        try:
            workflows = await self.list_open_workflows(namespace)
        except Exception as e:
            result.list_error = f"{e!r}"
            result.duration = time.perf_counter() - started
            self.error(f"Failed to list workflows for cleanup in {namespace}: {e!r}")
            self._log_manual_cleanup(namespace, result)
            return result

        result.workflows_found = len(workflows)
        if not workflows:
            result.duration = time.perf_counter() - started
            self.info(f"No running workflows found in {namespace}")
            return result

        self.info(f"Found {len(workflows)} running workflow(s) to terminate")
        await self._terminate_all(namespace, workflows, result)
        result.duration = time.perf_counter() - started

        self._log_summary(result)
        if not result.success:
            self._log_manual_cleanup(namespace, result)
        return result

    async def verify_cleanup(self, namespace: str) -> bool:
        """True if no workflows are running in ``namespace``."""
        remaining = await self.running_workflow_count(namespace)
        if remaining:
            self.warning(str(CleanupIncompleteError(namespace, remaining)))
            return False
        self.info(f"Cleanup verified: no running workflows in {namespace}")
        return True

    async def _terminate_all(
        self, namespace: str, workflows: list[WorkflowExecution], result: CleanupResult
    ) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        total = len(workflows)
        step = max(total * CLEANUP_PROGRESS_STEP_PERCENT // 100, 1)
        processed = 0

        async def terminate(workflow: WorkflowExecution) -> None:
            nonlocal processed
            async with semaphore:
                error = await self._terminate_with_retry(namespace, workflow)
            if error is None:
                result.workflows_terminated += 1
            elif is_not_found_error(error):
                self.debug(f"Workflow {workflow.workflow_id} already closed")
                result.workflows_already_closed += 1
            else:
                result.termination_errors.append(
                    TerminationFailure(workflow.workflow_id, workflow.run_id, f"{error!r}")
                )
            processed += 1
            if processed % step == 0 or processed == total:
                self.info(f"Cleanup progress: {processed}/{total}")

        await asyncio.gather(*(terminate(wf) for wf in workflows))

    async def _terminate_with_retry(
        self, namespace: str, workflow: WorkflowExecution
    ) -> BaseException | None:
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._client.terminate_workflow(
                    namespace,
                    workflow.workflow_id,
                    workflow.run_id,
                    CLEANUP_TERMINATION_REASON,
                )
                return None
            except Exception as e:
                last_error = e
                if not is_transient_error(e) or attempt == self.max_attempts:
                    break
                await asyncio.sleep(self.retry_backoff * attempt)
        return last_error

    def _log_summary(self, result: CleanupResult) -> None:
        self.info(
            f"Cleanup summary for {result.namespace}: found={result.workflows_found}, "
            f"terminated={result.workflows_terminated}, "
            f"already_closed={result.workflows_already_closed}, "
            f"errors={len(result.termination_errors)}, duration={result.duration:.2f}s"
        )
        for failure in result.termination_errors[:CLEANUP_MAX_REPORTED_ERRORS]:
            self.error(f"Failed to terminate workflow {failure.workflow_id}: {failure.error}")
        hidden = len(result.termination_errors) - CLEANUP_MAX_REPORTED_ERRORS
        if hidden > 0:
            self.warning(f"{hidden} additional termination error(s) not shown")

    def _log_manual_cleanup(self, namespace: str, result: CleanupResult) -> None:
        self.error(f"MANUAL CLEANUP REQUIRED for namespace {namespace}")
        if result.termination_errors:
            ids = ", ".join(f.workflow_id for f in result.termination_errors)
            self.error(f"Workflows still running: {ids}")
        self.info("To clean up manually, run:")
        for command in manual_cleanup_commands(namespace):
            self.info(f"  {command}")
