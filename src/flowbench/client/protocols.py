# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from flowbench.client.models import WorkflowExecution


@runtime_checkable
class WorkflowHandleProtocol(Protocol):
    """Handle to a started workflow; awaiting ``result()`` blocks until it closes."""

    id: str

    async def result(self) -> Any: ...


@runtime_checkable
class OrchestrationClientProtocol(Protocol):
    """Operations the benchmark engine needs from the orchestration service.

    Every namespace-scoped call names its namespace explicitly.
    """

    async def check_health(self) -> None:
        """Raise if the service is not serving."""
        ...

    async def describe_namespace(self, namespace: str) -> bool:
        """Return True if the namespace exists."""
        ...

    async def register_namespace(
        self, namespace: str, retention_seconds: int
    ) -> None:
        """Create a namespace; raise NamespaceAlreadyExistsError if it exists."""
        ...

    async def start_workflow(
        self,
        namespace: str,
        workflow_id: str,
        workflow_type: str,
        args: list[Any],
        task_queue: str,
    ) -> WorkflowHandleProtocol: ...

    def list_open_workflows(
        self, namespace: str, page_size: int = 100
    ) -> AsyncIterator[WorkflowExecution]: ...

    async def terminate_workflow(
        self, namespace: str, workflow_id: str, run_id: str | None, reason: str
    ) -> None: ...
