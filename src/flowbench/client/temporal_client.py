# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Orchestration client backed by the Temporal Python SDK."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from google.protobuf.duration_pb2 import Duration
from temporalio.api.workflowservice.v1 import (
    DescribeNamespaceRequest,
    RegisterNamespaceRequest,
)
from temporalio.client import Client, WorkflowHandle
from temporalio.runtime import Runtime
from temporalio.service import RPCError, RPCStatusCode

from flowbench.client.models import WorkflowExecution
from flowbench.common.exceptions import (
    ClusterUnhealthyError,
    NamespaceAlreadyExistsError,
)
from flowbench.common.mixins import FlowBenchLoggerMixin

__all__ = ["TemporalOrchestrationClient"]

logger = logging.getLogger(__name__)

_OPEN_WORKFLOWS_QUERY = "ExecutionStatus = 'Running'"


class TemporalOrchestrationClient(FlowBenchLoggerMixin):
    """OrchestrationClientProtocol implementation over a single gRPC connection.

    One SDK client is kept per namespace; all of them share the underlying
    service connection.
    """

    def __init__(self, client: Client, **kwargs) -> None:
        super().__init__(**kwargs)
        self._client = client
        self._namespace_clients: dict[str, Client] = {client.namespace: client}

    @classmethod
    async def connect(
        cls,
        address: str,
        *,
        attempts: int = 1,
        interval: float = 0.0,
        runtime: Runtime | None = None,
    ) -> TemporalOrchestrationClient:
        """Connect to the service frontend at ``address`` (``host:port``).

        Failed attempts are retried ``interval`` seconds apart. Cancelling the
        calling task stops the retries.

        Raises:
            Exception: The last connection error once every attempt failed.
        """
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        attempt = 1
        while True:
            try:
                client = await Client.connect(address, runtime=runtime)
            except Exception as e:
                if attempt >= attempts:
                    logger.error(
                        f"Failed to connect to {address} after {attempts} attempt(s): {e}"
                    )
                    raise
                logger.warning(
                    f"Connection attempt {attempt}/{attempts} to {address} failed: {e}. "
                    f"Retrying in {interval:g}s..."
                )
                await asyncio.sleep(interval)
                attempt += 1
            else:
                logger.info(f"Connected to {address}")
                return cls(client)

    def _for_namespace(self, namespace: str) -> Client:
        client = self._namespace_clients.get(namespace)
        if client is None:
            client = Client(
                self._client.service_client,
                namespace=namespace,
                data_converter=self._client.data_converter,
            )
            self._namespace_clients[namespace] = client
        return client

    async def check_health(self) -> None:
        try:
            serving = await self._client.service_client.check_health()
        except RPCError as e:
            raise ClusterUnhealthyError(f"Health check failed: {e}") from e
        if not serving:
            raise ClusterUnhealthyError("Health check reported NOT_SERVING")

    async def describe_namespace(self, namespace: str) -> bool:
        try:
            await self._client.workflow_service.describe_namespace(
                DescribeNamespaceRequest(namespace=namespace)
            )
        except RPCError as e:
            if e.status == RPCStatusCode.NOT_FOUND:
                return False
            raise
        return True

    async def register_namespace(self, namespace: str, retention_seconds: int) -> None:
        request = RegisterNamespaceRequest(
            namespace=namespace,
            description="Benchmark namespace",
            workflow_execution_retention_period=Duration(seconds=retention_seconds),
        )
        try:
            await self._client.workflow_service.register_namespace(request)
        except RPCError as e:
            if e.status == RPCStatusCode.ALREADY_EXISTS:
                raise NamespaceAlreadyExistsError(namespace) from e
            raise

    async def start_workflow(
        self,
        namespace: str,
        workflow_id: str,
        workflow_type: str,
        args: list[Any],
        task_queue: str,
    ) -> WorkflowHandle:
        return await self._for_namespace(namespace).start_workflow(
            workflow_type,
            args=args,
            id=workflow_id,
            task_queue=task_queue,
        )

    async def list_open_workflows(
        self, namespace: str, page_size: int = 100
    ) -> AsyncIterator[WorkflowExecution]:
        async for execution in self._for_namespace(namespace).list_workflows(
            _OPEN_WORKFLOWS_QUERY, page_size=page_size
        ):
            yield WorkflowExecution(
                workflow_id=execution.id,
                run_id=execution.run_id,
                workflow_type=execution.workflow_type,
                start_time=execution.start_time,
            )

    async def terminate_workflow(
        self, namespace: str, workflow_id: str, run_id: str | None, reason: str
    ) -> None:
        handle = self._for_namespace(namespace).get_workflow_handle(
            workflow_id, run_id=run_id
        )
        await handle.terminate(reason=reason)
