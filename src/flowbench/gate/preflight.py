# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Pre-flight gate: health check and benchmark namespace provisioning.

Nothing is submitted to the orchestration service until both checks pass.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from flowbench.client.models import is_transient_error
from flowbench.common.config import is_benchmark_namespace
from flowbench.common.environment import Environment
from flowbench.common.exceptions import (
    ClusterUnhealthyError,
    NamespaceAlreadyExistsError,
    NamespaceCreationError,
    NamespaceIsolationError,
)
from flowbench.common.mixins import FlowBenchLoggerMixin

if TYPE_CHECKING:
    from flowbench.client.protocols import OrchestrationClientProtocol

__all__ = ["PreflightGate"]


class PreflightGate(FlowBenchLoggerMixin):
    """Verifies the target is serving and the benchmark namespace is usable.

    Timeouts and retry budgets default to ``Environment.GATE``.
    """

    def __init__(
        self,
        client: OrchestrationClientProtocol,
        health_timeout: float | None = None,
        namespace_attempts: int | None = None,
        backoff_base: float | None = None,
        registration_polls: int | None = None,
        poll_interval: float | None = None,
        propagation_delay: float | None = None,
        retention_seconds: int | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        settings = Environment.GATE
        self._client = client
        self.health_timeout = (
            settings.HEALTH_TIMEOUT if health_timeout is None else health_timeout
        )
        self.namespace_attempts = (
            settings.NAMESPACE_ATTEMPTS
            if namespace_attempts is None
            else namespace_attempts
        )
        self.backoff_base = (
            settings.NAMESPACE_BACKOFF if backoff_base is None else backoff_base
        )
        self.registration_polls = (
            settings.NAMESPACE_POLLS
            if registration_polls is None
            else registration_polls
        )
        self.poll_interval = (
            settings.NAMESPACE_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.propagation_delay = (
            settings.NAMESPACE_PROPAGATION_DELAY
            if propagation_delay is None
            else propagation_delay
        )
        self.retention_seconds = (
            Environment.TEMPORAL.NAMESPACE_RETENTION_HOURS * 3600
            if retention_seconds is None
            else retention_seconds
        )

    async def check_health(self) -> None:
        """Raise ClusterUnhealthyError unless the service answers within the timeout."""
        self.info("Checking orchestration service health...")
        try:
            await asyncio.wait_for(self._client.check_health(), timeout=self.health_timeout)
        except TimeoutError as e:
            raise ClusterUnhealthyError(
                f"Orchestration service did not answer the health check within {self.health_timeout:g}s"
            ) from e
        except ClusterUnhealthyError:
            raise
        except Exception as e:
            raise ClusterUnhealthyError(
                f"Orchestration service is unhealthy: {e}"
            ) from e
        self.info("Orchestration service health check passed")

    async def ensure_namespace(self, namespace: str) -> bool:
        """Make sure ``namespace`` exists and is visible.

        Returns:
            True if this call created the namespace, False if it already existed.

        Raises:
            NamespaceIsolationError: If the name lacks the benchmark prefix.
            NamespaceCreationError: If the namespace could not be created or never
                became visible within the retry budget.
        """
        if not is_benchmark_namespace(namespace):
            raise NamespaceIsolationError(namespace)

        self.info(f"Ensuring namespace {namespace} exists...")
        last_error: BaseException | None = None
        for attempt in range(1, self.namespace_attempts + 1):
            try:
                created = await self._ensure_once(namespace)
            except NamespaceCreationError:
                raise
            except Exception as e:
                last_error = e
                if not is_transient_error(e) or attempt == self.namespace_attempts:
                    break
                delay = self.backoff_base * 2 ** (attempt - 1)
                self.warning(
                    f"Namespace setup attempt {attempt}/{self.namespace_attempts} failed: {e!r}. "
                    f"Retrying in {delay:g}s"
                )
                await asyncio.sleep(delay)
                continue

            if created and self.propagation_delay > 0:
                self.info(
                    f"Waiting {self.propagation_delay:g}s for namespace {namespace} to propagate..."
                )
                await asyncio.sleep(self.propagation_delay)
            return created

        raise NamespaceCreationError(
            f"Failed to create namespace {namespace} after {attempt} attempt(s): {last_error}"
        ) from last_error

    async def _ensure_once(self, namespace: str) -> bool:
        if await self._client.describe_namespace(namespace):
            self.info(f"Namespace {namespace} already exists")
            return False

        self.info(f"Creating namespace {namespace}...")
        try:
            await self._client.register_namespace(namespace, self.retention_seconds)
        except NamespaceAlreadyExistsError:
            self.info(f"Namespace {namespace} was registered concurrently")
            return False

        for poll in range(self.registration_polls):
            if await self._client.describe_namespace(namespace):
                self.info(f"Namespace {namespace} is registered")
                return True
            if poll < self.registration_polls - 1:
                await asyncio.sleep(self.poll_interval)

        raise NamespaceCreationError(
            f"Namespace {namespace} not visible after {self.registration_polls} poll(s)"
        )
