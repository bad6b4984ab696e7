# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Kubernetes-style health checks for the benchmark runner.

- is_healthy(): Liveness check - has the run not failed?
- is_ready(): Readiness check - is load currently being generated?
- get_health_details(): Detailed health info for debugging and the metrics endpoint
"""

from __future__ import annotations

from dataclasses import dataclass

from flowbench.common.enums import RunPhase

_LOAD_PHASES = frozenset({RunPhase.RAMPING, RunPhase.STEADY_LOAD})


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    """Result of the health check."""

    component_id: str
    state: RunPhase
    healthy: bool
    ready: bool


class HealthCheckMixin:
    """Health checks derived from the component's current run phase.

    The mixin expects the component to have a `state` property returning RunPhase.
    """

    state: RunPhase

    def is_healthy(self) -> bool:
        """Liveness check: True unless the component is in the FAILED phase."""
        return self.state != RunPhase.FAILED

    def is_ready(self) -> bool:
        """Readiness check: True only while workflows are being submitted."""
        return self.state in _LOAD_PHASES

    def get_health_details(self) -> HealthCheckResult:
        return HealthCheckResult(
            component_id=getattr(self, "id", "unknown"),
            state=self.state,
            healthy=self.is_healthy(),
            ready=self.is_ready(),
        )
