# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for the benchmark engine."""


class FlowBenchError(Exception):
    """Base class for all benchmark engine errors."""


class ConfigurationError(FlowBenchError):
    """Raised when a benchmark configuration cannot be built or is invalid."""


class PreflightError(FlowBenchError):
    """Raised when the pre-flight gate fails. No load is generated after this."""


class ClusterUnhealthyError(PreflightError):
    """The orchestration service did not answer the health check in time."""


class NamespaceCreationError(PreflightError):
    """The benchmark namespace could not be created or did not become visible."""


class NamespaceIsolationError(FlowBenchError):
    """An operation targeted a namespace outside the benchmark prefix."""

    def __init__(self, namespace: str) -> None:
        super().__init__(
            f"Refusing to operate on namespace '{namespace}': "
            "only namespaces prefixed with 'benchmark-' may be used"
        )
        self.namespace = namespace


class WorkflowStartError(FlowBenchError):
    """A single workflow start call failed. Counted as a failure, never retried."""

    def __init__(self, workflow_id: str, cause: BaseException | str) -> None:
        super().__init__(f"Failed to start workflow {workflow_id}: {cause!s}")
        self.workflow_id = workflow_id
        self.cause = cause


class CleanupIncompleteError(FlowBenchError):
    """Cleanup left workflows running in the benchmark namespace."""

    def __init__(self, namespace: str, remaining: int) -> None:
        super().__init__(
            f"Cleanup of namespace '{namespace}' left {remaining} workflow(s) running"
        )
        self.namespace = namespace
        self.remaining = remaining


class NamespaceAlreadyExistsError(FlowBenchError):
    """Registration found the namespace already present."""

    def __init__(self, namespace: str) -> None:
        super().__init__(f"Namespace '{namespace}' already exists")
        self.namespace = namespace
