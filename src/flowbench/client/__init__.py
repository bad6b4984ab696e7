# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Orchestration service client contract and models.

The Temporal-backed implementation lives in ``flowbench.client.temporal_client``
and is imported explicitly where a live connection is needed.
"""

from flowbench.client.models import (
    WorkflowExecution,
    is_not_found_error,
    is_transient_error,
)
from flowbench.client.protocols import (
    OrchestrationClientProtocol,
    WorkflowHandleProtocol,
)

__all__ = [
    "OrchestrationClientProtocol",
    "WorkflowExecution",
    "WorkflowHandleProtocol",
    "is_not_found_error",
    "is_transient_error",
]
