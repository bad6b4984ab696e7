# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Data types exchanged with the orchestration service."""

from dataclasses import dataclass
from datetime import datetime

from flowbench.common.constants import TRANSIENT_ERROR_MARKERS

__all__ = ["WorkflowExecution", "is_not_found_error", "is_transient_error"]


@dataclass(frozen=True, slots=True)
class WorkflowExecution:
    """A workflow execution as returned by a visibility listing."""

    workflow_id: str
    run_id: str | None = None
    workflow_type: str | None = None
    start_time: datetime | None = None


def is_transient_error(error: BaseException) -> bool:
    """True if retrying the failed call may succeed (timeouts, lost connections, throttling)."""
    if isinstance(error, TimeoutError | ConnectionError):
        return True
    status = getattr(error, "status", None)
    text = f"{getattr(status, 'name', '')} {error}".lower().replace("_", " ")
    return any(marker in text for marker in TRANSIENT_ERROR_MARKERS)


def is_not_found_error(error: BaseException) -> bool:
    """True if the service reported the target (workflow, namespace) as not found."""
    status = getattr(error, "status", None)
    return getattr(status, "name", None) == "NOT_FOUND"
