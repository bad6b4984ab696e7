# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Enumerations used by the benchmark engine."""

from enum import Enum


class CaseInsensitiveStrEnum(str, Enum):
    """String enum that matches values case-insensitively and prints as its value."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class WorkflowKind(CaseInsensitiveStrEnum):
    """Benchmark workflow kinds executed by the external benchmark worker."""

    SIMPLE = "simple"
    MULTI_ACTIVITY = "multi-activity"
    TIMER = "timer"
    CHILD_WORKFLOW = "child-workflow"
    STATE_TRANSITIONS = "state-transitions"


class RunPhase(CaseInsensitiveStrEnum):
    """Lifecycle phase of a benchmark iteration."""

    CREATED = "created"
    GATING = "gating"
    RAMPING = "ramping"
    STEADY_LOAD = "steady_load"
    DRAINING = "draining"
    REPORTING = "reporting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class CompletionOutcome(CaseInsensitiveStrEnum):
    """Outcome label used for metrics."""

    SUCCESS = "success"
    FAILURE = "failure"
