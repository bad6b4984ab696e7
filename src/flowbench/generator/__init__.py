# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Rate-limited workflow generation."""

from flowbench.generator.generator import (
    CompletionEvent,
    GeneratorStats,
    WorkflowGenerator,
)
from flowbench.generator.rampup import RampUpController
from flowbench.generator.rate_monitor import RateMonitor

__all__ = [
    "CompletionEvent",
    "GeneratorStats",
    "RampUpController",
    "RateMonitor",
    "WorkflowGenerator",
]
