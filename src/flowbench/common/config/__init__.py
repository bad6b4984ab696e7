# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Benchmark run configuration."""

from flowbench.common.config.durations import format_duration, parse_duration
from flowbench.common.config.run_config import (
    BenchmarkSettings,
    RunConfig,
    generate_namespace,
    is_benchmark_namespace,
    load_run_config,
)
from flowbench.common.config.workflow_spec import (
    ChildWorkflowSpec,
    MultiActivityWorkflowSpec,
    SimpleWorkflowSpec,
    StateTransitionsWorkflowSpec,
    TimerWorkflowSpec,
    WorkflowSpec,
    make_workflow_spec,
)

__all__ = [
    "BenchmarkSettings",
    "ChildWorkflowSpec",
    "MultiActivityWorkflowSpec",
    "RunConfig",
    "SimpleWorkflowSpec",
    "StateTransitionsWorkflowSpec",
    "TimerWorkflowSpec",
    "WorkflowSpec",
    "format_duration",
    "generate_namespace",
    "is_benchmark_namespace",
    "load_run_config",
    "make_workflow_spec",
    "parse_duration",
]
