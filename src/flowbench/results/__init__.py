# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Result records, threshold evaluation, rendering and export."""

from flowbench.results.aggregation import (
    ConfidenceMetric,
    IterationAggregate,
    aggregate_iterations,
)
from flowbench.results.builder import (
    build_failed_result,
    build_result_config,
    build_run_result,
    calculate_actual_rate,
    evaluate_thresholds,
    incomplete_drain_note,
)
from flowbench.results.exporters import (
    BaseResultExporter,
    BenchmarkReportJsonExporter,
    ConsoleSummaryExporter,
    IterationCsvExporter,
    ResultExporterConfig,
    RunResultJsonExporter,
    format_summary,
    render_report_json,
)
from flowbench.results.models import (
    ResultConfig,
    ResultLatency,
    ResultMetrics,
    ResultThresholds,
    RunResult,
)

__all__ = [
    "BaseResultExporter",
    "BenchmarkReportJsonExporter",
    "ConfidenceMetric",
    "ConsoleSummaryExporter",
    "IterationAggregate",
    "IterationCsvExporter",
    "ResultConfig",
    "ResultExporterConfig",
    "ResultLatency",
    "ResultMetrics",
    "ResultThresholds",
    "RunResult",
    "RunResultJsonExporter",
    "aggregate_iterations",
    "build_failed_result",
    "build_result_config",
    "build_run_result",
    "calculate_actual_rate",
    "evaluate_thresholds",
    "format_summary",
    "incomplete_drain_note",
    "render_report_json",
]
