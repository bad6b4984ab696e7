# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Renderers and file exporters for benchmark results."""

from __future__ import annotations

import asyncio
import csv
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import orjson
from rich.console import Console

from flowbench.common.mixins import FlowBenchLoggerMixin

if TYPE_CHECKING:
    from flowbench.results.aggregation import IterationAggregate
    from flowbench.results.models import RunResult

__all__ = [
    "BaseResultExporter",
    "BenchmarkReportJsonExporter",
    "ConsoleSummaryExporter",
    "IterationCsvExporter",
    "ResultExporterConfig",
    "RunResultJsonExporter",
    "format_summary",
    "render_report_json",
]

_HEAVY_RULE = "═" * 63
_LIGHT_RULE = "─" * 65


def format_summary(result: RunResult) -> str:
    """Render the fixed-format text report for one iteration."""
    cfg = result.config
    res = result.results
    lines = [
        "",
        _HEAVY_RULE,
        "                    BENCHMARK RESULTS SUMMARY",
        _HEAVY_RULE,
        "",
        "CONFIGURATION",
        _LIGHT_RULE,
        f"  Workflow Type:    {cfg.workflow_type}",
        f"  Target Rate:      {cfg.target_rate:.2f} workflows/s",
        f"  Duration:         {cfg.duration}",
        f"  Ramp-Up:          {cfg.ramp_up_duration}",
        f"  Worker Count:     {cfg.worker_count}",
    ]
    if cfg.iterations > 1:
        lines.append(f"  Iteration:        {result.iteration} of {cfg.iterations}")
    lines.append(f"  Namespace:        {cfg.namespace}")
    if cfg.activity_count is not None:
        lines.append(f"  Activity Count:   {cfg.activity_count}")
    if cfg.timer_duration is not None:
        lines.append(f"  Timer Duration:   {cfg.timer_duration}")
    if cfg.child_count is not None:
        lines.append(f"  Child Count:      {cfg.child_count}")

    lines += [
        "",
        "RESULTS",
        _LIGHT_RULE,
        f"  Workflows Started:    {res.workflows_started}",
        f"  Workflows Completed:  {res.workflows_completed}",
        f"  Workflows Failed:     {res.workflows_failed}",
        f"  Actual Rate:          {res.actual_rate:.2f} workflows/s",
        f"  Measured Duration:    {res.duration_actual:.2f} s",
        f"  Drain Complete:       {'yes' if res.drain_complete else 'no'}",
        "",
        "LATENCY (milliseconds)",
        _LIGHT_RULE,
        f"  P50:    {res.latency.p50:10.2f} ms",
        f"  P95:    {res.latency.p95:10.2f} ms",
        f"  P99:    {res.latency.p99:10.2f} ms",
        f"  Max:    {res.latency.max:10.2f} ms",
        "",
        "THRESHOLDS",
        _LIGHT_RULE,
        f"  Max P99 Latency:      {result.thresholds.max_p99_latency_ms:.2f} ms",
        f"  Min Throughput:       {result.thresholds.min_throughput:.2f} workflows/s",
        "",
        "SYSTEM",
        _LIGHT_RULE,
    ]
    if result.system:
        for key in sorted(result.system):
            lines.append(f"  {key + ':':<22}{_format_system_value(result.system[key])}")
    else:
        lines.append("  (no system context supplied)")

    if result.notes:
        lines += ["", "NOTES", _LIGHT_RULE]
        lines += [f"  • {note}" for note in result.notes]

    lines += ["", _HEAVY_RULE]
    if result.passed:
        lines.append("                         ✓ PASSED")
    else:
        lines += ["                         ✗ FAILED", "", "  Failure Reasons:"]
        lines += [f"    • {reason}" for reason in result.failure_reasons]
    lines += [
        _HEAVY_RULE,
        "",
        f"  Start: {result.start_time.isoformat()}",
        f"  End:   {result.end_time.isoformat()}",
        "",
    ]
    return "\n".join(lines)


def render_report_json(
    results: list[RunResult], aggregate: IterationAggregate | None = None
) -> str:
    output = {
        "passed": bool(results) and all(r.passed for r in results),
        "iterations": [r.to_dict() for r in results],
        "aggregate": aggregate.to_dict() if aggregate is not None else None,
    }
    return orjson.dumps(output, option=orjson.OPT_INDENT_2).decode("utf-8")


def _format_system_value(value: object) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in sorted(value.items()))
    return str(value)


@dataclass(slots=True)
class ResultExporterConfig:
    """What to export and where.

    Attributes:
        results: Per-iteration results, in iteration order
        output_dir: Directory where export files are written
        aggregate: Cross-iteration statistics, when available
    """

    results: list[RunResult]
    output_dir: Path
    aggregate: IterationAggregate | None = None


class BaseResultExporter(ABC):
    """Writes one file built from a ResultExporterConfig."""

    def __init__(self, config: ResultExporterConfig) -> None:
        self._config = config

    @abstractmethod
    def get_file_name(self) -> str: ...

    @abstractmethod
    def _generate_content(self) -> str: ...

    async def export(self) -> Path:
        """Write the file and return its path."""
        path = self._config.output_dir / self.get_file_name()
        content = self._generate_content()
        await asyncio.to_thread(self._config.output_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_text, content, encoding="utf-8")
        return path


class RunResultJsonExporter(BaseResultExporter):
    """Exports the most recent iteration's result as a standalone JSON document."""

    def get_file_name(self) -> str:
        return f"benchmark_result_{self._config.results[-1].iteration:03d}.json"

    def _generate_content(self) -> str:
        return self._config.results[-1].to_json()


class BenchmarkReportJsonExporter(BaseResultExporter):
    """Exports every iteration plus the cross-iteration aggregate.

    Output structure:
    {
        "passed": true,
        "iterations": [...],
        "aggregate": {...} | null
    }
    """

    def get_file_name(self) -> str:
        return "benchmark_report.json"

    def _generate_content(self) -> str:
        return render_report_json(self._config.results, self._config.aggregate)


class IterationCsvExporter(BaseResultExporter):
    """Exports one row per iteration, followed by aggregate statistics when present."""

    def get_file_name(self) -> str:
        return "benchmark_iterations.csv"

    def _generate_content(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                "iteration",
                "namespace",
                "started",
                "completed",
                "failed",
                "actual_rate",
                "p50_ms",
                "p95_ms",
                "p99_ms",
                "max_ms",
                "passed",
                "failure_reasons",
            ]
        )
        for r in self._config.results:
            res = r.results
            writer.writerow(
                [
                    r.iteration,
                    r.namespace,
                    res.workflows_started,
                    res.workflows_completed,
                    res.workflows_failed,
                    self._format_number(res.actual_rate),
                    self._format_number(res.latency.p50),
                    self._format_number(res.latency.p95),
                    self._format_number(res.latency.p99),
                    self._format_number(res.latency.max),
                    r.passed,
                    "; ".join(r.failure_reasons),
                ]
            )

        aggregate = self._config.aggregate
        if aggregate is not None and aggregate.metrics:
            writer.writerow([])
            writer.writerow(["Aggregate", f"confidence={aggregate.confidence_level:.2f}"])
            writer.writerow(["metric", "mean", "std", "min", "max", "cv", "ci_low", "ci_high"])
            for name, metric in aggregate.metrics.items():
                writer.writerow(
                    [
                        name,
                        self._format_number(metric.mean),
                        self._format_number(metric.std),
                        self._format_number(metric.min),
                        self._format_number(metric.max),
                        self._format_number(metric.cv, decimals=4),
                        self._format_number(metric.ci_low),
                        self._format_number(metric.ci_high),
                    ]
                )
        return buf.getvalue()

    def _format_number(self, value, decimals: int = 2) -> str:
        if value is None:
            return ""
        if isinstance(value, float):
            if value == float("inf"):
                return "inf"
            if value == float("-inf"):
                return "-inf"
            return f"{value:.{decimals}f}"
        return str(value)


class ConsoleSummaryExporter(FlowBenchLoggerMixin):
    """Prints iteration summaries and the overall verdict with rich."""

    def __init__(self, console: Console | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._console = console or Console()

    def export(self, results: list[RunResult], aggregate: IterationAggregate | None = None) -> None:
        for result in results:
            self._console.print(result.to_summary(), markup=False, highlight=False)
        if aggregate is not None and len(results) > 1:
            verdict = "[bold green]PASSED[/]" if aggregate.passed else "[bold red]FAILED[/]"
            self._console.print(
                f"Iterations: {aggregate.num_iterations} "
                f"({aggregate.num_passed} passed) - overall {verdict}"
            )
            for name, metric in aggregate.metrics.items():
                self._console.print(
                    f"  {name}: mean {metric.mean:.2f} {metric.unit} "
                    f"[{metric.ci_low:.2f}, {metric.ci_high:.2f}]",
                    markup=False,
                )
