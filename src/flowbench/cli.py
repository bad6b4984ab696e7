# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Command line entry point.

Exit status of ``run``: 0 once a result was reported (the verdict is part of
the result), 1 on invalid configuration, no connection to the service or a
failed pre-flight gate, 130 when interrupted before any result exists. The
service connection is retried ``TEMPORAL_CONNECT_ATTEMPTS`` times for both
commands.
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter
from pydantic import ValidationError
from rich.console import Console

from flowbench.cleanup import CleanupAgent, generate_cleanup_script
from flowbench.client.protocols import OrchestrationClientProtocol
from flowbench.common.config import BenchmarkSettings, RunConfig
from flowbench.common.environment import Environment
from flowbench.common.exceptions import (
    ConfigurationError,
    NamespaceIsolationError,
    PreflightError,
)
from flowbench.common.logging import setup_rich_logging
from flowbench.metrics import MetricsRegistry, MetricsServer
from flowbench.results import (
    BenchmarkReportJsonExporter,
    ConsoleSummaryExporter,
    IterationCsvExporter,
    ResultExporterConfig,
    RunResultJsonExporter,
    render_report_json,
)
from flowbench.runner import BenchmarkRunner

if TYPE_CHECKING:
    from temporalio.runtime import Runtime

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

app = App(
    name="flowbench",
    help="Load generation and measurement for durable-workflow orchestration services.",
)

_stderr = Console(stderr=True)


def build_run_config(**overrides) -> RunConfig:
    """Merge CLI overrides over ``BENCHMARK_*`` environment variables.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    values = {name: value for name, value in overrides.items() if value is not None}
    try:
        settings = BenchmarkSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid benchmark configuration: {e}") from e
    return settings.to_run_config()


async def _connect(runtime: "Runtime | None" = None) -> OrchestrationClientProtocol:
    """Connect to ``TEMPORAL_ADDRESS``, retrying per ``TEMPORAL_CONNECT_*``."""
    from flowbench.client.temporal_client import TemporalOrchestrationClient

    settings = Environment.TEMPORAL
    return await TemporalOrchestrationClient.connect(
        settings.ADDRESS,
        attempts=settings.CONNECT_ATTEMPTS,
        interval=settings.CONNECT_INTERVAL,
        runtime=runtime,
    )


def _print_connect_error(error: Exception) -> None:
    _stderr.print(
        f"[bold red]Could not connect to {Environment.TEMPORAL.ADDRESS}:[/] {error}"
    )


async def export_results(
    runner: BenchmarkRunner, output_dir: Path
) -> list[Path]:
    config = ResultExporterConfig(
        results=runner.results, output_dir=output_dir, aggregate=runner.aggregate
    )
    exporters = [RunResultJsonExporter(config), BenchmarkReportJsonExporter(config)]
    if len(config.results) > 1:
        exporters.append(IterationCsvExporter(config))
    return [await exporter.export() for exporter in exporters]


async def run_benchmark(
    config: RunConfig,
    client: OrchestrationClientProtocol,
    *,
    registry: MetricsRegistry | None = None,
    output_dir: Path | None = None,
    console: Console | None = None,
    serve_metrics: bool | None = None,
    **runner_kwargs,
) -> int:
    """Run a benchmark against ``client`` and report the results. Returns the exit status."""
    registry = registry or MetricsRegistry()
    runner = BenchmarkRunner(client, config, registry, **runner_kwargs)

    if serve_metrics is None:
        serve_metrics = Environment.METRICS.ENABLED
    server: MetricsServer | None = None
    if serve_metrics:
        server = MetricsServer(registry)
        server.set_health_source(runner)
        await server.start()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runner.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            pass

    try:
        try:
            results = await runner.run()
        except PreflightError as e:
            _stderr.print(f"[bold red]Pre-flight check failed:[/] {e}")
            return EXIT_FAILURE
        except asyncio.CancelledError:
            results = runner.results
            if not results:
                return EXIT_INTERRUPTED

        ConsoleSummaryExporter(console=console or _stderr).export(results, runner.aggregate)
        if len(results) == 1:
            print(results[0].to_json())
        else:
            print(render_report_json(results, runner.aggregate))
        if output_dir is not None:
            for path in await export_results(runner, output_dir):
                runner.info(f"Wrote {path}")
        return EXIT_OK
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        if server is not None:
            await server.stop()


async def run_cleanup(
    client: OrchestrationClientProtocol,
    namespace: str,
    script: Path | None = None,
) -> int:
    """Terminate open workflows in a benchmark namespace. Returns the exit status."""
    agent = CleanupAgent(client)
    try:
        result = await agent.cleanup(namespace)
    except NamespaceIsolationError as e:
        _stderr.print(f"[bold red]{e}[/]")
        return EXIT_FAILURE

    if script is not None and not result.success:
        script.write_text(
            generate_cleanup_script(namespace, result.termination_errors), encoding="utf-8"
        )
        script.chmod(0o755)
        _stderr.print(f"Manual cleanup script written to {script}")

    if result.list_error is not None:
        return EXIT_FAILURE
    return EXIT_OK if await agent.verify_cleanup(namespace) else EXIT_FAILURE


@app.command
def run(
    *,
    workflow_type: Annotated[
        str | None,
        Parameter(
            name=["--workflow-type", "-w"],
            help="simple, multi-activity, timer, child-workflow or state-transitions.",
        ),
    ] = None,
    activity_count: Annotated[
        int | None, Parameter(help="Activities per multi-activity workflow.")
    ] = None,
    timer_duration: Annotated[
        str | None, Parameter(help="Timer length for timer workflows, e.g. 1s.")
    ] = None,
    child_count: Annotated[
        int | None, Parameter(help="Children per child-workflow workflow.")
    ] = None,
    target_rate: Annotated[
        float | None, Parameter(name=["--target-rate", "-r"], help="Workflows per second.")
    ] = None,
    duration: Annotated[
        str | None, Parameter(name=["--duration", "-d"], help="Load duration, e.g. 5m.")
    ] = None,
    ramp_up: Annotated[str | None, Parameter(help="Ramp-up duration, e.g. 30s.")] = None,
    worker_count: Annotated[
        int | None, Parameter(help="Concurrent submission workers.")
    ] = None,
    namespace: Annotated[
        str | None, Parameter(help="Benchmark namespace; generated when omitted.")
    ] = None,
    iterations: Annotated[int | None, Parameter(help="Repeat the benchmark N times.")] = None,
    completion_timeout: Annotated[
        str | None, Parameter(help="Drain timeout after load stops.")
    ] = None,
    max_p99_latency: Annotated[
        str | None, Parameter(help="P99 latency threshold, e.g. 5s or 5000 (ms).")
    ] = None,
    min_throughput: Annotated[
        float | None, Parameter(help="Minimum completed workflows per second.")
    ] = None,
    output_dir: Annotated[
        Path | None, Parameter(help="Also write JSON/CSV artifacts to this directory.")
    ] = None,
    log_level: Annotated[str, Parameter(help="Logging level.")] = "INFO",
) -> int:
    """Run a benchmark. Unset options fall back to BENCHMARK_* environment variables."""
    setup_rich_logging(log_level)
    try:
        config = build_run_config(
            workflow_type=workflow_type,
            activity_count=activity_count,
            timer_duration=timer_duration,
            child_count=child_count,
            target_rate=target_rate,
            duration=duration,
            ramp_up=ramp_up,
            worker_count=worker_count,
            namespace=namespace,
            iterations=iterations,
            completion_timeout=completion_timeout,
            max_p99_latency=max_p99_latency,
            min_throughput=min_throughput,
        )
    except ConfigurationError as e:
        _stderr.print(f"[bold red]Configuration error:[/] {e}")
        return EXIT_FAILURE

    async def _main() -> int:
        from flowbench.metrics.sdk_metrics import SdkMetricsBridge

        registry = MetricsRegistry()
        sdk_metrics = (
            SdkMetricsBridge(registry) if Environment.METRICS.SDK_ENABLED else None
        )
        try:
            client = await _connect(sdk_metrics.runtime if sdk_metrics else None)
        except Exception as e:
            _print_connect_error(e)
            return EXIT_FAILURE

        if sdk_metrics is not None:
            sdk_metrics.start()
        try:
            return await run_benchmark(
                config, client, registry=registry, output_dir=output_dir
            )
        finally:
            if sdk_metrics is not None:
                await sdk_metrics.stop()

    try:
        return asyncio.run(_main())
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


@app.command
def cleanup(
    namespace: str,
    *,
    script: Annotated[
        Path | None,
        Parameter(help="Write a manual cleanup script here if termination fails."),
    ] = None,
    log_level: Annotated[str, Parameter(help="Logging level.")] = "INFO",
) -> int:
    """Terminate every running workflow in a benchmark namespace."""
    setup_rich_logging(log_level)

    async def _main() -> int:
        try:
            client = await _connect()
        except Exception as e:
            _print_connect_error(e)
            return EXIT_FAILURE
        return await run_cleanup(client, namespace, script)

    try:
        return asyncio.run(_main())
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


app.default(run)


def main() -> None:
    status = app()
    if isinstance(status, int):
        sys.exit(status)


if __name__ == "__main__":
    main()
