# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime, timezone

from flowbench.generator import GeneratorStats
from flowbench.metrics import AggregatorSnapshot
from flowbench.results import RunResult, build_run_result
from tests.unit.conftest import make_run_config

START = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_result(
    *,
    iteration: int = 1,
    started: int = 100,
    completed: int = 95,
    failed: int = 5,
    p99: float = 100.0,
    duration_actual: float = 10.0,
    config_overrides: dict | None = None,
    **kwargs,
) -> RunResult:
    config = make_run_config(**(config_overrides or {}))
    stats = GeneratorStats(
        started=started,
        completed=completed,
        failed=failed,
        current_rate=started / duration_actual,
        target_rate=config.target_rate,
    )
    snapshot = AggregatorSnapshot(
        p50=p99 / 4, p95=p99 / 2, p99=p99, max=p99 * 2, count=completed, failure_count=failed
    )
    return build_run_result(
        config,
        stats,
        snapshot,
        namespace="benchmark-0123456789ab",
        start_time=START,
        duration_actual=duration_actual,
        iteration=iteration,
        **kwargs,
    )
