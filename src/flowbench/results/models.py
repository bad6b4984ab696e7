# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Result records for benchmark iterations.

Field names are snake_case in Python and camelCase in JSON. The JSON layout is
fixed: timestamp, startTime, endTime, iteration, config, results, system,
thresholds, passed, failureReasons and notes are always present, and list
fields are never null.
"""

from datetime import datetime
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "ResultConfig",
    "ResultLatency",
    "ResultMetrics",
    "ResultThresholds",
    "RunResult",
]

REQUIRED_TOP_LEVEL_FIELDS = (
    "timestamp",
    "startTime",
    "endTime",
    "config",
    "results",
    "system",
    "passed",
    "failureReasons",
)


class _ResultModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ResultConfig(_ResultModel):
    """Run parameters needed to reproduce the iteration.

    Durations are rendered as strings such as ``5m0s``. Kind-specific parameters
    are present only for the kind that takes them.
    """

    workflow_type: str
    activity_count: int | None = None
    timer_duration: str | None = None
    child_count: int | None = None
    target_rate: float
    duration: str
    ramp_up_duration: str
    worker_count: int
    iterations: int
    namespace: str


class ResultLatency(_ResultModel):
    """Completion latency percentiles in milliseconds."""

    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    max: float = 0.0


class ResultMetrics(_ResultModel):
    workflows_started: int
    workflows_completed: int
    workflows_failed: int
    actual_rate: float
    duration_actual: float
    drain_complete: bool = True
    latency: ResultLatency = Field(default_factory=ResultLatency)

    @property
    def in_flight(self) -> int:
        return self.workflows_started - self.workflows_completed - self.workflows_failed


class ResultThresholds(_ResultModel):
    max_p99_latency_ms: float
    min_throughput: float


class RunResult(_ResultModel):
    """Outcome of one benchmark iteration.

    ``timestamp`` is the iteration start and equals ``start_time``. ``end_time`` is
    taken once the drain wait returns.
    """

    timestamp: datetime
    start_time: datetime
    end_time: datetime
    iteration: int = 1
    config: ResultConfig
    results: ResultMetrics
    system: dict[str, Any] = Field(default_factory=dict)
    thresholds: ResultThresholds
    passed: bool
    failure_reasons: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @property
    def namespace(self) -> str:
        return self.config.namespace

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible mapping with camelCase keys."""
        data = self.model_dump(mode="json", by_alias=True)
        data["config"] = {k: v for k, v in data["config"].items() if v is not None}
        return data

    def to_json(self) -> str:
        return orjson.dumps(self.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8")

    @classmethod
    def from_json(cls, data: str | bytes) -> "RunResult":
        """Parse a document produced by ``to_json``.

        Raises:
            ValueError: If a required top-level field is missing or a value is invalid.
        """
        raw = orjson.loads(data)
        if not isinstance(raw, dict):
            raise ValueError("Benchmark result must be a JSON object")
        missing = [name for name in REQUIRED_TOP_LEVEL_FIELDS if name not in raw]
        if missing:
            raise ValueError(f"Benchmark result is missing fields: {', '.join(missing)}")
        return cls.model_validate(raw)

    def to_summary(self) -> str:
        """Fixed-format, human-readable report."""
        from flowbench.results.exporters import format_summary

        return format_summary(self)
