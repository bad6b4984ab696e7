# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Benchmark run configuration.

``RunConfig`` is validated once and is immutable afterwards. It can be built
directly, from a mapping, or from ``BENCHMARK_*`` environment variables through
``BenchmarkSettings``.
"""

import secrets
from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowbench.common.config.durations import parse_duration
from flowbench.common.config.workflow_spec import (
    SimpleWorkflowSpec,
    WorkflowSpec,
    make_workflow_spec,
)
from flowbench.common.constants import (
    DEFAULT_TASK_QUEUE,
    MAX_DRAIN_TIMEOUT,
    MAX_ITERATIONS,
    MAX_TARGET_RATE,
    MAX_TEST_DURATION,
    MAX_WORKER_COUNT,
    MIN_DRAIN_TIMEOUT,
    MIN_ITERATIONS,
    MIN_TARGET_RATE,
    MIN_WORKER_COUNT,
    NAMESPACE_PREFIX,
    NAMESPACE_SUFFIX_LENGTH,
)
from flowbench.common.exceptions import ConfigurationError

__all__ = [
    "BenchmarkSettings",
    "RunConfig",
    "generate_namespace",
    "is_benchmark_namespace",
    "load_run_config",
]


def is_benchmark_namespace(namespace: str) -> bool:
    """True if ``namespace`` is a benchmark namespace (prefixed and non-empty suffix)."""
    return namespace.startswith(NAMESPACE_PREFIX) and len(namespace) > len(
        NAMESPACE_PREFIX
    )


def generate_namespace() -> str:
    """Return a fresh ``benchmark-<hex>`` namespace name."""
    return f"{NAMESPACE_PREFIX}{secrets.token_hex(NAMESPACE_SUFFIX_LENGTH // 2)}"


def _duration_or_none(v: Any) -> Any:
    if isinstance(v, str):
        return parse_duration(v)
    return v


class RunConfig(BaseModel):
    """Validated, immutable parameters for a benchmark run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    workflow: WorkflowSpec = Field(default_factory=SimpleWorkflowSpec)

    target_rate: Annotated[
        float,
        Field(
            ge=MIN_TARGET_RATE,
            le=MAX_TARGET_RATE,
            description="Steady-state workflow starts per second across all workers.",
        ),
    ] = 100.0

    test_duration: Annotated[
        float,
        Field(
            gt=0,
            le=MAX_TEST_DURATION,
            description="Seconds of load generation, ramp-up included.",
        ),
    ] = 300.0

    ramp_up_duration: Annotated[
        float,
        Field(
            ge=0,
            description="Seconds over which the rate rises linearly to the target.",
        ),
    ] = 30.0

    worker_count: Annotated[
        int,
        Field(
            ge=MIN_WORKER_COUNT,
            le=MAX_WORKER_COUNT,
            description="Concurrent submission workers sharing the target rate.",
        ),
    ] = 4

    iterations: Annotated[
        int,
        Field(ge=MIN_ITERATIONS, le=MAX_ITERATIONS, description="Sequential iterations."),
    ] = 1

    namespace: Annotated[
        str | None,
        Field(
            description="Benchmark namespace. A fresh one is generated when unset.",
        ),
    ] = None

    max_p99_latency_ms: Annotated[
        float,
        Field(gt=0, description="p99 latency threshold in milliseconds."),
    ] = 5000.0

    min_throughput: Annotated[
        float,
        Field(gt=0, description="Minimum completed workflows per second."),
    ] = 50.0

    completion_drain_timeout: Annotated[
        float | None,
        Field(
            ge=0,
            description="Seconds to wait for in-flight workflows after load stops. "
            "Defaults to the test duration, clamped to [60s, 10m].",
        ),
    ] = None

    start_timeout: Annotated[
        float,
        Field(gt=0, description="Seconds allowed for a single workflow start call."),
    ] = 10.0

    task_queue: str = DEFAULT_TASK_QUEUE

    system_context: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque description of the system under test, copied into results.",
    )

    @field_validator(
        "test_duration",
        "ramp_up_duration",
        "completion_drain_timeout",
        "start_timeout",
        mode="before",
    )
    @classmethod
    def parse_durations(cls, v: Any) -> Any:
        return _duration_or_none(v)

    @field_validator("max_p99_latency_ms", mode="before")
    @classmethod
    def parse_latency_threshold(cls, v: Any) -> Any:
        # Strings carry units ("5s", "250ms"); bare numbers are milliseconds.
        if isinstance(v, str):
            try:
                return float(v)
            except ValueError:
                return parse_duration(v) * 1000
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not is_benchmark_namespace(v):
            raise ValueError(
                f"Invalid namespace '{v}'. Benchmark namespaces must start with "
                f"'{NAMESPACE_PREFIX}' followed by a non-empty suffix."
            )
        return v

    @model_validator(mode="after")
    def validate_ramp_up(self) -> "RunConfig":
        if self.ramp_up_duration >= self.test_duration:
            raise ValueError(
                f"Ramp-up duration ({self.ramp_up_duration}s) must be shorter than "
                f"the test duration ({self.test_duration}s)."
            )
        return self

    @property
    def effective_drain_timeout(self) -> float:
        if self.completion_drain_timeout is not None:
            return self.completion_drain_timeout
        return min(max(MIN_DRAIN_TIMEOUT, self.test_duration), MAX_DRAIN_TIMEOUT)

    @property
    def per_worker_rate(self) -> float:
        return self.target_rate / self.worker_count

    def resolve_namespace(self) -> str:
        """The configured namespace, or a freshly generated one."""
        return self.namespace or generate_namespace()


class BenchmarkSettings(BaseSettings):
    """Run parameters read from ``BENCHMARK_*`` environment variables.

    Durations accept units (``30s``, ``5m``, ``500ms``) or bare seconds.
    ``BENCHMARK_MAX_P99_LATENCY`` accepts a duration (``5s``) or milliseconds.
    ``BENCHMARK_SYSTEM_CONTEXT`` is a JSON object.
    """

    model_config = SettingsConfigDict(env_prefix="BENCHMARK_", extra="ignore")

    workflow_type: str = "simple"
    activity_count: int | None = None
    timer_duration: str | None = None
    child_count: int | None = None
    target_rate: float = 100.0
    duration: str = "5m"
    ramp_up: str = "30s"
    worker_count: int = 4
    namespace: str | None = None
    iterations: int = 1
    completion_timeout: str | None = None
    max_p99_latency: str = "5s"
    min_throughput: float = 50.0
    start_timeout: str = "10s"
    task_queue: str = DEFAULT_TASK_QUEUE
    system_context: dict[str, Any] = Field(default_factory=dict)

    def to_run_config(self) -> RunConfig:
        """Convert to a validated RunConfig.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        workflow_parameters = {
            name: value
            for name, value in (
                ("activity_count", self.activity_count),
                ("timer_duration", self.timer_duration),
                ("child_count", self.child_count),
            )
            if value is not None
        }
        data: dict[str, Any] = {
            "workflow": {"kind": self.workflow_type, **workflow_parameters},
            "target_rate": self.target_rate,
            "test_duration": self.duration,
            "ramp_up_duration": self.ramp_up,
            "worker_count": self.worker_count,
            "namespace": self.namespace,
            "iterations": self.iterations,
            "completion_drain_timeout": self.completion_timeout,
            "max_p99_latency_ms": self.max_p99_latency,
            "min_throughput": self.min_throughput,
            "start_timeout": self.start_timeout,
            "task_queue": self.task_queue,
            "system_context": self.system_context,
        }
        return load_run_config(data)


def load_run_config(data: Mapping[str, Any]) -> RunConfig:
    """Validate a mapping into a RunConfig.

    ``workflow`` may be a spec mapping with a ``kind`` key, or a plain kind string.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    values = dict(data)
    workflow = values.get("workflow")
    try:
        if isinstance(workflow, str):
            values["workflow"] = make_workflow_spec(workflow)
        elif isinstance(workflow, Mapping):
            parameters = dict(workflow)
            values["workflow"] = make_workflow_spec(
                parameters.pop("kind", "simple"), **parameters
            )
        return RunConfig.model_validate(values)
    except (ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid benchmark configuration: {e}") from e
