# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Process-level settings read from environment variables.

Settings are grouped by concern and accessed through the module-level
``Environment`` singleton, for example ``Environment.METRICS.PORT``.
Benchmark run parameters live in ``flowbench.common.config.BenchmarkSettings``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowbench.common.constants import (
    DEFAULT_CONNECT_ATTEMPTS,
    DEFAULT_CONNECT_INTERVAL,
    DEFAULT_METRICS_PORT,
    DEFAULT_TEMPORAL_ADDRESS,
)

__all__ = ["Environment"]


class _TemporalSettings(BaseSettings):
    """Connection settings for the orchestration service."""

    model_config = SettingsConfigDict(env_prefix="TEMPORAL_", extra="ignore")

    ADDRESS: str = Field(
        default=DEFAULT_TEMPORAL_ADDRESS,
        description="Host and port of the orchestration service frontend.",
    )
    CONNECT_ATTEMPTS: int = Field(
        default=DEFAULT_CONNECT_ATTEMPTS,
        ge=1,
        description="Connection attempts before giving up on the service.",
    )
    CONNECT_INTERVAL: float = Field(
        default=DEFAULT_CONNECT_INTERVAL,
        ge=0,
        description="Seconds between connection attempts.",
    )
    NAMESPACE_RETENTION_HOURS: int = Field(
        default=24,
        ge=1,
        description="Workflow execution retention for namespaces created by the benchmark.",
    )


class _MetricsSettings(BaseSettings):
    """Settings for the Prometheus scrape endpoint."""

    model_config = SettingsConfigDict(env_prefix="FLOWBENCH_METRICS_", extra="ignore")

    ENABLED: bool = Field(
        default=True, description="Serve /metrics, /healthz and /readyz while running."
    )
    HOST: str = Field(default="0.0.0.0", description="Bind address for the endpoint.")
    PORT: int = Field(
        default=DEFAULT_METRICS_PORT, ge=1, le=65535, description="Endpoint port."
    )
    REQUEST_TIMEOUT: float = Field(
        default=5.0, gt=0, description="Seconds to wait for an HTTP request line."
    )
    SDK_ENABLED: bool = Field(
        default=True,
        description="Expose the Temporal SDK client metrics on the same endpoint.",
    )
    SDK_DRAIN_INTERVAL: float = Field(
        default=1.0, gt=0, description="Seconds between SDK metric buffer drains."
    )


class _GateSettings(BaseSettings):
    """Settings for the pre-flight health and namespace gate."""

    model_config = SettingsConfigDict(env_prefix="FLOWBENCH_GATE_", extra="ignore")

    HEALTH_TIMEOUT: float = Field(
        default=10.0, gt=0, description="Seconds allowed for the health check."
    )
    NAMESPACE_ATTEMPTS: int = Field(
        default=3, ge=1, description="Attempts to create the benchmark namespace."
    )
    NAMESPACE_BACKOFF: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds for exponential backoff between attempts.",
    )
    NAMESPACE_POLLS: int = Field(
        default=30,
        ge=1,
        description="Describe polls while waiting for a new namespace to become visible.",
    )
    NAMESPACE_POLL_INTERVAL: float = Field(
        default=1.0, ge=0, description="Seconds between visibility polls."
    )
    NAMESPACE_PROPAGATION_DELAY: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to wait after creating a namespace so every service host sees it.",
    )


class _CleanupSettings(BaseSettings):
    """Settings for terminating leftover benchmark workflows."""

    model_config = SettingsConfigDict(env_prefix="FLOWBENCH_CLEANUP_", extra="ignore")

    MAX_CONCURRENCY: int = Field(
        default=10, ge=1, description="Concurrent termination calls."
    )
    MAX_ATTEMPTS: int = Field(
        default=3, ge=1, description="Attempts per termination on transient errors."
    )
    RETRY_BACKOFF: float = Field(
        default=0.1,
        ge=0,
        description="Seconds multiplied by the attempt number between retries.",
    )


class _RunnerSettings(BaseSettings):
    """Settings for the run lifecycle."""

    model_config = SettingsConfigDict(env_prefix="FLOWBENCH_RUNNER_", extra="ignore")

    PROGRESS_INTERVAL: float = Field(
        default=10.0, gt=0, description="Seconds between progress log lines."
    )
    ITERATION_COOLDOWN: float = Field(
        default=0.0, ge=0, description="Seconds to pause between iterations."
    )
    CONFIDENCE_LEVEL: float = Field(
        default=0.95,
        gt=0,
        lt=1,
        description="Confidence level for cross-iteration intervals.",
    )


class _Environment(BaseSettings):
    """Root settings object grouping every environment-driven setting."""

    model_config = SettingsConfigDict(extra="ignore")

    TEMPORAL: _TemporalSettings = Field(default_factory=_TemporalSettings)
    METRICS: _MetricsSettings = Field(default_factory=_MetricsSettings)
    GATE: _GateSettings = Field(default_factory=_GateSettings)
    CLEANUP: _CleanupSettings = Field(default_factory=_CleanupSettings)
    RUNNER: _RunnerSettings = Field(default_factory=_RunnerSettings)


Environment = _Environment()
