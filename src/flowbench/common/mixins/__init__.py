# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Mixins shared by benchmark components."""

from flowbench.common.mixins.health_check_mixin import (
    HealthCheckMixin,
    HealthCheckResult,
)
from flowbench.common.mixins.logger_mixin import FlowBenchLoggerMixin

__all__ = [
    "FlowBenchLoggerMixin",
    "HealthCheckMixin",
    "HealthCheckResult",
]
