# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Pre-flight health and namespace gate."""

from flowbench.gate.preflight import PreflightGate

__all__ = ["PreflightGate"]
