# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from flowbench.runner.runner import BenchmarkRunner

__all__ = ["BenchmarkRunner"]
