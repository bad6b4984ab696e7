# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Post-run termination of benchmark workflows."""

from flowbench.cleanup.cleaner import (
    CleanupAgent,
    CleanupResult,
    TerminationFailure,
    generate_cleanup_script,
    manual_cleanup_commands,
)

__all__ = [
    "CleanupAgent",
    "CleanupResult",
    "TerminationFailure",
    "generate_cleanup_script",
    "manual_cleanup_commands",
]
