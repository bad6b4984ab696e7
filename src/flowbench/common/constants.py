# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Constants shared across the benchmark engine."""

MILLIS_PER_SECOND = 1000
NANOS_PER_SECOND = 1_000_000_000

# Every namespace the engine creates or touches must carry this prefix.
NAMESPACE_PREFIX = "benchmark-"
NAMESPACE_SUFFIX_LENGTH = 12

DEFAULT_TASK_QUEUE = "benchmark-task-queue"
DEFAULT_TEMPORAL_ADDRESS = "temporal-frontend:7233"
DEFAULT_METRICS_PORT = 9090
DEFAULT_CONNECT_ATTEMPTS = 30
DEFAULT_CONNECT_INTERVAL = 2.0

# Updates the SDK may buffer between two drains before it starts dropping them.
SDK_METRIC_BUFFER_SIZE = 10_000

MIN_TARGET_RATE = 1.0
MAX_TARGET_RATE = 1000.0
MIN_WORKER_COUNT = 1
MAX_WORKER_COUNT = 100
MIN_ITERATIONS = 1
MAX_ITERATIONS = 100
MIN_CHILD_PARAMETER = 1
MAX_CHILD_PARAMETER = 100
MAX_TEST_DURATION = 3600.0

# Ramp-up begins at 10% of the target rate, never below one workflow per second.
RAMP_UP_INITIAL_FRACTION = 0.1
RAMP_UP_MIN_INITIAL_RATE = 1.0

MIN_DRAIN_TIMEOUT = 60.0
MAX_DRAIN_TIMEOUT = 600.0

# A steady start rate below this fraction of target produces a warning and a note.
RATE_SHORTFALL_FRACTION = 0.9

CLEANUP_TERMINATION_REASON = (
    "Benchmark cleanup - terminating workflows after benchmark completion"
)
CLEANUP_MAX_REPORTED_ERRORS = 5
CLEANUP_PROGRESS_STEP_PERCENT = 10

TRANSIENT_ERROR_MARKERS = (
    "unavailable",
    "deadline exceeded",
    "connection",
    "timeout",
    "resource exhausted",
)
