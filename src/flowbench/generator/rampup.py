# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Monotonic linear ramp-up of the workflow start rate."""

import time
from collections.abc import Callable

from flowbench.common.constants import (
    RAMP_UP_INITIAL_FRACTION,
    RAMP_UP_MIN_INITIAL_RATE,
)

__all__ = ["RampUpController"]


class RampUpController:
    """Rate schedule rising linearly from a low initial rate to the target.

    The initial rate is 10% of the target, at least 1/s and never above the
    target. With no ramp-up the target applies immediately. Rates returned by
    ``rate_at`` never decrease, even if queried with an earlier timestamp.

    Times are seconds on the ``clock`` (``time.monotonic`` by default).
    """

    def __init__(
        self,
        target_rate: float,
        ramp_up_duration: float,
        start_time: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if target_rate <= 0:
            raise ValueError(f"target_rate must be positive, got {target_rate}")
        if ramp_up_duration < 0:
            raise ValueError(
                f"ramp_up_duration cannot be negative, got {ramp_up_duration}"
            )
        self.target_rate = target_rate
        self.ramp_up_duration = ramp_up_duration
        self._clock = clock
        if ramp_up_duration == 0:
            self.initial_rate = target_rate
        else:
            self.initial_rate = min(
                target_rate,
                max(target_rate * RAMP_UP_INITIAL_FRACTION, RAMP_UP_MIN_INITIAL_RATE),
            )
        self.start_time = clock() if start_time is None else start_time
        self._last_rate = self.initial_rate

    def rate_at(self, t: float) -> float:
        if self.ramp_up_duration == 0:
            return self.target_rate
        elapsed = t - self.start_time
        if elapsed < 0:
            return self._last_rate
        if elapsed >= self.ramp_up_duration:
            self._last_rate = self.target_rate
            return self.target_rate
        progress = self.progress_at(t)
        rate = self.initial_rate + (self.target_rate - self.initial_rate) * progress
        rate = min(max(rate, self._last_rate), self.target_rate)
        self._last_rate = rate
        return rate

    def progress_at(self, t: float) -> float:
        """Ramp-up progress in [0, 1]."""
        if self.ramp_up_duration == 0:
            return 1.0
        elapsed = t - self.start_time
        if elapsed <= 0:
            return 0.0
        return min(elapsed / self.ramp_up_duration, 1.0)

    def is_complete_at(self, t: float) -> bool:
        return self.ramp_up_duration == 0 or t - self.start_time >= self.ramp_up_duration

    def is_complete(self) -> bool:
        return self.is_complete_at(self._clock())

