# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from hypothesis import given
from hypothesis import strategies as st

from flowbench.generator import RampUpController


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRampUpController:
    @pytest.mark.parametrize(
        "target,expected_initial",
        [(100.0, 10.0), (5.0, 1.0), (1.0, 1.0), (1000.0, 100.0), (0.5, 0.5)],
    )
    def test_initial_rate(self, target, expected_initial):
        assert RampUpController(target, 30.0, start_time=0.0).initial_rate == expected_initial

    def test_no_ramp_up_uses_target_immediately(self):
        ramp = RampUpController(100.0, 0.0, start_time=0.0)
        assert ramp.initial_rate == 100.0
        assert ramp.rate_at(0.0) == 100.0
        assert ramp.is_complete_at(0.0)
        assert ramp.progress_at(0.0) == 1.0

    def test_linear_interpolation(self):
        ramp = RampUpController(100.0, 10.0, start_time=0.0)
        assert ramp.rate_at(0.0) == pytest.approx(10.0)
        assert ramp.rate_at(5.0) == pytest.approx(55.0)
        assert ramp.rate_at(10.0) == 100.0
        assert ramp.rate_at(60.0) == 100.0

    def test_progress_and_completion(self):
        ramp = RampUpController(100.0, 10.0, start_time=100.0)
        assert ramp.progress_at(99.0) == 0.0
        assert ramp.progress_at(102.5) == pytest.approx(0.25)
        assert ramp.progress_at(200.0) == 1.0
        assert not ramp.is_complete_at(109.9)
        assert ramp.is_complete_at(110.0)

    def test_uses_clock(self):
        clock = FakeClock(0.0)
        ramp = RampUpController(100.0, 10.0, clock=clock)
        assert ramp.start_time == 0.0
        clock.now = 9.0
        assert not ramp.is_complete()
        clock.now = 10.0
        assert ramp.is_complete()

    def test_earlier_query_does_not_lower_rate(self):
        ramp = RampUpController(100.0, 10.0, start_time=0.0)
        late = ramp.rate_at(8.0)
        assert ramp.rate_at(2.0) == late
        assert ramp.rate_at(-5.0) == late

    @pytest.mark.parametrize("target,ramp_up", [(0.0, 10.0), (-1.0, 10.0), (10.0, -1.0)])
    def test_invalid_arguments(self, target, ramp_up):
        with pytest.raises(ValueError):
            RampUpController(target, ramp_up, start_time=0.0)

    @given(
        target=st.floats(min_value=1.0, max_value=1000.0),
        ramp_up=st.floats(min_value=0.0, max_value=600.0),
        times=st.lists(st.floats(min_value=-10.0, max_value=700.0), min_size=1, max_size=50),
    )
    def test_rate_never_decreases_and_stays_in_bounds(self, target, ramp_up, times):
        ramp = RampUpController(target, ramp_up, start_time=0.0)
        previous = 0.0
        for t in sorted(times):
            rate = ramp.rate_at(t)
            assert rate >= previous
            assert ramp.initial_rate <= rate <= target
            previous = rate
