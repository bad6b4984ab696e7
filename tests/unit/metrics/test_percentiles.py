# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from hypothesis import given
from hypothesis import strategies as st

from flowbench.metrics import (
    LatencyPercentiles,
    calculate_percentiles,
    nearest_rank,
    validate_percentile_ordering,
)

latencies = st.lists(
    st.floats(min_value=0, max_value=1e7, allow_nan=False, allow_infinity=False),
    min_size=1,
    max_size=500,
)


class TestNearestRank:
    @pytest.mark.parametrize(
        "percentile,expected",
        [(0, 1.0), (1, 1.0), (10, 1.0), (11, 2.0), (50, 5.0), (95, 10.0), (99, 10.0), (100, 10.0)],
    )
    def test_ten_values(self, percentile, expected):
        values = [float(v) for v in range(1, 11)]
        assert nearest_rank(values, percentile) == expected

    def test_empty(self):
        assert nearest_rank([], 99) == 0.0

    def test_single_value(self):
        assert nearest_rank([42.0], 50) == 42.0
        assert nearest_rank([42.0], 99) == 42.0

    def test_hundred_values(self):
        values = [float(v) for v in range(1, 101)]
        assert nearest_rank(values, 50) == 50.0
        assert nearest_rank(values, 95) == 95.0
        assert nearest_rank(values, 99) == 99.0


class TestCalculatePercentiles:
    def test_empty_is_all_zero(self):
        assert calculate_percentiles([]) == LatencyPercentiles()

    def test_does_not_mutate_input(self):
        values = [5.0, 1.0, 3.0]
        calculate_percentiles(values)
        assert values == [5.0, 1.0, 3.0]

    def test_unsorted_input(self):
        p = calculate_percentiles([30.0, 10.0, 20.0, 40.0])
        assert p == LatencyPercentiles(p50=20.0, p95=40.0, p99=40.0, max=40.0)

    def test_identical_values(self):
        p = calculate_percentiles([7.5] * 20)
        assert p == LatencyPercentiles(p50=7.5, p95=7.5, p99=7.5, max=7.5)

    @given(latencies)
    def test_ordering_holds(self, values):
        p = calculate_percentiles(values)
        assert validate_percentile_ordering(p)
        assert p.max == max(values)

    @given(latencies)
    def test_results_are_samples(self, values):
        p = calculate_percentiles(values)
        for value in (p.p50, p.p95, p.p99, p.max):
            assert value in values


class TestValidatePercentileOrdering:
    def test_rejects_out_of_order(self):
        assert not validate_percentile_ordering(
            LatencyPercentiles(p50=10.0, p95=5.0, p99=20.0, max=30.0)
        )
