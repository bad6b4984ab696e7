# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from flowbench.common.config import format_duration, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30s", 30.0),
            ("5m", 300.0),
            ("1h", 3600.0),
            ("1m30s", 90.0),
            ("1h30m", 5400.0),
            ("500ms", 0.5),
            ("250us", 0.00025),
            ("1.5s", 1.5),
            ("90", 90.0),
            (" 10s ", 10.0),
            (45, 45.0),
            (0.25, 0.25),
            ("0s", 0.0),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "   ", "abc", "5x", "1m30", "s", "-5s", "-3", True])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (-1, "0s"),
            (0.5, "500ms"),
            (1.5, "1.5s"),
            (30, "30s"),
            (300, "5m0s"),
            (90, "1m30s"),
            (3600, "1h0m0s"),
            (5400, "1h30m0s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize("seconds", [0.5, 1.5, 30, 90, 300, 3600, 5400])
    def test_formatted_value_parses_back(self, seconds):
        assert parse_duration(format_duration(seconds)) == pytest.approx(seconds)
