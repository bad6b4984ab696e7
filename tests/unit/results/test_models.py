# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime, timedelta

import orjson
import pytest

from flowbench.common.config import ChildWorkflowSpec
from flowbench.results import RunResult
from tests.unit.results.conftest import START, make_result


class TestRunResultJson:
    def test_top_level_layout(self):
        data = orjson.loads(make_result().to_json())
        assert list(data) == [
            "timestamp",
            "startTime",
            "endTime",
            "iteration",
            "config",
            "results",
            "system",
            "thresholds",
            "passed",
            "failureReasons",
            "notes",
        ]

    def test_camel_case_keys(self):
        data = make_result().to_dict()
        assert data["config"]["workflowType"] == "simple"
        assert data["config"]["targetRate"] == 50.0
        assert data["config"]["rampUpDuration"] == "0s"
        assert data["results"]["workflowsStarted"] == 100
        assert data["results"]["actualRate"] == 9.5
        assert data["results"]["durationActual"] == 10.0
        assert data["results"]["drainComplete"] is True
        assert data["results"]["latency"] == {"p50": 25.0, "p95": 50.0, "p99": 100.0, "max": 200.0}
        assert data["thresholds"] == {"maxP99LatencyMs": 5000.0, "minThroughput": 1.0}

    def test_lists_are_never_null(self):
        data = make_result().to_dict()
        assert data["failureReasons"] == []
        assert data["notes"] == []
        assert data["system"] == {}

    def test_kind_specific_parameters_only_when_set(self):
        simple = make_result().to_dict()["config"]
        child = make_result(
            config_overrides={"workflow": ChildWorkflowSpec(child_count=6)}
        ).to_dict()["config"]
        assert "activityCount" not in simple
        assert "childCount" not in simple
        assert child["childCount"] == 6
        assert child["workflowType"] == "child-workflow"

    def test_from_json_restores_result(self):
        original = make_result(p99=9000.0, notes=["RateBelowTarget: example"])
        restored = RunResult.from_json(original.to_json())
        assert restored == original
        assert not restored.passed
        assert restored.config.duration == "300ms"

    def test_start_and_end_time_round_trip(self):
        end = START + timedelta(seconds=42.5)
        original = make_result(end_time=end)
        data = orjson.loads(original.to_json())
        assert data["timestamp"] == data["startTime"]
        assert datetime.fromisoformat(data["startTime"]) == START
        assert datetime.fromisoformat(data["endTime"]) == end

        restored = RunResult.from_json(original.to_json())
        assert restored.start_time == START
        assert restored.end_time == end

    @pytest.mark.parametrize(
        "missing", ["timestamp", "startTime", "endTime", "passed", "failureReasons", "config"]
    )
    def test_from_json_missing_field(self, missing):
        data = make_result().to_dict()
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            RunResult.from_json(orjson.dumps(data))

    def test_from_json_rejects_non_object(self):
        with pytest.raises(ValueError):
            RunResult.from_json(b"[1, 2, 3]")

    def test_in_flight(self):
        assert make_result(started=10, completed=6, failed=1).results.in_flight == 3


class TestRunResultSummary:
    def test_sections_present(self):
        summary = make_result().to_summary()
        for heading in (
            "BENCHMARK RESULTS SUMMARY",
            "CONFIGURATION",
            "RESULTS",
            "LATENCY (milliseconds)",
            "THRESHOLDS",
            "SYSTEM",
        ):
            assert heading in summary
        assert "✓ PASSED" in summary
        assert "(no system context supplied)" in summary
        assert "  Start: 2026-01-15T12:00:00+00:00" in summary
        assert "  End:   2026-01-15T12:00:10+00:00" in summary
        assert "NOTES" not in summary

    def test_failed_summary_lists_reasons(self):
        summary = make_result(p99=9000.0).to_summary()
        assert "✗ FAILED" in summary
        assert "p99 latency 9000.00ms exceeds threshold 5000.00ms" in summary

    def test_notes_and_system_context(self):
        summary = make_result(
            drain_complete=False, system_context={"historyShards": 512}
        ).to_summary()
        assert "NOTES" in summary
        assert "IncompleteDrain" in summary
        assert "historyShards:" in summary
        assert "512" in summary
        assert "Drain Complete:       no" in summary
