# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from temporalio.service import RPCError, RPCStatusCode

from flowbench.client.models import WorkflowExecution, is_not_found_error, is_transient_error
from tests.unit.conftest import FakeRPCError


class TestIsTransientError:
    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError(),
            ConnectionResetError(),
            FakeRPCError("try again", "UNAVAILABLE"),
            FakeRPCError("slow", "DEADLINE_EXCEEDED"),
            FakeRPCError("throttled", "RESOURCE_EXHAUSTED"),
            RuntimeError("connection reset by peer"),
        ],
    )
    def test_transient(self, error):
        assert is_transient_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            FakeRPCError("bad request", "INVALID_ARGUMENT"),
            FakeRPCError("missing", "NOT_FOUND"),
            FakeRPCError("denied", "PERMISSION_DENIED"),
            ValueError("bad value"),
        ],
    )
    def test_permanent(self, error):
        assert not is_transient_error(error)


class TestIsNotFoundError:
    def test_sdk_not_found(self):
        error = RPCError("workflow execution already completed", RPCStatusCode.NOT_FOUND, b"")
        assert is_not_found_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            RPCError("try again", RPCStatusCode.UNAVAILABLE, b""),
            FakeRPCError("denied", "PERMISSION_DENIED"),
            LookupError("not found"),
        ],
    )
    def test_other_errors(self, error):
        assert not is_not_found_error(error)


def test_workflow_execution_defaults():
    execution = WorkflowExecution("simple-20260115-120000-1")
    assert execution.run_id is None
    assert execution.workflow_type is None
    assert execution.start_time is None
