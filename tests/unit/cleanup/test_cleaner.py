# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging

import pytest

from flowbench.cleanup import (
    CleanupAgent,
    TerminationFailure,
    generate_cleanup_script,
    manual_cleanup_commands,
)
from flowbench.common.exceptions import NamespaceIsolationError
from tests.unit.conftest import FakeOrchestrationClient, FakeRPCError

BENCH = "benchmark-cleanup"
OTHER = "benchmark-other"


def make_agent(client: FakeOrchestrationClient, **overrides) -> CleanupAgent:
    params = {"max_concurrency": 10, "max_attempts": 3, "retry_backoff": 0.0}
    params.update(overrides)
    return CleanupAgent(client, **params)


class ConcurrencyTrackingClient(FakeOrchestrationClient):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.active = 0
        self.peak = 0

    async def terminate_workflow(self, namespace, workflow_id, run_id, reason):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.001)
            await super().terminate_workflow(namespace, workflow_id, run_id, reason)
        finally:
            self.active -= 1


class CompletingBeforeTerminateClient(FakeOrchestrationClient):
    """Workflows in ``completes`` finish on their own just before termination reaches them."""

    def __init__(self, *args, completes: set[str], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.completes = completes

    async def terminate_workflow(self, namespace, workflow_id, run_id, reason):
        if workflow_id in self.completes:
            workflow = self.workflows[namespace][workflow_id]
            workflow.status = "Completed"
            workflow.done.set()
        await super().terminate_workflow(namespace, workflow_id, run_id, reason)


class TestCleanupAgent:
    @pytest.mark.asyncio
    async def test_terminates_only_target_namespace(self):
        client = FakeOrchestrationClient()
        client.seed_running(BENCH, 50)
        client.seed_running(OTHER, 10, prefix="other")

        result = await make_agent(client).cleanup(BENCH)

        assert result.success
        assert result.workflows_found == 50
        assert result.workflows_terminated == 50
        assert result.termination_errors == []
        assert client.running(BENCH) == []
        assert len(client.running(OTHER)) == 10
        assert {ns for ns, _ in client.terminate_calls} == {BENCH}
        assert client.list_calls == [BENCH]

    @pytest.mark.asyncio
    async def test_verify_cleanup(self):
        client = FakeOrchestrationClient()
        client.seed_running(BENCH, 5)
        agent = make_agent(client)

        assert await agent.running_workflow_count(BENCH) == 5
        assert await agent.verify_cleanup(BENCH) is False
        await agent.cleanup(BENCH)
        assert await agent.verify_cleanup(BENCH) is True

    @pytest.mark.asyncio
    async def test_empty_namespace(self):
        client = FakeOrchestrationClient([BENCH])
        result = await make_agent(client).cleanup(BENCH)
        assert result.success
        assert result.workflows_found == 0
        assert client.terminate_calls == []

    @pytest.mark.asyncio
    async def test_idempotent(self):
        client = FakeOrchestrationClient()
        client.seed_running(BENCH, 5)
        agent = make_agent(client)

        first = await agent.cleanup(BENCH)
        second = await agent.cleanup(BENCH)

        assert first.workflows_terminated == 5
        assert second.success
        assert second.workflows_found == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("namespace", ["default", "production", "benchmark-"])
    async def test_refuses_non_benchmark_namespace(self, namespace):
        client = FakeOrchestrationClient()
        client.seed_running(namespace, 3)
        with pytest.raises(NamespaceIsolationError):
            await make_agent(client).cleanup(namespace)
        assert client.terminate_calls == []
        assert client.list_calls == []

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        client = ConcurrencyTrackingClient()
        client.seed_running(BENCH, 30)
        result = await make_agent(client, max_concurrency=4).cleanup(BENCH)
        assert result.workflows_terminated == 30
        assert client.peak <= 4

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        client = FakeOrchestrationClient()
        ids = client.seed_running(BENCH, 3)
        client.terminate_failures = {ids[0]: 2}

        result = await make_agent(client).cleanup(BENCH)

        assert result.success
        assert result.workflows_terminated == 3
        assert sum(1 for _, wf in client.terminate_calls if wf == ids[0]) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, caplog):
        client = FakeOrchestrationClient()
        ids = client.seed_running(BENCH, 3)
        client.terminate_failures = {ids[1]: 10}

        with caplog.at_level(logging.INFO):
            result = await make_agent(client).cleanup(BENCH)

        assert not result.success
        assert result.workflows_terminated == 2
        assert [f.workflow_id for f in result.termination_errors] == [ids[1]]
        assert sum(1 for _, wf in client.terminate_calls if wf == ids[1]) == 3
        assert "MANUAL CLEANUP REQUIRED" in caplog.text
        assert ids[1] in caplog.text
        assert "temporal workflow terminate" in caplog.text

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self):
        client = FakeOrchestrationClient()
        ids = client.seed_running(BENCH, 1)
        client.terminate_failures = {ids[0]: 5}
        client.terminate_error = FakeRPCError("permission denied", "PERMISSION_DENIED")

        result = await make_agent(client).cleanup(BENCH)

        assert len(result.termination_errors) == 1
        assert len(client.terminate_calls) == 1

    @pytest.mark.asyncio
    async def test_list_failure_is_reported_not_raised(self, caplog):
        client = FakeOrchestrationClient([BENCH])
        client.list_error = FakeRPCError("visibility store unavailable")

        with caplog.at_level(logging.INFO):
            result = await make_agent(client).cleanup(BENCH)

        assert not result.success
        assert "visibility store unavailable" in result.list_error
        assert "MANUAL CLEANUP REQUIRED" in caplog.text

    @pytest.mark.asyncio
    async def test_error_log_is_capped(self, caplog):
        client = FakeOrchestrationClient()
        ids = client.seed_running(BENCH, 8)
        client.terminate_failures = {wf: 10 for wf in ids}
        client.terminate_error = FakeRPCError("denied", "PERMISSION_DENIED")

        with caplog.at_level(logging.INFO):
            result = await make_agent(client).cleanup(BENCH)

        assert len(result.termination_errors) == 8
        logged = [r for r in caplog.records if r.getMessage().startswith("Failed to terminate")]
        assert len(logged) == 5
        assert "3 additional termination error(s) not shown" in caplog.text

    @pytest.mark.asyncio
    async def test_workflow_closed_before_termination_is_not_an_error(self, caplog):
        client = CompletingBeforeTerminateClient(completes={"seeded-1", "seeded-3"})
        client.seed_running(BENCH, 5)

        with caplog.at_level(logging.INFO):
            result = await make_agent(client).cleanup(BENCH)

        assert result.success
        assert result.workflows_found == 5
        assert result.workflows_terminated == 3
        assert result.workflows_already_closed == 2
        assert result.termination_errors == []
        assert client.running(BENCH) == []
        assert len(client.terminate_calls) == 5
        assert "MANUAL CLEANUP REQUIRED" not in caplog.text

    def test_defaults_from_environment(self):
        agent = CleanupAgent(FakeOrchestrationClient())
        assert agent.max_concurrency == 10
        assert agent.max_attempts == 3
        assert agent.retry_backoff == 0.1


class TestManualCleanup:
    def test_commands_name_namespace(self):
        commands = manual_cleanup_commands(BENCH)
        assert len(commands) == 3
        assert all(f"--namespace {BENCH}" in c for c in commands)

    def test_script(self):
        script = generate_cleanup_script(
            BENCH,
            [
                TerminationFailure("wf-1", "run-1", "boom"),
                TerminationFailure("wf-2", None, "boom"),
            ],
        )
        assert script.startswith("#!/bin/bash\n")
        assert f'NAMESPACE="{BENCH}"' in script
        assert '--workflow-id "wf-1" --run-id "run-1" || true' in script
        assert '--workflow-id "wf-2" || true' in script
        assert "temporal workflow count" in script

    def test_script_without_failures(self):
        script = generate_cleanup_script(BENCH)
        assert "Terminate specific failed workflows" not in script
        assert "Terminate any remaining running workflows" in script
