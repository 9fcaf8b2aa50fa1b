"""Tests for linesh.tasks.ForegroundTaskCoordinator."""

from __future__ import annotations

import asyncio

import pytest

from linesh.errors import AssertionFailure, CancellationError, CheckError, EvalError, ParseError
from linesh.lang import EvalState, Evaluator, LocalFileSystem
from linesh.tasks import ForegroundTaskCoordinator


@pytest.fixture
def coordinator(tmp_path) -> ForegroundTaskCoordinator:
    return ForegroundTaskCoordinator(Evaluator(EvalState(filesystem=LocalFileSystem(str(tmp_path)))))


async def finish(coordinator: ForegroundTaskCoordinator):
    task = coordinator.active
    await asyncio.wait_for(task.done.wait(), timeout=2)
    return coordinator.poll()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_completed_result_is_handed_over_once(self, coordinator):
        task = coordinator.submit("len([1, 2, 3])")
        assert task is not None
        assert coordinator.state == "running"
        finished = await finish(coordinator)
        assert finished is task
        assert task.result == 3
        assert task.error is None
        assert coordinator.poll() is None
        assert coordinator.state == "idle"

    @pytest.mark.asyncio
    async def test_parse_error_never_starts_a_task(self, coordinator):
        with pytest.raises(ParseError):
            coordinator.submit("[1, 2")
        assert coordinator.state == "idle"
        assert coordinator.active is None

    @pytest.mark.asyncio
    async def test_check_error_never_starts_a_task(self, coordinator):
        with pytest.raises(CheckError, match="not declared"):
            coordinator.submit("print $missing")
        assert coordinator.state == "idle"

    @pytest.mark.asyncio
    async def test_eval_error_is_reported(self, coordinator):
        coordinator.submit("len(1)")
        task = await finish(coordinator)
        assert isinstance(task.error, EvalError)
        assert task.result is None

    @pytest.mark.asyncio
    async def test_assertion_failure(self, coordinator):
        coordinator.submit("assert false")
        task = await finish(coordinator)
        assert isinstance(task.error, AssertionFailure)
        assert task.error.source == "false"

    @pytest.mark.asyncio
    async def test_second_submission_is_noop(self, coordinator):
        first = coordinator.submit("sleep 200")
        assert coordinator.submit("len([])") is None
        assert coordinator.active is first
        coordinator.interrupt()
        await coordinator.wait_cancelled()

    @pytest.mark.asyncio
    async def test_local_scope_persists(self, coordinator):
        coordinator.submit("x = 41")
        await finish(coordinator)
        coordinator.submit("($x + 1)")
        task = await finish(coordinator)
        assert task.result == 42


class TestInterrupt:
    @pytest.mark.asyncio
    async def test_running_to_idle_without_result(self, coordinator):
        task = coordinator.submit("sleep 5000")
        await asyncio.sleep(0.01)
        assert coordinator.state == "running"

        assert coordinator.interrupt() is task
        assert coordinator.state == "idle"
        assert coordinator.poll() is None

        await coordinator.wait_cancelled()
        assert task.token.cancelled
        assert task.result is None
        assert isinstance(task.error, CancellationError)

    @pytest.mark.asyncio
    async def test_new_submission_accepted_right_away(self, coordinator):
        coordinator.submit("sleep 5000")
        coordinator.interrupt()
        task = coordinator.submit("len([1])")
        assert task is not None
        finished = await finish(coordinator)
        assert finished.result == 1
        await coordinator.wait_cancelled()

    @pytest.mark.asyncio
    async def test_cancelled_loop_stops(self, coordinator):
        task = coordinator.submit("for i in 1000 { sleep 1 }")
        await asyncio.sleep(0.02)
        coordinator.interrupt()
        await asyncio.wait_for(coordinator.wait_cancelled(), timeout=1)
        assert task.done.is_set()
        assert task.result is None

    @pytest.mark.asyncio
    async def test_interrupt_without_detach_waits_for_the_evaluation(self, coordinator):
        task = coordinator.submit("sleep 5000")
        await asyncio.sleep(0.01)

        assert coordinator.interrupt(detach=False) is task
        assert coordinator.state == "running"
        assert coordinator.submit("len([])") is None

        finished = await finish(coordinator)
        assert finished is task
        assert isinstance(task.error, CancellationError)
        assert coordinator.state == "idle"

    @pytest.mark.asyncio
    async def test_busy_loop_is_cancelled(self, coordinator):
        task = coordinator.submit("for i in 1000000000 { x = $i }")
        await asyncio.sleep(0.02)
        assert coordinator.state == "running"
        coordinator.interrupt()
        await asyncio.wait_for(coordinator.wait_cancelled(), timeout=1)
        assert isinstance(task.error, CancellationError)

    @pytest.mark.asyncio
    async def test_interrupt_when_idle(self, coordinator):
        assert coordinator.interrupt() is None

    @pytest.mark.asyncio
    async def test_interrupt_after_completion_is_noop(self, coordinator):
        coordinator.submit("len([])")
        await asyncio.wait_for(coordinator.active.done.wait(), timeout=1)
        assert coordinator.interrupt() is None
        assert coordinator.poll().result == 0
