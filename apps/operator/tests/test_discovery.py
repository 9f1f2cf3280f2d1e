"""TaskDiscovery 测试

覆盖：TaskCreated 宽限期后的动作判断、TaskAssigned 过滤、
轮询提出候选、轮询异常不终止循环、单任务读取失败不影响同轮其他任务、
推送订阅中断后重新订阅、推送与轮询合并到同一队列。
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from zkpull.core.exceptions import OracleError
from zkpull.core.models import (
    CandidateAction,
    DiscoverySource,
    TaskAssignedEvent,
    TaskCandidate,
)
from zkpull.operator import TaskDiscovery, TaskProcessingGuard


@pytest.fixture
def guard():
    return TaskProcessingGuard()


@pytest.fixture
def discovery(oracle, me, guard):
    return TaskDiscovery(
        oracle,
        me,
        guard,
        poll_interval_s=0.05,
        auto_assignment_wait_s=0,
        fetch_timeout_s=1.0,
    )


def _drain(queue: asyncio.Queue) -> list[TaskCandidate]:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class TestTaskCreated:
    async def test_auto_assigned_to_me(self, discovery, create_task, me):
        task_id = await create_task(assign_to=me)
        await discovery.on_task_created(task_id)
        [candidate] = _drain(discovery.queue)
        assert candidate.task_id == task_id
        assert candidate.action == CandidateAction.PROCESS
        assert candidate.source == DiscoverySource.TASK_CREATED

    async def test_still_pending_requests_acquire(self, discovery, create_task):
        task_id = await create_task()
        await discovery.on_task_created(task_id)
        [candidate] = _drain(discovery.queue)
        assert candidate.action == CandidateAction.ACQUIRE

    async def test_assigned_to_other_dropped(self, discovery, create_task, other):
        task_id = await create_task(assign_to=other)
        await discovery.on_task_created(task_id)
        assert discovery.queue.empty()

    async def test_read_failure_logged(self, discovery):
        """读取失败不抛出"""
        await discovery.on_task_created(404)
        assert discovery.queue.empty()

    async def test_waits_for_grace_window(self, oracle, me, guard, create_task):
        discovery = TaskDiscovery(oracle, me, guard, auto_assignment_wait_s=0.05)
        task_id = await create_task()
        pending = asyncio.create_task(discovery.on_task_created(task_id))
        await asyncio.sleep(0.01)
        assert discovery.queue.empty()
        await pending
        assert not discovery.queue.empty()


class TestTaskAssigned:
    def test_assigned_to_me(self, discovery, me):
        mixed_case = me.upper().replace("0X", "0x")
        discovery.on_task_assigned(TaskAssignedEvent(task_id=3, operator=mixed_case))
        [candidate] = _drain(discovery.queue)
        assert candidate.task_id == 3
        assert candidate.source == DiscoverySource.TASK_ASSIGNED

    def test_assigned_to_other_ignored(self, discovery, other):
        discovery.on_task_assigned(TaskAssignedEvent(task_id=3, operator=other))
        assert discovery.queue.empty()

    def test_guarded_task_ignored(self, discovery, guard, me):
        guard.try_enter(3)
        discovery.on_task_assigned(TaskAssignedEvent(task_id=3, operator=me))
        assert discovery.queue.empty()


class TestPoll:
    async def test_poll_proposes_assigned_tasks(self, discovery, create_task, oracle, me):
        first = await create_task(assign_to=me)
        second = await create_task(assign_to=me)
        await oracle.submit_validation(second, True, b"{}")

        assert await discovery.poll_once() == [first]
        [candidate] = _drain(discovery.queue)
        assert candidate.source == DiscoverySource.POLL

    async def test_poll_skips_guarded(self, discovery, create_task, guard, me):
        task_id = await create_task(assign_to=me)
        guard.try_enter(task_id)
        assert await discovery.poll_once() == []

    async def test_poll_loop_survives_errors(self, discovery, oracle, create_task, me):
        """单轮轮询失败只记日志，下一轮继续"""
        task_id = await create_task(assign_to=me)
        real = oracle.get_operator_tasks
        calls = 0

        async def flaky(operator):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise OracleError("rpc down")
            return await real(operator)

        oracle.get_operator_tasks = AsyncMock(side_effect=flaky)
        discovery.start()
        try:
            candidate = await asyncio.wait_for(discovery.queue.get(), timeout=2)
        finally:
            await discovery.stop()
        assert candidate.task_id == task_id
        assert calls >= 2

    async def test_poll_read_failure_isolated(self, discovery, oracle, create_task, me):
        """某个任务读取失败时，同轮其余任务仍被提出"""
        first = await create_task(assign_to=me)
        second = await create_task(assign_to=me)
        real = oracle.get_task

        async def flaky(task_id):
            if task_id == first:
                raise OracleError("getTask reverted")
            return await real(task_id)

        oracle.get_task = AsyncMock(side_effect=flaky)
        assert await discovery.poll_once() == [second]
        [candidate] = _drain(discovery.queue)
        assert candidate.task_id == second


class TestLifecycle:
    async def test_push_event_reaches_queue(self, discovery, ledger, me):
        """推送路径：自动分配给自己的新任务进入候选队列"""
        ledger._auto_assign_to = me
        discovery.start()
        try:
            await asyncio.sleep(0.01)
            task_id = await ledger.create_task(10, 0, "https://github.com/acme/widgets/pull/3", me)
            candidate = await asyncio.wait_for(discovery.queue.get(), timeout=2)
        finally:
            await discovery.stop()
        assert candidate.task_id == task_id

    async def test_stop_is_prompt(self, oracle, me, guard):
        discovery = TaskDiscovery(oracle, me, guard, poll_interval_s=3600)
        discovery.start()
        await asyncio.sleep(0.01)
        await asyncio.wait_for(discovery.stop(), timeout=1)
        assert not discovery.running

    async def test_start_twice_is_noop(self, discovery):
        discovery.start()
        push_task = discovery._push_task
        discovery.start()
        assert discovery._push_task is push_task
        await discovery.stop()

    async def test_push_resubscribes_after_failure(self, oracle, me, guard):
        """推送源抛错后重新订阅，后续事件照常进入队列"""
        subscriptions = 0

        async def flaky_watch():
            nonlocal subscriptions
            subscriptions += 1
            if subscriptions == 1:
                raise OracleError("filter not found")
            yield TaskAssignedEvent(task_id=7, operator=me)
            await asyncio.Event().wait()

        oracle.watch_events = flaky_watch
        discovery = TaskDiscovery(
            oracle, me, guard, poll_interval_s=3600, push_retry_delay_s=0.01
        )
        discovery.start()
        try:
            candidate = await asyncio.wait_for(discovery.queue.get(), timeout=2)
        finally:
            await discovery.stop()
        assert candidate.task_id == 7
        assert candidate.source == DiscoverySource.TASK_ASSIGNED
        assert subscriptions == 2
