"""TaskDiscovery -- 推送与轮询合并为单一候选队列

两路来源：
1. oracle 推送（TaskCreated / TaskAssigned，顺序不保证因果）
2. 固定间隔轮询：列出曾分配给本 operator 的任务，重新提出仍为 Assigned 且未在处理中的任务

推送丢失时，轮询保证在一个间隔内补偿；推送订阅中断后自动重新订阅。
发现层只读，从不改变链上状态。
"""

import asyncio

import structlog
from zkpull.core.models import (
    CandidateAction,
    DiscoverySource,
    OracleEvent,
    TaskAssignedEvent,
    TaskCandidate,
    TaskCreatedEvent,
    TaskStatus,
    same_address,
)
from zkpull.oracle import TaskOracle

from .deadline import with_deadline
from .guard import TaskProcessingGuard

log = structlog.get_logger()


class TaskDiscovery:
    """候选任务发现器"""

    def __init__(
        self,
        oracle: TaskOracle,
        operator: str,
        guard: TaskProcessingGuard,
        poll_interval_s: float = 30.0,
        auto_assignment_wait_s: float = 3.0,
        fetch_timeout_s: float | None = None,
        queue: asyncio.Queue | None = None,
        push_retry_delay_s: float = 5.0,
    ) -> None:
        """
        Args:
            oracle: 任务账本
            operator: 本 operator 地址
            guard: 共享的 in-flight guard（只读使用）
            poll_interval_s: 轮询间隔（秒）
            auto_assignment_wait_s: TaskCreated 后等待自动分配的宽限时间（秒）
            fetch_timeout_s: 任务读取超时（秒）
            queue: 候选队列，None 时内部创建
            push_retry_delay_s: 推送订阅中断后重新订阅前的等待（秒）
        """
        self._oracle = oracle
        self._operator = operator
        self._guard = guard
        self._poll_interval_s = poll_interval_s
        self._auto_assignment_wait_s = auto_assignment_wait_s
        self._fetch_timeout_s = fetch_timeout_s
        self._push_retry_delay_s = push_retry_delay_s
        self._queue: asyncio.Queue[TaskCandidate] = queue or asyncio.Queue()
        self._running = False
        self._stop_event = asyncio.Event()
        self._push_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None
        self._created_handlers: set[asyncio.Task] = set()

    @property
    def queue(self) -> asyncio.Queue:
        return self._queue

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """启动推送订阅与轮询两个后台活动"""
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._push_task = asyncio.create_task(self._run_push(), name="discovery-push")
        self._poll_task = asyncio.create_task(self._run_poll(), name="discovery-poll")
        log.info(
            "discovery_started",
            poll_interval_s=self._poll_interval_s,
            operator=self._operator,
        )

    async def stop(self) -> None:
        """停止发现：轮询在两次调用之间退出，推送订阅直接取消"""
        self._running = False
        self._stop_event.set()

        cancelled = [self._push_task, *self._created_handlers]
        for task in cancelled:
            if task is not None:
                task.cancel()
        await asyncio.gather(
            *(t for t in [*cancelled, self._poll_task] if t is not None),
            return_exceptions=True,
        )
        self._created_handlers.clear()
        self._push_task = None
        self._poll_task = None
        log.info("discovery_stopped")

    def publish(self, candidate: TaskCandidate) -> None:
        self._queue.put_nowait(candidate)
        log.debug(
            "candidate_published",
            task_id=candidate.task_id,
            source=candidate.source.value,
            action=candidate.action.value,
        )

    async def handle_event(self, event: OracleEvent) -> None:
        """处理一条推送"""
        if isinstance(event, TaskCreatedEvent):
            log.info(
                "task_created_received",
                task_id=event.task_id,
                issue_id=event.issue_id,
                claim_index=event.claim_index,
            )
            handler = asyncio.create_task(self.on_task_created(event.task_id))
            self._created_handlers.add(handler)
            handler.add_done_callback(self._created_handlers.discard)
        elif isinstance(event, TaskAssignedEvent):
            self.on_task_assigned(event)

    async def on_task_created(self, task_id: int) -> None:
        """等待自动分配宽限期后读取任务并决定动作"""
        await asyncio.sleep(self._auto_assignment_wait_s)
        try:
            task = await self._read_task(task_id)
        except Exception as e:
            log.error(
                "task_created_check_failed",
                task_id=task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return

        if task.status == TaskStatus.ASSIGNED and task.is_assigned_to(self._operator):
            log.info("task_auto_assigned_to_me", task_id=task_id)
            self.publish(
                TaskCandidate(task_id=task_id, source=DiscoverySource.TASK_CREATED)
            )
        elif task.status == TaskStatus.PENDING:
            log.info("task_still_pending", task_id=task_id)
            self.publish(
                TaskCandidate(
                    task_id=task_id,
                    source=DiscoverySource.TASK_CREATED,
                    action=CandidateAction.ACQUIRE,
                )
            )
        else:
            log.info(
                "task_created_not_actionable",
                task_id=task_id,
                status=task.status.name,
                assigned_operator=task.assigned_operator,
            )

    def on_task_assigned(self, event: TaskAssignedEvent) -> None:
        if not same_address(event.operator, self._operator):
            return
        if self._guard.is_guarded(event.task_id):
            return
        log.info("task_assigned_to_me_via_event", task_id=event.task_id)
        self.publish(
            TaskCandidate(task_id=event.task_id, source=DiscoverySource.TASK_ASSIGNED)
        )

    async def poll_once(self) -> list[int]:
        """一轮轮询，返回本轮提出的任务 ID"""
        task_ids = await self._oracle.get_operator_tasks(self._operator)
        proposed: list[int] = []
        for task_id in task_ids:
            if self._stop_event.is_set():
                break
            if self._guard.is_guarded(task_id):
                continue
            try:
                task = await self._read_task(task_id)
            except Exception as e:
                # 单个任务读取失败不影响本轮其余任务
                log.warning(
                    "task_poll_read_failed",
                    task_id=task_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            if task.status == TaskStatus.ASSIGNED and task.is_assigned_to(self._operator):
                self.publish(TaskCandidate(task_id=task_id, source=DiscoverySource.POLL))
                proposed.append(task_id)
        return proposed

    async def _run_push(self) -> None:
        """订阅推送；订阅中断后等待 push_retry_delay_s 重新订阅，直到 stop()"""
        while self._running:
            try:
                async for event in self._oracle.watch_events():
                    try:
                        await self.handle_event(event)
                    except Exception as e:
                        log.error(
                            "push_event_handling_failed",
                            topic=event.topic,
                            error_type=type(e).__name__,
                            error=str(e),
                        )
                log.warning("push_subscription_ended")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error(
                    "push_subscription_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    retry_in_s=self._push_retry_delay_s,
                )

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._push_retry_delay_s
                )
            except TimeoutError:
                continue

    async def _run_poll(self) -> None:
        while self._running:
            try:
                proposed = await self.poll_once()
                if proposed:
                    log.info("poll_proposed_tasks", task_ids=proposed)
            except Exception as e:
                log.error(
                    "task_poll_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_s)
            except TimeoutError:
                continue

    async def _read_task(self, task_id: int):
        return await with_deadline(
            self._oracle.get_task(task_id),
            self._fetch_timeout_s,
            "get_task",
        )
