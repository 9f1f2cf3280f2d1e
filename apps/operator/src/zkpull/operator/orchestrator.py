"""Orchestrator -- 候选消费与任务调度

发现层（推送 + 轮询）把候选写入同一个队列，Orchestrator 作为唯一消费者：
候选交给 TaskPipeline，ACQUIRE 候选在持有 guard 后先领取再校验；
每个任务在独立的 asyncio.Task 中处理，单任务失败只记日志，不影响发现循环。
"""

import asyncio

import structlog
from zkpull.core.exceptions import RegistrationError
from zkpull.core.models import (
    CandidateAction,
    ProcessingReport,
    ProcessingState,
    TaskCandidate,
)
from zkpull.core.store import AttemptJournal
from zkpull.oracle import TaskOracle
from zkpull.verifier import ProofVerifier

from .acquirer import TaskAcquirer
from .discovery import TaskDiscovery
from .guard import TaskProcessingGuard
from .pipeline import TaskPipeline

log = structlog.get_logger()


class Orchestrator:
    """Operator 编排器"""

    def __init__(
        self,
        oracle: TaskOracle,
        verifier: ProofVerifier,
        operator: str,
        journal: AttemptJournal | None = None,
        poll_interval_s: float = 30.0,
        auto_assignment_wait_s: float = 3.0,
        fetch_timeout_s: float | None = 10.0,
    ) -> None:
        self._oracle = oracle
        self._operator = operator
        self._guard = TaskProcessingGuard()
        self._queue: asyncio.Queue[TaskCandidate] = asyncio.Queue()
        self._pipeline = TaskPipeline(
            oracle,
            verifier,
            self._guard,
            operator,
            journal=journal,
            fetch_timeout_s=fetch_timeout_s,
            acquirer=TaskAcquirer(oracle, operator, fetch_timeout_s),
        )
        self._discovery = TaskDiscovery(
            oracle,
            operator,
            self._guard,
            poll_interval_s=poll_interval_s,
            auto_assignment_wait_s=auto_assignment_wait_s,
            fetch_timeout_s=fetch_timeout_s,
            queue=self._queue,
        )
        self._running = False
        self._consumer: asyncio.Task | None = None
        self._handlers: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def guard(self) -> TaskProcessingGuard:
        return self._guard

    @property
    def discovery(self) -> TaskDiscovery:
        return self._discovery

    def in_flight_count(self) -> int:
        """当前正在处理的任务数"""
        return self._guard.in_flight_count

    async def start(self) -> None:
        """校验注册状态后启动发现与消费

        Raises:
            RegistrationError: 无法列出本 operator 的任务
        """
        if self._running:
            return
        await self.verify_registration()

        self._running = True
        self._consumer = asyncio.create_task(self._consume(), name="orchestrator-consumer")
        self._discovery.start()
        log.info("operator_started", operator=self._operator)

    async def stop(self) -> None:
        """停止发现与消费，等待 in-flight 任务自然结束"""
        if not self._running:
            return
        self._running = False
        await self._discovery.stop()

        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None

        if self._handlers:
            log.info("waiting_for_in_flight_tasks", count=len(self._handlers))
            await asyncio.gather(*self._handlers, return_exceptions=True)
        log.info("operator_stopped", operator=self._operator)

    async def verify_registration(self) -> list[int]:
        """列出本 operator 的任务；失败说明未注册或 oracle 不可达"""
        try:
            task_ids = await self._oracle.get_operator_tasks(self._operator)
        except Exception as e:
            log.error(
                "operator_registration_check_failed",
                operator=self._operator,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise RegistrationError(self._operator, e) from e
        log.info(
            "operator_registration_verified",
            operator=self._operator,
            task_count=len(task_ids),
        )
        return task_ids

    def dispatch(self, candidate: TaskCandidate) -> asyncio.Task:
        """把候选交给独立的处理任务"""
        handler = asyncio.create_task(
            self.handle(candidate), name=f"task-{candidate.task_id}"
        )
        self._handlers.add(handler)
        handler.add_done_callback(self._handlers.discard)
        return handler

    async def handle(self, candidate: TaskCandidate) -> ProcessingReport:
        """处理单个候选，任何异常都在此处记录，不向外传播"""
        task_id = candidate.task_id
        try:
            return await self._pipeline.run(
                task_id, acquire=candidate.action == CandidateAction.ACQUIRE
            )
        except Exception as e:
            log.error(
                "task_processing_failed",
                task_id=task_id,
                source=candidate.source.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ProcessingReport(
                task_id=task_id,
                state=ProcessingState.ERROR,
                error_type=type(e).__name__,
            )

    async def _consume(self) -> None:
        while True:
            candidate = await self._queue.get()
            try:
                if self._guard.is_guarded(candidate.task_id):
                    log.debug("candidate_in_flight_skip", task_id=candidate.task_id)
                    continue
                self.dispatch(candidate)
            finally:
                self._queue.task_done()
