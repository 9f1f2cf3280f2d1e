"""TaskPipeline -- 单任务处理状态机

IDLE -> GUARDED -> FETCHING_TASK -> FETCHING_CLAIM -> VERIFYING -> SUBMITTING -> DONE
ACQUIRE 候选在进入 guard 之后、读取任务之前领取，领取未成功时进入 SKIPPED。
任一步骤失败进入 ERROR 并向上抛出；guard 拒绝或任务已不再分配给自己时进入 SKIPPED。
每次状态流转写入 structlog 与 attempt journal（journal 写入失败只记日志）。
"""

from typing import Any

import structlog
from ulid import ULID
from zkpull.core.exceptions import SubmissionError
from zkpull.core.models import (
    ClaimRecord,
    ProcessingReport,
    ProcessingState,
    TaskRecord,
    TaskStatus,
)
from zkpull.core.store import AttemptJournal
from zkpull.oracle import TaskOracle
from zkpull.verifier import ProofVerifier

from .acquirer import TaskAcquirer
from .deadline import with_deadline
from .guard import TaskProcessingGuard

log = structlog.get_logger()


class TaskPipeline:
    """单任务校验流水线"""

    def __init__(
        self,
        oracle: TaskOracle,
        verifier: ProofVerifier,
        guard: TaskProcessingGuard,
        operator: str,
        journal: AttemptJournal | None = None,
        fetch_timeout_s: float | None = 10.0,
        acquirer: TaskAcquirer | None = None,
    ) -> None:
        self._oracle = oracle
        self._verifier = verifier
        self._guard = guard
        self._operator = operator
        self._journal = journal
        self._fetch_timeout_s = fetch_timeout_s
        self._acquirer = acquirer or TaskAcquirer(oracle, operator, fetch_timeout_s)

    async def run(self, task_id: int, acquire: bool = False) -> ProcessingReport:
        """处理一个任务

        Args:
            task_id: 任务 ID
            acquire: 任务仍为 Pending 时为 True，持有 guard 后先领取

        Returns:
            ProcessingReport（DONE 或 SKIPPED）

        Raises:
            OperatorError: 领取失败、读取超时、校验失败或提交失败（已记录 ERROR 状态）
        """
        attempt_id = str(ULID())

        async with self._guard.hold(task_id) as entered:
            if not entered:
                await self._transition(
                    attempt_id, task_id, ProcessingState.SKIPPED, reason="in_flight"
                )
                return ProcessingReport(
                    task_id=task_id,
                    attempt_id=attempt_id,
                    state=ProcessingState.SKIPPED,
                )

            await self._transition(attempt_id, task_id, ProcessingState.GUARDED)
            try:
                if acquire and not await self._acquire(attempt_id, task_id):
                    return ProcessingReport(
                        task_id=task_id,
                        attempt_id=attempt_id,
                        state=ProcessingState.SKIPPED,
                    )
                return await self._process(attempt_id, task_id)
            except Exception as e:
                await self._transition(
                    attempt_id,
                    task_id,
                    ProcessingState.ERROR,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise

    async def _acquire(self, attempt_id: str, task_id: int) -> bool:
        """领取任务，返回是否继续处理"""
        acquisition = await self._acquirer.pick_up(task_id)
        if acquisition.proceed:
            return True
        await self._transition(
            attempt_id, task_id, ProcessingState.SKIPPED, reason="not_acquired"
        )
        return False

    async def _process(self, attempt_id: str, task_id: int) -> ProcessingReport:
        # 1. 任务详情
        await self._transition(attempt_id, task_id, ProcessingState.FETCHING_TASK)
        task: TaskRecord = await with_deadline(
            self._oracle.get_task(task_id),
            self._fetch_timeout_s,
            "get_task",
        )
        if task.status != TaskStatus.ASSIGNED or not task.is_assigned_to(self._operator):
            await self._transition(
                attempt_id,
                task_id,
                ProcessingState.SKIPPED,
                reason="not_assigned_to_me",
                status=task.status.name,
            )
            return ProcessingReport(
                task_id=task_id,
                attempt_id=attempt_id,
                state=ProcessingState.SKIPPED,
            )

        # 2. claim（取 access token）
        await self._transition(
            attempt_id,
            task_id,
            ProcessingState.FETCHING_CLAIM,
            issue_id=task.issue_id,
            claim_index=task.claim_index,
        )
        claim: ClaimRecord = await with_deadline(
            self._oracle.get_claim(task.issue_id, task.claim_index),
            self._fetch_timeout_s,
            "get_claim",
        )

        # 3. 证明校验（失败直接抛出，不提交）
        await self._transition(
            attempt_id,
            task_id,
            ProcessingState.VERIFYING,
            pr_link=task.pr_link,
            token=claim.masked_token(),
        )
        token = claim.access_token.get_secret_value()
        result = await self._verifier.verify_pr(task.pr_link, token or None)

        # 4. 提交
        await self._transition(
            attempt_id,
            task_id,
            ProcessingState.SUBMITTING,
            is_valid=result.is_valid,
        )
        try:
            receipt = await self._oracle.submit_validation(
                task_id, result.is_valid, result.zk_proof
            )
        except Exception as e:
            raise SubmissionError(task_id, e) from e

        await self._transition(
            attempt_id,
            task_id,
            ProcessingState.DONE,
            is_valid=result.is_valid,
            tx_hash=receipt.tx_hash,
        )
        return ProcessingReport(
            task_id=task_id,
            attempt_id=attempt_id,
            state=ProcessingState.DONE,
            is_valid=result.is_valid,
            tx_hash=receipt.tx_hash,
        )

    async def _transition(
        self,
        attempt_id: str,
        task_id: int,
        state: ProcessingState,
        **detail: Any,
    ) -> None:
        """记录状态流转"""
        log.info(
            "task_state_transition",
            task_id=task_id,
            attempt_id=attempt_id,
            state=state.value,
            **detail,
        )
        if self._journal is None:
            return
        try:
            await self._journal.record(attempt_id, task_id, state, detail)
        except Exception as e:
            log.warning(
                "attempt_journal_write_failed",
                task_id=task_id,
                attempt_id=attempt_id,
                state=state.value,
                error_type=type(e).__name__,
                error=str(e),
            )
