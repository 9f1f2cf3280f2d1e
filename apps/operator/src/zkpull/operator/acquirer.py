"""TaskAcquirer -- 乐观领取 + 竞争结果判定

oracle 是唯一仲裁者，同一任务只有一个领取写入能成功。
ConflictError 表示良性竞争，回读任务判断是否（经自动分配等）已属于自己；
其他领取失败对本次尝试是致命的，不在此处重试。
"""

import structlog
from zkpull.core.exceptions import AcquisitionError, ConflictError
from zkpull.core.models import AcquisitionResult, TaskRecord, TaskStatus
from zkpull.oracle import TaskOracle

from .deadline import with_deadline

log = structlog.get_logger()


class TaskAcquirer:
    """任务领取器"""

    def __init__(
        self,
        oracle: TaskOracle,
        operator: str,
        fetch_timeout_s: float | None = None,
    ) -> None:
        self._oracle = oracle
        self._operator = operator
        self._fetch_timeout_s = fetch_timeout_s

    def is_assigned_to_me(self, task: TaskRecord) -> bool:
        return task.is_assigned_to(self._operator)

    async def pick_up(self, task_id: int) -> AcquisitionResult:
        """领取 Pending 任务

        Returns:
            AcquisitionResult；proceed 为 True 时调用方进入校验流程

        Raises:
            AcquisitionError: 非冲突类领取失败
        """
        task = await self._read_task(task_id)

        if task.status != TaskStatus.PENDING:
            return self._resolve_non_pending(task)

        log.info("task_pick_start", task_id=task_id)
        try:
            receipt = await self._oracle.pick_task(task_id)
        except ConflictError as e:
            return await self._resolve_conflict(task_id, e)
        except Exception as e:
            log.error(
                "task_pick_failed",
                task_id=task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise AcquisitionError(task_id, e) from e

        log.info("task_picked", task_id=task_id, tx_hash=receipt.tx_hash)
        return AcquisitionResult(picked=True)

    def _resolve_non_pending(self, task: TaskRecord) -> AcquisitionResult:
        """任务已脱离 Pending：只有分配给自己且仍为 Assigned 时继续"""
        mine = self.is_assigned_to_me(task) and task.status == TaskStatus.ASSIGNED
        log.info(
            "task_not_pending",
            task_id=task.task_id,
            status=task.status.name,
            assigned_to_me=mine,
        )
        return AcquisitionResult(should_process=mine)

    async def _resolve_conflict(
        self, task_id: int, error: ConflictError
    ) -> AcquisitionResult:
        """竞争失败后回读任务；回读失败视为放弃本次领取"""
        log.info(
            "task_pick_conflict",
            task_id=task_id,
            signature=error.signature,
        )
        try:
            task = await self._read_task(task_id)
        except Exception as check_error:
            log.error(
                "task_conflict_recheck_failed",
                task_id=task_id,
                error_type=type(check_error).__name__,
                error=str(check_error),
            )
            return AcquisitionResult()

        if self.is_assigned_to_me(task):
            log.info("task_assigned_to_me_after_conflict", task_id=task_id)
            return AcquisitionResult(should_process=True)
        return AcquisitionResult()

    async def _read_task(self, task_id: int) -> TaskRecord:
        return await with_deadline(
            self._oracle.get_task(task_id),
            self._fetch_timeout_s,
            "get_task",
        )
