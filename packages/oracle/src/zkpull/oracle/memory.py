"""InMemoryLedger -- 进程内 oracle 实现

用于测试与 memory 模式：多个 operator 通过 connect() 获得各自的 InMemoryOracle 视图，
共享同一份账本。领取写入在单次调用内原子完成，第二个领取者收到
TaskAlreadyAssigned revert，并在 oracle 调用边界被分类为 ConflictError。
"""

import asyncio
from collections.abc import AsyncIterator
from itertools import count

import structlog
from ulid import ULID
from zkpull.core.exceptions import OracleError
from zkpull.core.models import (
    ClaimRecord,
    OracleEvent,
    TaskAssignedEvent,
    TaskCreatedEvent,
    TaskRecord,
    TaskStatus,
    TxReceipt,
    validate_transition,
)

from .conflicts import TASK_ALREADY_ASSIGNED, RevertInfo, raise_for_revert

log = structlog.get_logger()


class LedgerRevertError(Exception):
    """账本拒绝写入（模拟合约 revert）"""

    def __init__(self, reason: str) -> None:
        super().__init__(f"execution reverted: {reason}")
        self.info = RevertInfo(reason=reason)


class InMemoryLedger:
    """共享账本 -- 基于 asyncio.Queue 的发布/订阅推送"""

    def __init__(
        self,
        auto_assign_to: str | None = None,
        queue_maxsize: int = 100,
    ) -> None:
        """
        Args:
            auto_assign_to: 新任务创建后自动分配给该 operator，None 表示保持 Pending
            queue_maxsize: 每个订阅者的推送队列上限
        """
        self._tasks: dict[int, TaskRecord] = {}
        self._claims: dict[tuple[int, int], ClaimRecord] = {}
        self._operator_tasks: dict[str, list[int]] = {}
        self._verdicts: dict[int, bool] = {}
        self._subscribers: set[asyncio.Queue] = set()
        self._ids = count(1)
        self._auto_assign_to = auto_assign_to
        self._queue_maxsize = queue_maxsize
        self._block = 0

    def connect(self, operator: str) -> "InMemoryOracle":
        """以指定 operator 身份连接账本"""
        return InMemoryOracle(self, operator)

    def add_claim(self, claim: ClaimRecord) -> None:
        self._claims[(claim.issue_id, claim.claim_index)] = claim

    async def create_task(
        self,
        issue_id: int,
        claim_index: int,
        pr_link: str,
        developer: str,
        created_at: int = 0,
    ) -> int:
        """创建任务并推送 TaskCreated（启用自动分配时随后推送 TaskAssigned）"""
        task_id = next(self._ids)
        self._tasks[task_id] = TaskRecord(
            task_id=task_id,
            issue_id=issue_id,
            claim_index=claim_index,
            pr_link=pr_link,
            developer=developer,
            created_at=created_at,
        )
        self.broadcast(
            TaskCreatedEvent(task_id=task_id, issue_id=issue_id, claim_index=claim_index)
        )
        if self._auto_assign_to:
            self._assign(task_id, self._auto_assign_to)
        return task_id

    def task(self, task_id: int) -> TaskRecord:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise OracleError(f"Task #{task_id} 不存在", recoverable=False) from None

    def claim(self, issue_id: int, claim_index: int) -> ClaimRecord:
        try:
            return self._claims[(issue_id, claim_index)]
        except KeyError:
            raise OracleError(
                f"Claim ({issue_id}, {claim_index}) 不存在",
                recoverable=False,
            ) from None

    def operator_tasks(self, operator: str) -> list[int]:
        return list(self._operator_tasks.get(operator.lower(), []))

    def pick(self, task_id: int, operator: str) -> TxReceipt:
        task = self.task(task_id)
        if task.status != TaskStatus.PENDING:
            raise LedgerRevertError(TASK_ALREADY_ASSIGNED)
        self._assign(task_id, operator)
        return self._receipt()

    def validate(
        self,
        task_id: int,
        operator: str,
        is_valid: bool,
        zk_proof: bytes,
    ) -> TxReceipt:
        task = self.task(task_id)
        if not task.is_assigned_to(operator):
            raise LedgerRevertError("NotAssignedOperator")
        if not validate_transition(task.status, TaskStatus.VALIDATED):
            raise LedgerRevertError("InvalidTaskStatus")
        self._tasks[task_id] = task.model_copy(
            update={"status": TaskStatus.VALIDATED, "zk_proof": zk_proof}
        )
        self._verdicts[task_id] = is_valid
        return self._receipt()

    def verdict(self, task_id: int) -> bool | None:
        """已提交的验证结论"""
        return self._verdicts.get(task_id)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def broadcast(self, event: OracleEvent) -> None:
        """向所有订阅者推送事件，队列已满的订阅者被移除"""
        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        for q in dead_queues:
            self._subscribers.discard(q)
            log.warning("ledger_subscriber_dropped", topic=event.topic)

    def _assign(self, task_id: int, operator: str) -> None:
        task = self._tasks[task_id]
        self._tasks[task_id] = task.model_copy(
            update={"status": TaskStatus.ASSIGNED, "assigned_operator": operator}
        )
        self._operator_tasks.setdefault(operator.lower(), []).append(task_id)
        self.broadcast(TaskAssignedEvent(task_id=task_id, operator=operator))

    def _receipt(self) -> TxReceipt:
        self._block += 1
        return TxReceipt(tx_hash=f"0x{ULID().hex}", block_number=self._block)


class InMemoryOracle:
    """绑定 operator 身份的账本视图，实现 TaskOracle"""

    def __init__(self, ledger: InMemoryLedger, operator: str) -> None:
        self._ledger = ledger
        self._operator = operator

    @property
    def operator(self) -> str:
        return self._operator

    async def get_task(self, task_id: int) -> TaskRecord:
        return self._ledger.task(task_id)

    async def get_claim(self, issue_id: int, claim_index: int) -> ClaimRecord:
        return self._ledger.claim(issue_id, claim_index)

    async def get_operator_tasks(self, operator: str) -> list[int]:
        return self._ledger.operator_tasks(operator)

    async def pick_task(self, task_id: int) -> TxReceipt:
        try:
            return self._ledger.pick(task_id, self._operator)
        except LedgerRevertError as e:
            raise_for_revert(task_id, e.info, e)
            raise

    async def submit_validation(
        self,
        task_id: int,
        is_valid: bool,
        zk_proof: bytes,
    ) -> TxReceipt:
        return self._ledger.validate(task_id, self._operator, is_valid, zk_proof)

    async def watch_events(self) -> AsyncIterator[OracleEvent]:
        queue = self._ledger.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self._ledger.unsubscribe(queue)
