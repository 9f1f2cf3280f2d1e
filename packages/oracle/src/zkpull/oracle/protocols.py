"""TaskOracle Protocol 接口定义

Oracle 是任务与 claim 状态的唯一事实来源。
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import AsyncIterator
from typing import Protocol

from zkpull.core.models import ClaimRecord, OracleEvent, TaskRecord, TxReceipt


class TaskOracle(Protocol):
    """Oracle 读写接口

    写操作返回确认回执；领取写入因竞争失败时抛出 ConflictError，
    其他失败以原始异常抛出，由调用方分类处理。
    """

    async def get_task(self, task_id: int) -> TaskRecord:
        """根据 task_id 读取任务"""
        ...

    async def get_claim(self, issue_id: int, claim_index: int) -> ClaimRecord:
        """根据 (issue_id, claim_index) 读取 claim"""
        ...

    async def get_operator_tasks(self, operator: str) -> list[int]:
        """列出曾分配给 operator 的全部任务 ID"""
        ...

    async def pick_task(self, task_id: int) -> TxReceipt:
        """领取任务（乐观并发，oracle 是唯一仲裁者）"""
        ...

    async def submit_validation(
        self,
        task_id: int,
        is_valid: bool,
        zk_proof: bytes,
    ) -> TxReceipt:
        """提交验证结果，确认后返回"""
        ...

    def watch_events(self) -> AsyncIterator[OracleEvent]:
        """订阅 TaskCreated / TaskAssigned 推送"""
        ...
