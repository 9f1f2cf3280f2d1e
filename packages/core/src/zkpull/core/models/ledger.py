"""Oracle 推送事件与写入回执"""

from typing import Literal

from pydantic import BaseModel, Field


class TaskCreatedEvent(BaseModel):
    """TaskCreated 推送"""

    topic: Literal["task_created"] = "task_created"
    task_id: int = Field(ge=0)
    issue_id: int = Field(ge=0)
    claim_index: int = Field(ge=0)


class TaskAssignedEvent(BaseModel):
    """TaskAssigned 推送"""

    topic: Literal["task_assigned"] = "task_assigned"
    task_id: int = Field(ge=0)
    operator: str


OracleEvent = TaskCreatedEvent | TaskAssignedEvent


class TxReceipt(BaseModel):
    """写操作确认回执"""

    tx_hash: str = Field(description="交易哈希")
    block_number: int | None = Field(default=None, description="确认区块高度")
