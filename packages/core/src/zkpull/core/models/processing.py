"""任务发现与处理过程模型"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import CandidateAction, DiscoverySource, ProcessingState


class TaskCandidate(BaseModel):
    """发现层提出的候选任务"""

    task_id: int = Field(ge=0)
    source: DiscoverySource
    action: CandidateAction = CandidateAction.PROCESS


class AcquisitionResult(BaseModel):
    """领取结果

    picked: 本 operator 的领取写入成功
    should_process: 任务已（或经竞争后）分配给本 operator
    """

    picked: bool = False
    should_process: bool = False

    @property
    def proceed(self) -> bool:
        return self.picked or self.should_process


class ProcessingReport(BaseModel):
    """单次处理尝试的结果"""

    task_id: int
    attempt_id: str = ""
    state: ProcessingState
    is_valid: bool | None = None
    tx_hash: str | None = None
    error_type: str | None = None


class AttemptEvent(BaseModel):
    """attempt journal 中的一条状态流转记录（append-only）"""

    event_id: str = Field(description="ULID")
    attempt_id: str = Field(description="处理尝试 ID（ULID）")
    task_id: int
    seq: int = Field(ge=1, description="尝试内序号，严格单调递增")
    ts: datetime
    state: ProcessingState
    detail: dict[str, Any] = Field(default_factory=dict)
