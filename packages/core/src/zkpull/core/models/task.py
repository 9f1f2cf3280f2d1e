"""Task / Claim 领域模型

TaskRecord 由 oracle 创建，只通过领取与提交两个写操作变更；
ClaimRecord 对 operator 只读，其中的 access token 属于机密信息。
"""

from pydantic import BaseModel, Field, SecretStr

from .enums import TaskStatus

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def same_address(a: str, b: str) -> bool:
    """地址比较（大小写不敏感）"""
    return a.lower() == b.lower()


class TaskRecord(BaseModel):
    """链上验证任务"""

    task_id: int = Field(ge=0, description="任务 ID")
    issue_id: int = Field(ge=0, description="关联 issue ID")
    claim_index: int = Field(ge=0, description="issue 下的 claim 序号")
    pr_link: str = Field(description="PR 链接")
    developer: str = Field(description="开发者地址")
    created_at: int = Field(default=0, description="创建时间（unix 秒）")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="任务状态")
    assigned_operator: str = Field(default=ZERO_ADDRESS, description="已分配的 operator 地址")
    zk_proof: bytes = Field(default=b"", description="已提交的证明")

    def is_assigned_to(self, operator: str) -> bool:
        """任务是否分配给指定 operator"""
        return same_address(self.assigned_operator, operator)


class ClaimRecord(BaseModel):
    """开发者提交的 PR claim（只读）"""

    issue_id: int = Field(ge=0, description="issue ID")
    claim_index: int = Field(ge=0, description="claim 序号")
    pr_link: str = Field(description="PR 链接")
    is_merged: bool = Field(default=False, description="链上记录的合并标记")
    developer: str = Field(description="开发者地址")
    is_validated: bool = Field(default=False, description="是否已验证")
    timestamp: int = Field(default=0, description="提交时间（unix 秒）")
    access_token: SecretStr = Field(
        default=SecretStr(""),
        description="访问 PR 所需的凭证",
    )

    def masked_token(self) -> str:
        """日志用脱敏凭证：仅保留末 4 位"""
        token = self.access_token.get_secret_value()
        return f"***{token[-4:]}" if token else "(none)"
