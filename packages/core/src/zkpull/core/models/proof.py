"""证明相关数据模型

ProofPayload 的两个 subject 为证明服务返回的原始结构，operator 不做密码学校验。
ExtractedFacts 是从 context 片段中提取出的原始字段；VerifiedFacts 在其上附加派生判断。
"""

from typing import Any

from pydantic import BaseModel, Field


class ProofPayload(BaseModel):
    """证明服务返回的 payload"""

    pr_proof: Any = Field(description="PR 证明（prProofData）")
    user_proof: Any = Field(description="用户证明（userProofData）")

    def to_wire(self) -> dict[str, Any]:
        """按证明服务的字段名还原，PR subject 在前"""
        return {"prProofData": self.pr_proof, "userProofData": self.user_proof}


class ExtractedFacts(BaseModel):
    """从 context 片段提取出的原始字段，缺失为 None"""

    merged: str | None = Field(default=None, description="PR context 的 merged 字面量")
    pr_login: str | None = None
    pr_id: str | None = None
    user_login: str | None = None
    user_id: str | None = None


class VerifiedFacts(ExtractedFacts):
    """原始字段 + 派生判断"""

    is_merged: bool = False
    is_valid_user: bool = False
    is_valid_id: bool = False
    is_valid: bool = False


class VerificationResult(BaseModel):
    """校验结论 + 审计 blob"""

    is_valid: bool
    facts: VerifiedFacts
    zk_proof: bytes = Field(description="提交上链的不透明审计 blob")
