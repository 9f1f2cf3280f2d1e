"""ValidationDecision -- 由提取事实归约出结论与审计 blob"""

import json
import time
from typing import Any

from zkpull.core.models import (
    ExtractedFacts,
    ProofPayload,
    VerificationResult,
    VerifiedFacts,
)

UNKNOWN = "unknown"


def _both_equal(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return a == b


class ValidationDecision:
    """校验决策

    isMerged = PR merged 字面量为 "true"；
    isValidUser / isValidId = PR 与用户两侧的 login / id 都存在且相等；
    isValid = 三者同时成立。
    """

    def reduce(self, extracted: ExtractedFacts) -> VerifiedFacts:
        is_merged = extracted.merged == "true"
        is_valid_user = _both_equal(extracted.pr_login, extracted.user_login)
        is_valid_id = _both_equal(extracted.pr_id, extracted.user_id)
        return VerifiedFacts(
            **extracted.model_dump(),
            is_merged=is_merged,
            is_valid_user=is_valid_user,
            is_valid_id=is_valid_id,
            is_valid=is_merged and is_valid_user and is_valid_id,
        )

    def decide(
        self,
        payload: ProofPayload,
        extracted: ExtractedFacts,
        timestamp_ms: int | None = None,
    ) -> VerificationResult:
        """生成结论与提交上链的审计 blob"""
        facts = self.reduce(extracted)
        blob = self.build_audit_blob(payload, facts, timestamp_ms)
        return VerificationResult(is_valid=facts.is_valid, facts=facts, zk_proof=blob)

    @staticmethod
    def build_audit_blob(
        payload: ProofPayload,
        facts: VerifiedFacts,
        timestamp_ms: int | None = None,
    ) -> bytes:
        """原始证明 + 派生事实 + 时间戳，序列化为 UTF-8 字节串"""
        verified: dict[str, Any] = {
            "isMerged": facts.is_merged,
            "isValidUser": facts.is_valid_user,
            "isValidId": facts.is_valid_id,
            "githubUsername": facts.pr_login or UNKNOWN,
            "githubUserId": facts.pr_id or UNKNOWN,
            "userLogin": facts.user_login or UNKNOWN,
            "userId": facts.user_id or UNKNOWN,
            "timestamp": timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
        }
        document = {
            "prProof": payload.pr_proof,
            "userProof": payload.user_proof,
            "verified": verified,
        }
        return json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
