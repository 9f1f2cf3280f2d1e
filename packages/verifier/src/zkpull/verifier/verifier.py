"""ProofVerifier -- PR 合并证明校验流程

证明服务调用 -> context 提取 -> 结论归约 -> 审计 blob。
任何一步失败都向上抛出（fail closed），调用方不得提交任何结果。
"""

import structlog
from zkpull.core.exceptions import OperatorError, VerificationError
from zkpull.core.models import VerificationResult

from .client import ProofServiceClient
from .decision import ValidationDecision
from .extractor import ProofExtractor

log = structlog.get_logger()


class ProofVerifier:
    """PR 合并证明校验器"""

    def __init__(
        self,
        client: ProofServiceClient,
        extractor: ProofExtractor | None = None,
        decision: ValidationDecision | None = None,
    ) -> None:
        self._client = client
        self._extractor = extractor or ProofExtractor()
        self._decision = decision or ValidationDecision()

    async def verify_pr(
        self,
        pr_link: str,
        access_token: str | None = None,
    ) -> VerificationResult:
        """校验 PR 合并证明

        Raises:
            VerificationError: 证明获取、格式或提取失败
            DeadlineExceededError: 证明生成超时
        """
        try:
            payload = await self._client.generate_proof(pr_link, access_token)
            extracted = self._extractor.extract(payload)
            result = self._decision.decide(payload, extracted)
        except OperatorError as e:
            log.error(
                "proof_verification_failed",
                pr_link=pr_link,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        except Exception as e:
            log.error(
                "proof_verification_failed",
                pr_link=pr_link,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise VerificationError(f"zkTLS 校验失败: {e}", recoverable=True) from e

        facts = result.facts
        log.info(
            "proof_verified",
            is_merged=facts.is_merged,
            is_valid_user=facts.is_valid_user,
            pr_login=facts.pr_login,
            user_login=facts.user_login,
            is_valid_id=facts.is_valid_id,
            pr_id=facts.pr_id,
            user_id=facts.user_id,
            is_valid=result.is_valid,
        )
        return result
