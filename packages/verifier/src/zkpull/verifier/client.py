"""ProofServiceClient -- zkTLS 证明生成服务调用封装

GET {base_url}/generate-proof?url=<pr_link>，Bearer 凭证优先使用 claim 自带的
access token。任何传输或格式失败都是硬失败，不存在降级路径。
"""

import asyncio
import re
import time

import httpx
import structlog
from zkpull.core.exceptions import (
    DeadlineExceededError,
    InvalidPRLinkError,
    ProofFormatError,
    TransportError,
)
from zkpull.core.models import ProofPayload

log = structlog.get_logger()

PR_LINK_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)")


def parse_pr_link(pr_link: str) -> tuple[str, str, int]:
    """解析 GitHub PR 链接

    Returns:
        (owner, repo, pr_number)

    Raises:
        InvalidPRLinkError: 链接不是 GitHub pull request URL
    """
    match = PR_LINK_PATTERN.search(pr_link)
    if not match:
        raise InvalidPRLinkError(pr_link)
    owner, repo, number = match.groups()
    return owner, repo, int(number)


class ProofServiceClient:
    """证明生成服务客户端"""

    def __init__(
        self,
        base_url: str,
        default_token: str = "",
        timeout_s: float = 120.0,
    ) -> None:
        """
        Args:
            base_url: 服务基础 URL
            default_token: claim 没有 access token 时使用的兜底凭证
            timeout_s: 整个请求的截止时间（秒），证明生成属于链下重计算
        """
        self._base_url = base_url.rstrip("/")
        self._default_token = default_token
        self._timeout_s = timeout_s

    async def generate_proof(
        self,
        pr_link: str,
        access_token: str | None = None,
    ) -> ProofPayload:
        """请求生成 PR 与用户两份证明

        Raises:
            InvalidPRLinkError: PR 链接格式错误（不发起请求）
            DeadlineExceededError: 请求超时
            TransportError: 网络错误或非 2xx 响应
            ProofFormatError: 响应缺少 prProofData / userProofData
        """
        parse_pr_link(pr_link)

        url = f"{self._base_url}/generate-proof"
        token = access_token or self._default_token
        start_time = time.monotonic()

        try:
            # httpx 的 timeout 只限制单次连接 / 读取，整体截止由 asyncio.timeout 保证
            async with asyncio.timeout(self._timeout_s):
                async with httpx.AsyncClient(timeout=self._timeout_s) as http_client:
                    resp = await http_client.get(
                        url,
                        params={"url": pr_link},
                        headers={"Authorization": f"Bearer {token}"},
                    )
                    resp.raise_for_status()
        except (httpx.TimeoutException, TimeoutError) as e:
            raise DeadlineExceededError("proof_generation", self._timeout_s) from e
        except httpx.HTTPStatusError as e:
            log.error(
                "proof_service_error_status",
                status_code=e.response.status_code,
                pr_link=pr_link,
            )
            raise TransportError(url, e) from e
        except httpx.HTTPError as e:
            raise TransportError(url, e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        log.info(
            "proof_service_response",
            status_code=resp.status_code,
            duration_ms=duration_ms,
        )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProofFormatError(f"证明服务返回非 JSON 响应: {e}") from e

        if not isinstance(data, dict):
            raise ProofFormatError("证明服务响应不是 JSON 对象")

        pr_proof = data.get("prProofData")
        user_proof = data.get("userProofData")
        if not pr_proof or not user_proof:
            log.error("proof_service_invalid_format", keys=sorted(data))
            raise ProofFormatError(
                "证明服务响应格式错误，需要 { prProofData, userProofData }"
            )

        return ProofPayload(pr_proof=pr_proof, user_proof=user_proof)
