"""集成测试共享 fixture -- 内存账本 + 真实证明客户端（HTTP 层 Mock）"""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr
from zkpull.core.models import ClaimRecord
from zkpull.core.store import AttemptJournal, create_attempt_journal
from zkpull.operator import Orchestrator
from zkpull.oracle import InMemoryLedger
from zkpull.verifier import ProofServiceClient, ProofVerifier

PROOF_URL = "http://proof.test"
PR_LINK = "https://github.com/acme/widgets/pull/3"
DEV = "0x00000000000000000000000000000000000000d1"


@pytest.fixture
def proof_response(make_payload):
    """证明服务的 HTTP 响应构造器"""

    def _response(**facts) -> httpx.Response:
        return httpx.Response(
            200,
            json=make_payload(**facts).to_wire(),
            request=httpx.Request("GET", f"{PROOF_URL}/generate-proof"),
        )

    return _response


@pytest.fixture
def mock_http_get(proof_response):
    """Mock httpx.AsyncClient.get，默认返回 bob/42 的有效证明"""
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = proof_response(
            pr_login="bob", pr_id="42", user_login="bob", user_id="42"
        )
        yield mock_get


@pytest_asyncio.fixture
async def journal(tmp_path: Path) -> AsyncGenerator[AttemptJournal, None]:
    journal = await create_attempt_journal(str(tmp_path / "sqlite" / "zkpull.db"))
    yield journal
    await journal.conn.close()


@pytest.fixture
def claim() -> ClaimRecord:
    return ClaimRecord(
        issue_id=10,
        claim_index=0,
        pr_link=PR_LINK,
        developer=DEV,
        access_token=SecretStr("ghp_claim"),
    )


@pytest_asyncio.fixture
async def build_operator(journal):
    """组装一个连接到账本的 Orchestrator，测试结束时统一停止"""
    started: list[Orchestrator] = []

    def _build(ledger: InMemoryLedger, operator: str, **kwargs) -> Orchestrator:
        verifier = ProofVerifier(ProofServiceClient(PROOF_URL, timeout_s=5))
        options = {
            "poll_interval_s": 0.05,
            "auto_assignment_wait_s": 0.02,
            "fetch_timeout_s": 1.0,
        }
        options.update(kwargs)
        orchestrator = Orchestrator(
            ledger.connect(operator),
            verifier,
            operator,
            journal=journal,
            **options,
        )
        started.append(orchestrator)
        return orchestrator

    yield _build

    for orchestrator in started:
        await orchestrator.stop()


@pytest.fixture
def wait_for_verdict():
    """等待账本上出现验证结论"""

    async def _wait(ledger: InMemoryLedger, task_id: int, timeout: float = 3.0) -> bool:
        async def _poll() -> bool:
            while (verdict := ledger.verdict(task_id)) is None:
                await asyncio.sleep(0.01)
            return verdict

        return await asyncio.wait_for(_poll(), timeout=timeout)

    return _wait
