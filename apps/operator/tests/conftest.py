"""apps/operator 测试配置 -- 内存账本 + Mock 证明服务"""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from pydantic import SecretStr
from zkpull.core.models import ClaimRecord
from zkpull.core.store import AttemptJournal, create_attempt_journal
from zkpull.oracle import InMemoryLedger, InMemoryOracle
from zkpull.verifier import ProofServiceClient, ProofVerifier

ME = "0x00000000000000000000000000000000000000b0"
OTHER = "0x00000000000000000000000000000000000000c0"
DEV = "0x00000000000000000000000000000000000000d1"
PR_LINK = "https://github.com/acme/widgets/pull/3"


@pytest.fixture
def me() -> str:
    """本 operator 地址"""
    return ME


@pytest.fixture
def other() -> str:
    """竞争 operator 地址"""
    return OTHER


@pytest.fixture
def ledger() -> InMemoryLedger:
    """带一条 claim 的空账本（不自动分配）"""
    ledger = InMemoryLedger()
    ledger.add_claim(
        ClaimRecord(
            issue_id=10,
            claim_index=0,
            pr_link=PR_LINK,
            developer=DEV,
            access_token=SecretStr("ghp_claim"),
        )
    )
    return ledger


@pytest.fixture
def oracle(ledger: InMemoryLedger) -> InMemoryOracle:
    return ledger.connect(ME)


@pytest.fixture
def create_task(ledger: InMemoryLedger):
    """在账本上创建任务，可指定直接分配给某个 operator"""

    async def _create(assign_to: str | None = None) -> int:
        task_id = await ledger.create_task(10, 0, PR_LINK, DEV)
        if assign_to is not None:
            await ledger.connect(assign_to).pick_task(task_id)
        return task_id

    return _create


@pytest.fixture
def proof_client(make_payload) -> AsyncMock:
    """返回有效证明的 Mock 证明服务"""
    client = AsyncMock(spec=ProofServiceClient)
    client.generate_proof.return_value = make_payload(
        pr_login="bob", pr_id="42", user_login="bob", user_id="42"
    )
    return client


@pytest.fixture
def verifier(proof_client: AsyncMock) -> ProofVerifier:
    return ProofVerifier(proof_client)


@pytest_asyncio.fixture
async def journal(tmp_path: Path) -> AsyncGenerator[AttemptJournal, None]:
    journal = await create_attempt_journal(str(tmp_path / "operator_test.db"))
    yield journal
    await journal.conn.close()
