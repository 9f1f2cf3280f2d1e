"""全局 pytest 配置 -- 临时 SQLite 数据库 + 证明 payload 构造 fixture"""

import json
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import aiosqlite
import pytest
import pytest_asyncio
from zkpull.core.models import ProofPayload


def _subject(context: dict[str, Any] | str) -> dict[str, Any]:
    """构造单个 subject：context 以 JSON 文本形式嵌在 claimInfo 中"""
    text = context if isinstance(context, str) else json.dumps(context)
    return {
        "claimInfo": {
            "provider": "http",
            "parameters": '{"method":"GET"}',
            "context": text,
        },
        "signatures": ["0xabc"],
    }


@pytest.fixture
def make_payload() -> Callable[..., ProofPayload]:
    """按 PR / 用户字段构造证明 payload

    pr_context / user_context 传入字符串时原样作为 context 文本（用于构造损坏片段）。
    """

    def _make(
        merged: str = "true",
        pr_login: str = "alice",
        pr_id: str = "7",
        user_login: str = "alice",
        user_id: str = "7",
        pr_context: dict[str, Any] | str | None = None,
        user_context: dict[str, Any] | str | None = None,
    ) -> ProofPayload:
        if pr_context is None:
            pr_context = {
                "extractedParameters": {"merged": merged, "login": pr_login, "id": pr_id}
            }
        if user_context is None:
            user_context = {"extractedParameters": {"login": user_login, "id": user_id}}
        return ProofPayload(pr_proof=_subject(pr_context), user_proof=_subject(user_context))

    return _make


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from zkpull.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()
