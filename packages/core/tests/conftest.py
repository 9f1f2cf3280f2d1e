"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from zkpull.core.store import AttemptJournal, create_attempt_journal


@pytest_asyncio.fixture
async def journal(tmp_path: Path) -> AsyncGenerator[AttemptJournal, None]:
    """已初始化的 attempt journal"""
    journal = await create_attempt_journal(str(tmp_path / "sqlite" / "core_test.db"))
    yield journal
    await journal.conn.close()
