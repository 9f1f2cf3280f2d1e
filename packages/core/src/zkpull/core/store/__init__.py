"""zkpull Core Store -- SQLite 持久化实现

提供工厂函数创建 attempt journal。
"""

from pathlib import Path

import aiosqlite

from .attempt_journal import AttemptJournal
from .sqlite_init import init_db


async def create_attempt_journal(db_path: str) -> AttemptJournal:
    """创建 AttemptJournal

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        AttemptJournal 实例（调用方负责关闭 journal.conn）
    """
    # 确保数据库目录存在
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return AttemptJournal(conn)


__all__ = [
    "AttemptJournal",
    "create_attempt_journal",
    "init_db",
]
