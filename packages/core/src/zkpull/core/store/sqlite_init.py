"""SQLite 数据库初始化

PRAGMA 配置 + attempt_events 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# attempt_events 表 DDL（append-only）
_ATTEMPT_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS attempt_events (
    event_id    TEXT PRIMARY KEY,
    attempt_id  TEXT NOT NULL,
    task_id     INTEGER NOT NULL,
    seq         INTEGER NOT NULL,
    ts          TEXT NOT NULL,
    state       TEXT NOT NULL,
    detail      TEXT NOT NULL DEFAULT '{}'
);
"""

_ATTEMPT_EVENTS_INDEXES = [
    # 尝试内序号唯一约束（确保 seq 严格单调递增）
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_attempt_events_seq ON attempt_events(attempt_id, seq);",
    "CREATE INDEX IF NOT EXISTS idx_attempt_events_task ON attempt_events(task_id, ts);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_ATTEMPT_EVENTS_DDL)
    for idx_sql in _ATTEMPT_EVENTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()
