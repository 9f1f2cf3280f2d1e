"""AttemptJournal -- 处理尝试的 append-only 状态流转日志

每次状态流转写入一行，seq 在同一 attempt 内严格单调递增。
只允许插入，不允许更新或删除。
"""

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import aiosqlite
from ulid import ULID

from ..models.enums import ProcessingState
from ..models.processing import AttemptEvent


class AttemptJournal:
    """attempt_events 的 SQLite 实现

    所有并发流水线共用一个连接：seq 计算、插入与提交 / 回滚在同一把锁内完成，
    一次失败的回滚不会丢弃其他尝试尚未提交的插入。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self._write_lock = asyncio.Lock()

    @property
    def conn(self) -> aiosqlite.Connection:
        return self._conn

    async def record(
        self,
        attempt_id: str,
        task_id: int,
        state: ProcessingState,
        detail: dict[str, Any] | None = None,
    ) -> AttemptEvent:
        """追加一条状态流转并提交"""
        async with self._write_lock:
            event = AttemptEvent(
                event_id=str(ULID()),
                attempt_id=attempt_id,
                task_id=task_id,
                seq=await self._next_seq(attempt_id),
                ts=datetime.now(UTC),
                state=state,
                detail=detail or {},
            )
            try:
                await self._conn.execute(
                    """
                    INSERT INTO attempt_events
                        (event_id, attempt_id, task_id, seq, ts, state, detail)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.event_id,
                        event.attempt_id,
                        event.task_id,
                        event.seq,
                        event.ts.isoformat(),
                        event.state.value,
                        json.dumps(event.detail, ensure_ascii=False),
                    ),
                )
                await self._conn.commit()
            except Exception:
                await self._conn.rollback()
                raise
        return event

    async def events_for_attempt(self, attempt_id: str) -> list[AttemptEvent]:
        """查询单次尝试的所有流转，按 seq 正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM attempt_events WHERE attempt_id = ? ORDER BY seq ASC",
            (attempt_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def events_for_task(self, task_id: int) -> list[AttemptEvent]:
        """查询任务的所有尝试流转，按时间正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM attempt_events WHERE task_id = ? ORDER BY ts ASC, seq ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def latest_state(self, task_id: int) -> ProcessingState | None:
        """任务最近一次记录的状态"""
        cursor = await self._conn.execute(
            """
            SELECT state FROM attempt_events
            WHERE task_id = ?
            ORDER BY ts DESC, seq DESC
            LIMIT 1
            """,
            (task_id,),
        )
        row = await cursor.fetchone()
        return ProcessingState(row[0]) if row else None

    async def _next_seq(self, attempt_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(seq), 0) FROM attempt_events WHERE attempt_id = ?",
            (attempt_id,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> AttemptEvent:
        """将数据库行转换为 AttemptEvent 模型"""
        return AttemptEvent(
            event_id=row[0],
            attempt_id=row[1],
            task_id=row[2],
            seq=row[3],
            ts=datetime.fromisoformat(row[4]),
            state=ProcessingState(row[5]),
            detail=json.loads(row[6]) if row[6] else {},
        )
