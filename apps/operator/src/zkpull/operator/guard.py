"""TaskProcessingGuard -- 进程内单任务互斥

task_id -> 进入时间。同一 task_id 同一时刻只允许一次处理尝试，
hold() 在所有退出路径上释放。只防止本进程内的重复处理，
跨进程的竞争由 oracle 的原子写入裁决。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog

log = structlog.get_logger()


class TaskProcessingGuard:
    """in-flight 任务集合

    运行在单个事件循环上：try_enter 的检查与插入之间没有挂起点，天然原子。
    """

    def __init__(self) -> None:
        self._in_flight: dict[int, datetime] = {}

    def try_enter(self, task_id: int) -> bool:
        """进入；任务已在处理中时返回 False"""
        if task_id in self._in_flight:
            return False
        self._in_flight[task_id] = datetime.now(UTC)
        return True

    def release(self, task_id: int) -> None:
        self._in_flight.pop(task_id, None)

    def is_guarded(self, task_id: int) -> bool:
        return task_id in self._in_flight

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def snapshot(self) -> dict[int, datetime]:
        """当前 in-flight 任务及其进入时间的副本"""
        return dict(self._in_flight)

    @asynccontextmanager
    async def hold(self, task_id: int) -> AsyncIterator[bool]:
        """async with guard.hold(task_id) as entered: ...

        entered 为 False 表示已有其他尝试在处理该任务，调用方应直接跳过。
        """
        entered = self.try_enter(task_id)
        if not entered:
            log.info("task_already_in_flight_skip", task_id=task_id)
        try:
            yield entered
        finally:
            if entered:
                self.release(task_id)
