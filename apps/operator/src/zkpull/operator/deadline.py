"""有界等待"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from zkpull.core.exceptions import DeadlineExceededError

T = TypeVar("T")


async def with_deadline(aw: Awaitable[T], timeout_s: float | None, operation: str) -> T:
    """等待 aw，超过 timeout_s 抛出 DeadlineExceededError；timeout_s 为 None 时不限时"""
    if timeout_s is None:
        return await aw
    try:
        return await asyncio.wait_for(aw, timeout=timeout_s)
    except TimeoutError as e:
        if isinstance(e, DeadlineExceededError):
            raise
        raise DeadlineExceededError(operation, timeout_s) from e
