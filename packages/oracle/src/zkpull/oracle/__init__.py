"""zkpull Oracle -- 链上任务账本访问层

packages/oracle 的公开接口导出。
ContractOracle 依赖 web3，按需从 zkpull.oracle.contract 导入。
"""

from .conflicts import (
    CONFLICT_ERROR_NAMES,
    CONFLICT_SELECTORS,
    RevertInfo,
    classify_revert,
    parse_revert_reason,
    raise_for_revert,
)
from .memory import InMemoryLedger, InMemoryOracle, LedgerRevertError
from .protocols import TaskOracle

__all__ = [
    "TaskOracle",
    "InMemoryLedger",
    "InMemoryOracle",
    "LedgerRevertError",
    "RevertInfo",
    "CONFLICT_ERROR_NAMES",
    "CONFLICT_SELECTORS",
    "classify_revert",
    "parse_revert_reason",
    "raise_for_revert",
]
