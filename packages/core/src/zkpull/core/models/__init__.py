"""zkpull Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    TERMINAL_PROCESSING_STATES,
    VALID_TRANSITIONS,
    CandidateAction,
    DiscoverySource,
    ProcessingState,
    TaskStatus,
    validate_transition,
)
from .ledger import OracleEvent, TaskAssignedEvent, TaskCreatedEvent, TxReceipt
from .processing import AcquisitionResult, AttemptEvent, ProcessingReport, TaskCandidate
from .proof import ExtractedFacts, ProofPayload, VerificationResult, VerifiedFacts
from .task import ZERO_ADDRESS, ClaimRecord, TaskRecord, same_address

__all__ = [
    # 枚举
    "TaskStatus",
    "ProcessingState",
    "DiscoverySource",
    "CandidateAction",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_PROCESSING_STATES",
    "validate_transition",
    # Task / Claim
    "TaskRecord",
    "ClaimRecord",
    "ZERO_ADDRESS",
    "same_address",
    # Oracle
    "TaskCreatedEvent",
    "TaskAssignedEvent",
    "OracleEvent",
    "TxReceipt",
    # Proof
    "ProofPayload",
    "ExtractedFacts",
    "VerifiedFacts",
    "VerificationResult",
    # Processing
    "TaskCandidate",
    "AcquisitionResult",
    "ProcessingReport",
    "AttemptEvent",
]
