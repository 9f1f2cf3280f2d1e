"""枚举定义

TaskStatus 与链上 uint8 取值一一对应；ProcessingState 描述单次处理尝试的状态机。
"""

from enum import IntEnum, StrEnum


class TaskStatus(IntEnum):
    """链上任务状态"""

    PENDING = 0
    ASSIGNED = 1
    VALIDATED = 2


# 合法状态流转：只进不退
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.ASSIGNED},
    TaskStatus.ASSIGNED: {TaskStatus.VALIDATED},
    TaskStatus.VALIDATED: set(),
}


class ProcessingState(StrEnum):
    """单次处理尝试的状态机"""

    IDLE = "IDLE"
    GUARDED = "GUARDED"
    FETCHING_TASK = "FETCHING_TASK"
    FETCHING_CLAIM = "FETCHING_CLAIM"
    VERIFYING = "VERIFYING"
    SUBMITTING = "SUBMITTING"

    # 终态
    DONE = "DONE"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


TERMINAL_PROCESSING_STATES: set[ProcessingState] = {
    ProcessingState.DONE,
    ProcessingState.ERROR,
    ProcessingState.SKIPPED,
}


class DiscoverySource(StrEnum):
    """候选任务来源"""

    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    POLL = "poll"


class CandidateAction(StrEnum):
    """候选任务需要执行的动作"""

    # 已分配给本 operator，直接进入校验
    PROCESS = "process"
    # 仍为 Pending，先尝试领取
    ACQUIRE = "acquire"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证链上状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
