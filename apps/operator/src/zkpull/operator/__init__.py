"""zkpull Operator -- 任务发现、领取与校验编排

apps/operator 的公开接口导出。
"""

from .acquirer import TaskAcquirer
from .deadline import with_deadline
from .discovery import TaskDiscovery
from .guard import TaskProcessingGuard
from .orchestrator import Orchestrator
from .pipeline import TaskPipeline

__all__ = [
    "TaskProcessingGuard",
    "TaskAcquirer",
    "TaskDiscovery",
    "TaskPipeline",
    "Orchestrator",
    "with_deadline",
]
