"""Background task queue."""

from .models import TaskQueueItem
from .processor import ProcessResult, TaskHandler, TaskProcessor
from .receiver import TaskReceiver
from .schemas import BookMetadataPatchCapability, TaskResponse, TaskStatus, TaskType

__all__ = [
    "TaskQueueItem",
    "ProcessResult",
    "TaskHandler",
    "TaskProcessor",
    "TaskReceiver",
    "BookMetadataPatchCapability",
    "TaskResponse",
    "TaskStatus",
    "TaskType",
]
