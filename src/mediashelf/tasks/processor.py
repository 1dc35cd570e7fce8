"""Runs queued background tasks with retry bookkeeping."""

from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy import select

from ..config import get_config
from ..db.sqlite import Database, get_db
from ..utils.logging import get_logger
from .models import TaskQueueItem
from .receiver import to_task_response
from .schemas import TaskResponse, TaskStatus, TaskType

LOG = get_logger("mediashelf.tasks")

TaskHandler = Callable[[TaskResponse], None]


@dataclass
class ProcessResult:
    """Result of a processing run."""

    completed: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class TaskProcessor:
    """Processes the task queue."""

    def __init__(self, db: Optional[Database] = None, max_retries: Optional[int] = None):
        """Initialize task processor.

        Args:
            db: Database instance (uses global if not provided)
            max_retries: Attempts before a task is marked failed
        """
        self.db = db or get_db()
        self.max_retries = max_retries or get_config().task_max_retries

    def process_pending(self, handlers: dict[TaskType, TaskHandler]) -> ProcessResult:
        """Run every pending task that has a handler.

        Each task is handled and recorded in its own transaction, so one
        failing task never blocks the others.
        """
        result = ProcessResult()

        with self.db.get_session() as session:
            stmt = (
                select(TaskQueueItem.id)
                .where(TaskQueueItem.status == TaskStatus.PENDING.value)
                .order_by(TaskQueueItem.created_at, TaskQueueItem.id)
            )
            task_ids = list(session.execute(stmt).scalars().all())

        for task_id in task_ids:
            with self.db.get_session() as session:
                item = session.get(TaskQueueItem, task_id)
                if item is None or item.status != TaskStatus.PENDING.value:
                    continue

                handler = handlers.get(TaskType(item.task_type))
                if handler is None:
                    result.skipped += 1
                    continue

                try:
                    handler(to_task_response(item))
                except Exception as e:
                    item.retry_count += 1
                    item.last_error = str(e)
                    result.errors.append((item.id, str(e)))
                    if item.retry_count >= self.max_retries:
                        item.status = TaskStatus.FAILED.value
                        result.failed += 1
                        LOG.error("Task %s failed permanently: %s", item.id, e)
                    else:
                        result.retried += 1
                        LOG.warning(
                            "Task %s failed (attempt %d/%d): %s",
                            item.id, item.retry_count, self.max_retries, e,
                        )
                else:
                    item.status = TaskStatus.COMPLETED.value
                    result.completed += 1

        return result
