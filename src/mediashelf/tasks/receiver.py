"""Entry point for requesting background work.

Requests are written to the ``task_queue`` table in their own short
transaction and return immediately; a ``TaskProcessor`` picks them up later.
"""

from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..utils.logging import get_logger
from .models import TaskQueueItem
from .schemas import BookMetadataPatchCapability, TaskResponse, TaskStatus, TaskType

LOG = get_logger("mediashelf.tasks")


class TaskReceiver:
    """Queues background tasks."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize task receiver.

        Args:
            db: Database instance (uses global if not provided)
        """
        self.db = db or get_db()

    def refresh_book_metadata(
        self,
        book_id: str,
        capabilities: Iterable[BookMetadataPatchCapability],
    ) -> TaskResponse:
        """Request a metadata refresh limited to some fields of a book.

        A pending refresh for the same book absorbs the new fields instead of
        queuing a second task.
        """
        requested = [BookMetadataPatchCapability(c).value for c in capabilities]

        with self.db.get_session() as session:
            stmt = select(TaskQueueItem).where(
                TaskQueueItem.task_type == TaskType.REFRESH_BOOK_METADATA.value,
                TaskQueueItem.book_id == book_id,
                TaskQueueItem.status == TaskStatus.PENDING.value,
            )
            item = session.execute(stmt).scalars().first()

            if item:
                merged = sorted(set(item.get_capabilities()) | set(requested))
                item.set_payload({"capabilities": merged})
            else:
                item = TaskQueueItem(
                    task_type=TaskType.REFRESH_BOOK_METADATA.value,
                    book_id=book_id,
                    status=TaskStatus.PENDING.value,
                )
                item.set_payload({"capabilities": sorted(set(requested))})
                session.add(item)
            session.flush()

            LOG.debug("Queued metadata refresh for book %s: %s", book_id, requested)
            return to_task_response(item)

    def list_pending(self, session: Optional[Session] = None) -> list[TaskResponse]:
        """Get all pending tasks, oldest first."""

        def _get(s: Session) -> list[TaskResponse]:
            stmt = (
                select(TaskQueueItem)
                .where(TaskQueueItem.status == TaskStatus.PENDING.value)
                .order_by(TaskQueueItem.created_at, TaskQueueItem.id)
            )
            return [to_task_response(item) for item in s.execute(stmt).scalars().all()]

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                return _get(s)

    def count_pending(self) -> int:
        """Count pending tasks."""
        with self.db.get_session() as session:
            stmt = select(func.count(TaskQueueItem.id)).where(
                TaskQueueItem.status == TaskStatus.PENDING.value
            )
            return session.execute(stmt).scalar_one()


def to_task_response(item: TaskQueueItem) -> TaskResponse:
    """Convert model to response schema."""
    return TaskResponse(
        id=item.id,
        task_type=TaskType(item.task_type),
        book_id=item.book_id,
        capabilities=[BookMetadataPatchCapability(c) for c in item.get_capabilities()],
        status=TaskStatus(item.status),
        retry_count=item.retry_count,
        last_error=item.last_error,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )
