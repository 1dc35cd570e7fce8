"""SQLAlchemy model for the background task queue.

Tables:
- task_queue: Pending and finished background tasks
"""

import json
from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow
from .schemas import TaskStatus


class TaskQueueItem(Base):
    """Task queue item - one unit of asynchronous work."""

    __tablename__ = "task_queue"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    task_type: Mapped[str] = mapped_column(String(40), nullable=False)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default=TaskStatus.PENDING.value, index=True)
    payload: Mapped[Optional[str]] = mapped_column(Text)  # JSON
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<TaskQueueItem(id={self.id}, type={self.task_type}, book={self.book_id})>"

    def get_payload(self) -> dict:
        """Get payload as dict."""
        if self.payload:
            return json.loads(self.payload)
        return {}

    def set_payload(self, payload: dict) -> None:
        """Set payload from dict."""
        self.payload = json.dumps(payload) if payload else None

    def get_capabilities(self) -> list[str]:
        """Get the metadata fields this refresh is limited to."""
        return self.get_payload().get("capabilities", [])
