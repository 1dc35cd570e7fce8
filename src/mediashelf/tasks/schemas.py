"""Pydantic schemas and enums for the background task queue."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TaskType(str, Enum):
    """Kinds of queued background work."""

    REFRESH_BOOK_METADATA = "refresh_book_metadata"


class TaskStatus(str, Enum):
    """Status of task queue items."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class BookMetadataPatchCapability(str, Enum):
    """Book metadata fields a metadata refresh may rewrite."""

    TITLE = "title"
    TITLE_SORT = "title_sort"
    SUMMARY = "summary"
    RELEASE_DATE = "release_date"
    AUTHORS = "authors"
    TAGS = "tags"
    NUMBER = "number"
    NUMBER_SORT = "number_sort"
    ISBN = "isbn"
    LINKS = "links"


class TaskResponse(BaseModel):
    """Schema for task queue item response."""

    id: str
    task_type: TaskType
    book_id: str
    capabilities: list[BookMetadataPatchCapability]
    status: TaskStatus
    retry_count: int
    last_error: Optional[str]
    created_at: datetime
    updated_at: datetime
