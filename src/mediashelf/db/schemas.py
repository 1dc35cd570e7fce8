"""Pydantic schemas for data validation.

Create schemas validate caller input; response schemas are detached
snapshots of stored rows, safe to hand out after the session is closed.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def new_id() -> str:
    """Generate a new entity id."""
    return str(uuid4())


class SeriesCover(str, Enum):
    """Which book provides a series cover when the series has no thumbnail."""

    FIRST = "first"
    FIRST_UNREAD_OR_FIRST = "first_unread_or_first"
    FIRST_UNREAD_OR_LAST = "first_unread_or_last"
    LAST = "last"


class MediaStatus(str, Enum):
    """Analysis status of a book file."""

    UNKNOWN = "unknown"
    READY = "ready"
    ERROR = "error"
    UNSUPPORTED = "unsupported"
    OUTDATED = "outdated"


# ============================================================================
# Library Schemas
# ============================================================================


class LibraryCreate(BaseModel):
    """Schema for creating a library."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    root: str = Field(..., min_length=1)
    series_cover: SeriesCover = SeriesCover.FIRST


class LibraryResponse(BaseModel):
    """Schema for library response."""

    id: str
    name: str
    root: str
    series_cover: SeriesCover
    created_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Book Schemas
# ============================================================================


class BookCreate(BaseModel):
    """Schema for a book about to be added to a series."""

    id: str = Field(default_factory=new_id)
    library_id: str
    name: str = Field(..., min_length=1, max_length=500)
    url: Optional[str] = None
    file_size: int = Field(0, ge=0)
    number: int = Field(0, ge=0, description="Initial position in the series")


class BookResponse(BaseModel):
    """Schema for book response."""

    id: str
    series_id: Optional[str]
    library_id: str
    name: str
    url: Optional[str]
    number: int
    deleted_date: Optional[datetime]
    created_at: datetime
    last_modified: datetime

    model_config = {"from_attributes": True}


class BookMetadataResponse(BaseModel):
    """Schema for book metadata response."""

    book_id: str
    title: str
    number: str
    number_lock: bool
    number_sort: float
    number_sort_lock: bool

    model_config = {"from_attributes": True}


class ReadProgressResponse(BaseModel):
    """Schema for read progress response."""

    book_id: str
    user_id: str
    page: int
    completed: bool
    last_modified: Optional[datetime] = None

    model_config = {"from_attributes": True}
