"""SQLAlchemy ORM models for the library database.

Tables:
- libraries: Library roots and their cover policy
- books: Books, each belonging to one series
- media: Analysis results per book (page count, generated thumbnail)
- book_metadata: Human-editable book metadata, including numbering locks
- read_progress: Per-user reading position per book
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Float,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import MediaStatus, SeriesCover


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utcnow() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Library(Base):
    """Library model - a root folder holding series."""

    __tablename__ = "libraries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    root: Mapped[str] = mapped_column(String(1000), nullable=False)

    # Which book provides the series cover when the series has no thumbnail
    series_cover: Mapped[str] = mapped_column(String(30), default=SeriesCover.FIRST.value)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Library(id={self.id}, name='{self.name}')>"


class Book(Base):
    """Book model - one file inside a series."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    series_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    library_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(1000))
    file_size: Mapped[int] = mapped_column(Integer, default=0)

    # 1-based position inside the series, maintained by the series lifecycle
    number: Mapped[int] = mapped_column(Integer, default=0)

    # Soft delete
    deleted_date: Mapped[Optional[str]] = mapped_column(String(32))

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, name='{self.name}', number={self.number})>"

    @property
    def is_deleted(self) -> bool:
        """Check if the book is soft-deleted."""
        return self.deleted_date is not None


class Media(Base):
    """Media model - analysis state of a book file."""

    __tablename__ = "media"

    book_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), default=MediaStatus.UNKNOWN.value)
    media_type: Mapped[Optional[str]] = mapped_column(String(100))
    page_count: Mapped[int] = mapped_column(Integer, default=0)
    thumbnail: Mapped[Optional[bytes]] = mapped_column(LargeBinary)
    comment: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Media(book_id={self.book_id}, status={self.status}, pages={self.page_count})>"


class BookMetadata(Base):
    """Book metadata model - displayed title and numbering."""

    __tablename__ = "book_metadata"

    book_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    title_lock: Mapped[bool] = mapped_column(Boolean, default=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    summary_lock: Mapped[bool] = mapped_column(Boolean, default=False)

    # Label shown to users ("1", "1.5", "Annual") and its sort key
    number: Mapped[str] = mapped_column(String(50), nullable=False)
    number_lock: Mapped[bool] = mapped_column(Boolean, default=False)
    number_sort: Mapped[float] = mapped_column(Float, nullable=False)
    number_sort_lock: Mapped[bool] = mapped_column(Boolean, default=False)

    release_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    authors: Mapped[Optional[str]] = mapped_column(Text)  # JSON array
    tags: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<BookMetadata(book_id={self.book_id}, number='{self.number}', number_sort={self.number_sort})>"


class ReadProgress(Base):
    """Read progress model - one row per (book, user)."""

    __tablename__ = "read_progress"

    book_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)

    page: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<ReadProgress(book_id={self.book_id}, user_id={self.user_id}, "
            f"page={self.page}, completed={self.completed})>"
        )
