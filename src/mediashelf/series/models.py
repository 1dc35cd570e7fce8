"""SQLAlchemy models for series.

Tables:
- series: Series information and cached book count
- series_metadata: Human-editable series metadata
- book_metadata_aggregations: Per-series rollup of book metadata
- series_thumbnails: Cover images attached to a series
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow
from .schemas import SeriesStatus, ThumbnailType


class Series(Base):
    """Series model - an ordered group of books in one library."""

    __tablename__ = "series"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    library_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    url: Mapped[Optional[str]] = mapped_column(String(1000))

    # Cached count of active books, refreshed on every renumbering
    book_count: Mapped[int] = mapped_column(Integer, default=0)

    # Soft delete
    deleted_date: Mapped[Optional[str]] = mapped_column(String(32), index=True)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Series(id={self.id}, name='{self.name}', books={self.book_count})>"

    @property
    def is_deleted(self) -> bool:
        """Check if the series is soft-deleted."""
        return self.deleted_date is not None


class SeriesMetadata(Base):
    """Series metadata model."""

    __tablename__ = "series_metadata"

    series_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    title_lock: Mapped[bool] = mapped_column(Boolean, default=False)
    title_sort: Mapped[str] = mapped_column(String(500), nullable=False)
    title_sort_lock: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default=SeriesStatus.ONGOING.value)
    status_lock: Mapped[bool] = mapped_column(Boolean, default=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<SeriesMetadata(series_id={self.series_id}, title='{self.title}')>"


class BookMetadataAggregation(Base):
    """Rollup of the metadata of all books in a series."""

    __tablename__ = "book_metadata_aggregations"

    series_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    authors: Mapped[Optional[str]] = mapped_column(Text)  # JSON array
    tags: Mapped[Optional[str]] = mapped_column(Text)  # JSON array
    release_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    summary: Mapped[Optional[str]] = mapped_column(Text)
    summary_number: Mapped[Optional[str]] = mapped_column(String(50))

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<BookMetadataAggregation(series_id={self.series_id})>"


class SeriesThumbnail(Base):
    """Cover image attached to a series.

    ``url`` points at an image file that this database does not own; the file
    may disappear at any time, so existence is always checked before use.
    """

    __tablename__ = "series_thumbnails"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    series_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    selected: Mapped[bool] = mapped_column(Boolean, default=False)
    type: Mapped[str] = mapped_column(String(20), default=ThumbnailType.USER_UPLOADED.value)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<SeriesThumbnail(id={self.id}, series_id={self.series_id}, selected={self.selected})>"
