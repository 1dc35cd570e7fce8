"""SQLAlchemy models for series collections.

Tables:
- collections: User-defined groups of series
- collection_series: Membership of a series in a collection, with position
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow


class Collection(Base):
    """Collection model - a named group of series across libraries."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    # Manual ordering vs. alphabetical display
    ordered: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    last_modified: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Collection(id={self.id}, name='{self.name}')>"


class CollectionSeries(Base):
    """Association table for the collection-series many-to-many relationship."""

    __tablename__ = "collection_series"

    collection_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    series_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)

    # Position within collection (for manual ordering)
    number: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<CollectionSeries(collection_id={self.collection_id}, series_id={self.series_id})>"
