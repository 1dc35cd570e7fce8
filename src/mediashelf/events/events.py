"""Domain events published after lifecycle changes commit.

Payloads are detached response models, so subscribers can keep them
around without touching the database session that produced them.
"""

from dataclasses import dataclass

from ..db.schemas import BookResponse, ReadProgressResponse
from ..series.schemas import SeriesResponse, ThumbnailResponse


class DomainEvent:
    """Base class for all domain events."""

    pass


@dataclass(frozen=True)
class SeriesAdded(DomainEvent):
    series: SeriesResponse


@dataclass(frozen=True)
class SeriesUpdated(DomainEvent):
    series: SeriesResponse


@dataclass(frozen=True)
class SeriesDeleted(DomainEvent):
    series: SeriesResponse


@dataclass(frozen=True)
class BookAdded(DomainEvent):
    book: BookResponse


@dataclass(frozen=True)
class ReadProgressChanged(DomainEvent):
    progress: ReadProgressResponse


@dataclass(frozen=True)
class ReadProgressDeleted(DomainEvent):
    progress: ReadProgressResponse


@dataclass(frozen=True)
class ReadProgressSeriesChanged(DomainEvent):
    series_id: str
    user_id: str


@dataclass(frozen=True)
class ReadProgressSeriesDeleted(DomainEvent):
    series_id: str
    user_id: str


@dataclass(frozen=True)
class ThumbnailSeriesAdded(DomainEvent):
    thumbnail: ThumbnailResponse
