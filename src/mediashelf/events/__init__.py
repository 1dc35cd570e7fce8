"""Domain events and their publisher."""

from .events import (
    BookAdded,
    DomainEvent,
    ReadProgressChanged,
    ReadProgressDeleted,
    ReadProgressSeriesChanged,
    ReadProgressSeriesDeleted,
    SeriesAdded,
    SeriesDeleted,
    SeriesUpdated,
    ThumbnailSeriesAdded,
)
from .publisher import EventHandler, EventPublisher

__all__ = [
    "BookAdded",
    "DomainEvent",
    "ReadProgressChanged",
    "ReadProgressDeleted",
    "ReadProgressSeriesChanged",
    "ReadProgressSeriesDeleted",
    "SeriesAdded",
    "SeriesDeleted",
    "SeriesUpdated",
    "ThumbnailSeriesAdded",
    "EventHandler",
    "EventPublisher",
]
