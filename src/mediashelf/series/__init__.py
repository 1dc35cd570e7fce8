"""Series storage and lifecycle.

``SeriesLifecycle`` lives in ``mediashelf.series.lifecycle``; it is not
re-exported here because the events module depends on these schemas.
"""

from .models import BookMetadataAggregation, Series, SeriesMetadata, SeriesThumbnail
from .repository import (
    BookMetadataAggregationRepository,
    SeriesMetadataRepository,
    SeriesRepository,
    SeriesThumbnailRepository,
)
from .schemas import (
    SeriesCreate,
    SeriesMetadataResponse,
    SeriesResponse,
    SeriesStatus,
    ThumbnailCreate,
    ThumbnailResponse,
    ThumbnailType,
)

__all__ = [
    "BookMetadataAggregation",
    "Series",
    "SeriesMetadata",
    "SeriesThumbnail",
    "BookMetadataAggregationRepository",
    "SeriesMetadataRepository",
    "SeriesRepository",
    "SeriesThumbnailRepository",
    "SeriesCreate",
    "SeriesMetadataResponse",
    "SeriesResponse",
    "SeriesStatus",
    "ThumbnailCreate",
    "ThumbnailResponse",
    "ThumbnailType",
]
