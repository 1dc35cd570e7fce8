"""Pydantic schemas for series management."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import new_id


class SeriesStatus(str, Enum):
    """Publication status of a series."""

    ENDED = "ended"
    ONGOING = "ongoing"
    ABANDONED = "abandoned"
    HIATUS = "hiatus"


class ThumbnailType(str, Enum):
    """Where a series thumbnail came from."""

    SIDECAR = "sidecar"
    USER_UPLOADED = "user_uploaded"


class SeriesCreate(BaseModel):
    """Schema for creating a series."""

    id: str = Field(default_factory=new_id)
    library_id: str
    name: str = Field(..., min_length=1, max_length=500)
    url: Optional[str] = None


class SeriesResponse(BaseModel):
    """Schema for series response."""

    id: str
    library_id: str
    name: str
    url: Optional[str]
    book_count: int
    deleted_date: Optional[datetime]
    created_at: datetime
    last_modified: datetime

    model_config = {"from_attributes": True}

    @property
    def is_deleted(self) -> bool:
        """Check if the series is soft-deleted."""
        return self.deleted_date is not None


class SeriesMetadataResponse(BaseModel):
    """Schema for series metadata response."""

    series_id: str
    title: str
    title_sort: str
    status: SeriesStatus
    summary: Optional[str]

    model_config = {"from_attributes": True}


class ThumbnailCreate(BaseModel):
    """Schema for attaching a thumbnail to a series."""

    id: str = Field(default_factory=new_id)
    series_id: str
    url: str = Field(..., min_length=1)
    selected: bool = False
    type: ThumbnailType = ThumbnailType.USER_UPLOADED


class ThumbnailResponse(BaseModel):
    """Schema for series thumbnail response."""

    id: str
    series_id: str
    url: str
    selected: bool
    type: ThumbnailType
    created_at: datetime

    model_config = {"from_attributes": True}
