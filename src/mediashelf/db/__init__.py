"""Database module for local SQLite storage."""

from .models import Base, Book, BookMetadata, Library, Media, ReadProgress
from .schemas import (
    BookCreate,
    BookMetadataResponse,
    BookResponse,
    LibraryCreate,
    LibraryResponse,
    MediaStatus,
    ReadProgressResponse,
    SeriesCover,
)
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "Book",
    "BookMetadata",
    "Library",
    "Media",
    "ReadProgress",
    "BookCreate",
    "BookMetadataResponse",
    "BookResponse",
    "LibraryCreate",
    "LibraryResponse",
    "MediaStatus",
    "ReadProgressResponse",
    "SeriesCover",
    "Database",
    "get_db",
    "reset_db",
]
