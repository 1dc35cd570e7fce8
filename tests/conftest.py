"""Pytest configuration and shared fixtures.

This module provides fixtures for testing mediashelf: an in-memory database,
a lifecycle wired to a recording event publisher, and sample libraries,
series and books.
"""

import os
from pathlib import Path
from typing import Generator

import pytest

from mediashelf.config import reset_config
from mediashelf.db import BookCreate, Library, SeriesCover
from mediashelf.db.repositories import LibraryRepository
from mediashelf.db.sqlite import Database, reset_db
from mediashelf.events import DomainEvent, EventPublisher
from mediashelf.series.lifecycle import SeriesLifecycle
from mediashelf.series.schemas import SeriesCreate, SeriesResponse


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory database for testing."""
    reset_db()
    reset_config()

    database = Database(":memory:")
    database.create_tables()
    yield database

    reset_db()
    reset_config()


# ============================================================================
# Event Fixtures
# ============================================================================


class EventRecorder:
    """Subscriber that remembers every event it receives."""

    def __init__(self):
        self.events: list[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]

    def types(self) -> list[str]:
        return [type(e).__name__ for e in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher()


@pytest.fixture
def recorder(publisher: EventPublisher) -> EventRecorder:
    """Record every event published during a test."""
    rec = EventRecorder()
    publisher.subscribe(rec)
    return rec


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def lifecycle(db: Database, publisher: EventPublisher) -> SeriesLifecycle:
    """Create a SeriesLifecycle with test database."""
    return SeriesLifecycle(db, event_publisher=publisher)


@pytest.fixture
def make_library(db: Database):
    """Factory creating libraries."""

    def _make(cover: SeriesCover = SeriesCover.FIRST, name: str = "Comics") -> Library:
        return LibraryRepository(db).insert(
            Library(name=name, root=f"/media/{name.lower()}", series_cover=cover.value)
        )

    return _make


@pytest.fixture
def library(make_library) -> Library:
    """Create a sample library."""
    return make_library()


@pytest.fixture
def series(lifecycle: SeriesLifecycle, library: Library) -> SeriesResponse:
    """Create an empty sample series."""
    return lifecycle.create_series(SeriesCreate(library_id=library.id, name="Saga"))


@pytest.fixture
def add_books(lifecycle: SeriesLifecycle):
    """Factory adding books by name to a series."""

    def _add(series: SeriesResponse, *names: str):
        return lifecycle.add_books(
            series.id,
            [
                BookCreate(library_id=series.library_id, name=name, number=index)
                for index, name in enumerate(names, start=1)
            ],
        )

    return _add


@pytest.fixture
def image_file(tmp_path: Path):
    """Factory writing small fake image files."""

    def _make(name: str = "cover.jpg", content: bytes = b"\xff\xd8\xff fake jpeg") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def env_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the global database at a temporary file."""
    reset_db()
    reset_config()
    db_path = tmp_path / "mediashelf.db"
    os.environ["MEDIASHELF_DB_PATH"] = str(db_path)

    yield db_path

    reset_db()
    reset_config()
    os.environ.pop("MEDIASHELF_DB_PATH", None)
