"""SQLite database connection and transaction handling."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import ConstraintViolation, StorageFailure
from ..utils.logging import get_logger
from .models import Base

LOG = get_logger("mediashelf.db")


class Database:
    """Database connection and session manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:". If None,
                     uses MEDIASHELF_DB_PATH or the default location.
        """
        if db_path is None:
            db_path = str(get_config().db_path)

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import feature models to register them with Base
        from ..series.models import (  # noqa: F401
            BookMetadataAggregation,
            Series,
            SeriesMetadata,
            SeriesThumbnail,
        )
        from ..collections.models import Collection, CollectionSeries  # noqa: F401
        from ..tasks.models import TaskQueueItem  # noqa: F401

        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Run a multi-repository write as one unit.

        Everything written through the yielded session commits together or
        not at all. Storage errors are re-raised as ``ConstraintViolation``
        (duplicate keys) or ``StorageFailure`` (anything else) after the
        rollback; other exceptions pass through unchanged.
        """
        try:
            with self.get_session() as session:
                yield session
        except IntegrityError as e:
            LOG.warning("Transaction rolled back on constraint violation: %s", e.orig)
            raise ConstraintViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            LOG.error("Transaction rolled back on storage failure", exc_info=True)
            raise StorageFailure(str(e)) from e


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
