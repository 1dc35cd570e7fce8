"""Per-book deletion and thumbnail operations.

Used by the series lifecycle to cascade series-level changes to books.
Methods that write accept the caller's session so the cascade stays inside
the caller's transaction.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..db.models import Book, utcnow
from ..db.repositories import (
    BookMetadataRepository,
    BookRepository,
    MediaRepository,
    ReadProgressRepository,
)
from ..db.sqlite import Database, get_db
from ..utils.logging import get_logger

LOG = get_logger("mediashelf.books")


class BookLifecycle:
    """Manages book deletion and thumbnails."""

    def __init__(
        self,
        db: Optional[Database] = None,
        book_repository: Optional[BookRepository] = None,
        media_repository: Optional[MediaRepository] = None,
        book_metadata_repository: Optional[BookMetadataRepository] = None,
        read_progress_repository: Optional[ReadProgressRepository] = None,
    ):
        """Initialize the book lifecycle.

        Args:
            db: Database instance (uses global if not provided)
            book_repository: Book storage
            media_repository: Media storage
            book_metadata_repository: Book metadata storage
            read_progress_repository: Read progress storage
        """
        self.db = db or get_db()
        self.books = book_repository or BookRepository(self.db)
        self.media = media_repository or MediaRepository(self.db)
        self.metadata = book_metadata_repository or BookMetadataRepository(self.db)
        self.read_progress = read_progress_repository or ReadProgressRepository(self.db)

    def soft_delete_many(
        self,
        books: list[Book],
        session: Optional[Session] = None,
        deleted_date: Optional[str] = None,
    ) -> None:
        """Mark books as deleted while keeping their rows.

        ``deleted_date`` defaults to now; series pass their own so the books
        deleted with them can be told apart later.
        """
        self._set_deleted_date(books, deleted_date or utcnow(), session)

    def restore_many(self, books: list[Book], session: Optional[Session] = None) -> None:
        """Reverse a soft delete."""
        self._set_deleted_date(books, None, session)

    def _set_deleted_date(
        self, books: list[Book], deleted_date: Optional[str], session: Optional[Session]
    ) -> None:
        if not books:
            return
        LOG.info("Setting deleted date to %s on %d books", deleted_date, len(books))

        def _apply(s: Session) -> None:
            attached = [s.merge(book) for book in books]
            for book in attached:
                book.deleted_date = deleted_date
            self.books.update(attached, s)

        if session:
            _apply(session)
        else:
            with self.db.get_session() as s:
                _apply(s)

    def delete_many(self, books: list[Book], session: Optional[Session] = None) -> None:
        """Remove books and everything that hangs off them."""
        if not books:
            return
        book_ids = [book.id for book in books]
        LOG.info("Delete book ids: %s", book_ids)

        def _delete(s: Session) -> None:
            self.read_progress.delete_by_book_ids(book_ids, s)
            self.media.delete_by_book_ids(book_ids, s)
            self.metadata.delete_by_book_ids(book_ids, s)
            self.books.delete_by_ids(book_ids, s)

        if session:
            _delete(session)
        else:
            with self.db.get_session() as s:
                _delete(s)

    def get_thumbnail_bytes(self, book_id: str) -> Optional[bytes]:
        """Get the generated cover of a book, if it has one."""
        media = self.media.find_by_id_or_none(book_id)
        if media is None:
            return None
        return media.thumbnail
