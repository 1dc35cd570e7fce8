"""Repositories for library, book, media, metadata and read progress rows.

Every method takes an optional ``session``. Given one, it runs inside the
caller's transaction and returns attached objects; without one, it opens its
own session, commits, and returns detached objects.
"""

from typing import Any, Callable, Iterable, Optional, TypeVar

from sqlalchemy import and_, delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from .models import Base, Book, BookMetadata, Library, Media, ReadProgress, utcnow
from .sqlite import Database

T = TypeVar("T")

# Keeps multi-row statements under SQLite's bound-parameter limit
CHUNK_SIZE = 500


def chunked(items: list, size: int = CHUNK_SIZE) -> Iterable[list]:
    """Split a list into consecutive chunks."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BaseRepository:
    """Shared session handling for repositories."""

    def __init__(self, db: Database):
        """Initialize the repository.

        Args:
            db: Database instance
        """
        self.db = db

    def _run(self, fn: Callable[[Session], T], session: Optional[Session] = None) -> T:
        if session is not None:
            return fn(session)
        with self.db.get_session() as s:
            result = fn(s)
            self._detach(s, result)
            return result

    @staticmethod
    def _detach(session: Session, result: Any) -> None:
        if isinstance(result, Base):
            session.expunge(result)
        elif isinstance(result, list):
            for item in result:
                if isinstance(item, Base):
                    session.expunge(item)

    def _add_all(self, rows: list[T], session: Optional[Session] = None) -> list[T]:
        def _add(s: Session) -> list[T]:
            s.add_all(rows)
            s.flush()
            return rows

        return self._run(_add, session)


# ============================================================================
# Library
# ============================================================================


class LibraryRepository(BaseRepository):
    """Storage for libraries."""

    def insert(self, library: Library, session: Optional[Session] = None) -> Library:
        return self._add_all([library], session)[0]

    def find_by_id_or_none(
        self, library_id: str, session: Optional[Session] = None
    ) -> Optional[Library]:
        return self._run(lambda s: s.get(Library, library_id), session)

    def find_by_id(self, library_id: str, session: Optional[Session] = None) -> Library:
        library = self.find_by_id_or_none(library_id, session)
        if library is None:
            raise NotFoundError("Library", library_id)
        return library

    def find_all(self, session: Optional[Session] = None) -> list[Library]:
        stmt = select(Library).order_by(Library.name)
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)


# ============================================================================
# Book
# ============================================================================


class BookRepository(BaseRepository):
    """Storage for books."""

    def find_by_id_or_none(
        self, book_id: str, session: Optional[Session] = None
    ) -> Optional[Book]:
        return self._run(lambda s: s.get(Book, book_id), session)

    def find_all_by_series_id(
        self,
        series_id: str,
        include_deleted: bool = False,
        session: Optional[Session] = None,
    ) -> list[Book]:
        """Get the books of a series, by position."""
        return self.find_all_by_series_ids([series_id], include_deleted, session)

    def find_all_by_series_ids(
        self,
        series_ids: list[str],
        include_deleted: bool = False,
        session: Optional[Session] = None,
    ) -> list[Book]:
        stmt = select(Book).where(Book.series_id.in_(series_ids))
        if not include_deleted:
            stmt = stmt.where(Book.deleted_date.is_(None))
        stmt = stmt.order_by(Book.series_id, Book.number, Book.id)
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def find_all_ids_by_series_id(
        self,
        series_id: str,
        include_deleted: bool = False,
        session: Optional[Session] = None,
    ) -> list[str]:
        """Get ids of the books of a series, by position."""
        stmt = select(Book.id).where(Book.series_id == series_id)
        if not include_deleted:
            stmt = stmt.where(Book.deleted_date.is_(None))
        stmt = stmt.order_by(Book.number, Book.id)
        return self._run(lambda s: list(s.execute(stmt).scalars().all()), session)

    def _ordered_ids_in_series(self, series_id: str, descending: bool = False):
        sort = BookMetadata.number_sort.desc() if descending else BookMetadata.number_sort
        number = Book.number.desc() if descending else Book.number
        return (
            select(Book.id)
            .outerjoin(BookMetadata, BookMetadata.book_id == Book.id)
            .where(Book.series_id == series_id, Book.deleted_date.is_(None))
            .order_by(sort, number)
            .limit(1)
        )

    def find_first_id_in_series_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[str]:
        stmt = self._ordered_ids_in_series(series_id)
        return self._run(lambda s: s.execute(stmt).scalar_one_or_none(), session)

    def find_last_id_in_series_or_none(
        self, series_id: str, session: Optional[Session] = None
    ) -> Optional[str]:
        stmt = self._ordered_ids_in_series(series_id, descending=True)
        return self._run(lambda s: s.execute(stmt).scalar_one_or_none(), session)

    def find_first_unread_id_in_series_or_none(
        self, series_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[str]:
        """Get the first book the user has no read progress on."""
        stmt = (
            self._ordered_ids_in_series(series_id)
            .outerjoin(
                ReadProgress,
                and_(ReadProgress.book_id == Book.id, ReadProgress.user_id == user_id),
            )
            .where(ReadProgress.book_id.is_(None))
        )
        return self._run(lambda s: s.execute(stmt).scalar_one_or_none(), session)

    def insert(self, books: list[Book], session: Optional[Session] = None) -> list[Book]:
        return self._add_all(books, session)

    def update(self, books: list[Book], session: Optional[Session] = None) -> list[Book]:
        return self._add_all(books, session)

    def delete_by_ids(self, book_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(book_ids):
                stmt = delete(Book).where(Book.id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


# ============================================================================
# Media
# ============================================================================


class MediaRepository(BaseRepository):
    """Storage for book media analysis rows."""

    def find_by_id_or_none(
        self, book_id: str, session: Optional[Session] = None
    ) -> Optional[Media]:
        return self._run(lambda s: s.get(Media, book_id), session)

    def insert(self, media: list[Media], session: Optional[Session] = None) -> list[Media]:
        return self._add_all(media, session)

    def get_pages_sizes(
        self, book_ids: list[str], session: Optional[Session] = None
    ) -> dict[str, int]:
        """Map book ids to their page counts."""

        def _get(s: Session) -> dict[str, int]:
            sizes = {}
            for ids in chunked(book_ids):
                stmt = select(Media.book_id, Media.page_count).where(Media.book_id.in_(ids))
                sizes.update({book_id: pages for book_id, pages in s.execute(stmt)})
            return sizes

        return self._run(_get, session)

    def update_analysis(
        self,
        book_id: str,
        status: str,
        page_count: int,
        media_type: Optional[str] = None,
        thumbnail: Optional[bytes] = None,
        session: Optional[Session] = None,
    ) -> Optional[Media]:
        """Record the result of analyzing a book file."""

        def _update(s: Session) -> Optional[Media]:
            media = s.get(Media, book_id)
            if not media:
                return None
            media.status = status
            media.page_count = page_count
            media.media_type = media_type
            media.thumbnail = thumbnail
            s.flush()
            return media

        return self._run(_update, session)

    def delete_by_book_ids(self, book_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(book_ids):
                stmt = delete(Media).where(Media.book_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


# ============================================================================
# Book Metadata
# ============================================================================


class BookMetadataRepository(BaseRepository):
    """Storage for book metadata rows."""

    def find_by_id_or_none(
        self, book_id: str, session: Optional[Session] = None
    ) -> Optional[BookMetadata]:
        return self._run(lambda s: s.get(BookMetadata, book_id), session)

    def find_all_by_ids(
        self, book_ids: list[str], session: Optional[Session] = None
    ) -> list[BookMetadata]:
        def _get(s: Session) -> list[BookMetadata]:
            rows = []
            for ids in chunked(book_ids):
                stmt = select(BookMetadata).where(BookMetadata.book_id.in_(ids))
                rows.extend(s.execute(stmt).scalars().all())
            return rows

        return self._run(_get, session)

    def insert(
        self, metadata: list[BookMetadata], session: Optional[Session] = None
    ) -> list[BookMetadata]:
        return self._add_all(metadata, session)

    def update(
        self, metadata: list[BookMetadata], session: Optional[Session] = None
    ) -> list[BookMetadata]:
        return self._add_all(metadata, session)

    def delete_by_book_ids(self, book_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(book_ids):
                stmt = delete(BookMetadata).where(BookMetadata.book_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)


# ============================================================================
# Read Progress
# ============================================================================


class ReadProgressRepository(BaseRepository):
    """Storage for per-user read progress."""

    def find_by_book_id_and_user_id_or_none(
        self, book_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[ReadProgress]:
        return self._run(lambda s: s.get(ReadProgress, (book_id, user_id)), session)

    def find_all_by_book_ids(
        self, book_ids: list[str], session: Optional[Session] = None
    ) -> list[ReadProgress]:
        def _get(s: Session) -> list[ReadProgress]:
            rows = []
            for ids in chunked(book_ids):
                stmt = select(ReadProgress).where(ReadProgress.book_id.in_(ids))
                rows.extend(s.execute(stmt).scalars().all())
            return rows

        return self._run(_get, session)

    def find_all_by_book_ids_and_user_id(
        self, book_ids: list[str], user_id: str, session: Optional[Session] = None
    ) -> list[ReadProgress]:
        def _get(s: Session) -> list[ReadProgress]:
            rows = []
            for ids in chunked(book_ids):
                stmt = select(ReadProgress).where(
                    ReadProgress.book_id.in_(ids),
                    ReadProgress.user_id == user_id,
                )
                rows.extend(s.execute(stmt).scalars().all())
            return rows

        return self._run(_get, session)

    def save(self, progresses: list[dict], session: Optional[Session] = None) -> int:
        """Insert or overwrite progress rows in bulk.

        Args:
            progresses: Dicts with book_id, user_id, page and completed keys

        Returns:
            Number of rows written
        """

        def _save(s: Session) -> int:
            now = utcnow()
            rows = [
                {**progress, "created_at": now, "last_modified": now}
                for progress in progresses
            ]
            for batch in chunked(rows, CHUNK_SIZE // 6):
                stmt = sqlite_insert(ReadProgress).values(batch)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["book_id", "user_id"],
                    set_={
                        "page": stmt.excluded.page,
                        "completed": stmt.excluded.completed,
                        "last_modified": stmt.excluded.last_modified,
                    },
                )
                s.execute(stmt)
            return len(rows)

        return self._run(_save, session)

    def delete_by_book_ids_and_user_id(
        self, book_ids: list[str], user_id: str, session: Optional[Session] = None
    ) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(book_ids):
                stmt = delete(ReadProgress).where(
                    ReadProgress.book_id.in_(ids),
                    ReadProgress.user_id == user_id,
                )
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)

    def delete_by_book_ids(self, book_ids: list[str], session: Optional[Session] = None) -> int:
        def _delete(s: Session) -> int:
            count = 0
            for ids in chunked(book_ids):
                stmt = delete(ReadProgress).where(ReadProgress.book_id.in_(ids))
                count += s.execute(stmt, execution_options={"synchronize_session": False}).rowcount
            return count

        return self._run(_delete, session)

    def delete_by_series_ids(
        self, series_ids: list[str], session: Optional[Session] = None
    ) -> int:
        book_ids = select(Book.id).where(Book.series_id.in_(series_ids))
        stmt = delete(ReadProgress).where(ReadProgress.book_id.in_(book_ids))
        return self._run(
            lambda s: s.execute(stmt, execution_options={"synchronize_session": False}).rowcount,
            session,
        )
