"""Series lifecycle: creation, book membership, renumbering, deletion,
read progress and thumbnails.

Every multi-row write runs inside one ``Database.transaction()``. Events are
published only after that transaction commits, and a failing subscriber or
task request never undoes the committed change.
"""

from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..books.lifecycle import BookLifecycle
from ..collections.repository import CollectionRepository
from ..db.models import Book, BookMetadata, Media, utcnow
from ..db.repositories import (
    BookMetadataRepository,
    BookRepository,
    LibraryRepository,
    MediaRepository,
    ReadProgressRepository,
)
from ..db.schemas import BookCreate, BookResponse, ReadProgressResponse, SeriesCover
from ..db.sqlite import Database, get_db
from ..errors import InvariantViolation, NotFoundError
from ..events import (
    BookAdded,
    DomainEvent,
    EventPublisher,
    ReadProgressChanged,
    ReadProgressDeleted,
    ReadProgressSeriesChanged,
    ReadProgressSeriesDeleted,
    SeriesAdded,
    SeriesDeleted,
    SeriesUpdated,
    ThumbnailSeriesAdded,
)
from ..tasks import BookMetadataPatchCapability, TaskReceiver
from ..utils.logging import get_logger
from ..utils.natural_sort import natural_sort_key
from ..utils.text import strip_accents
from .models import BookMetadataAggregation, Series, SeriesMetadata, SeriesThumbnail
from .repository import (
    BookMetadataAggregationRepository,
    SeriesMetadataRepository,
    SeriesRepository,
    SeriesThumbnailRepository,
)
from .schemas import SeriesCreate, SeriesResponse, ThumbnailCreate, ThumbnailResponse
from .thumbnails import read_resource, resource_exists

LOG = get_logger("mediashelf.series")

NUMBERING_CAPABILITIES = (
    BookMetadataPatchCapability.NUMBER,
    BookMetadataPatchCapability.NUMBER_SORT,
)


def _needs_housekeeping(thumbnails: list[SeriesThumbnail]) -> bool:
    """Whether a thumbnail set has missing files or not exactly one selection."""
    if not thumbnails:
        return False
    if sum(1 for t in thumbnails if t.selected) != 1:
        return True
    return not all(resource_exists(t.url) for t in thumbnails)


class SeriesLifecycle:
    """Keeps series, their books and dependent rows consistent.

    Holds no state between calls; everything lives in the repositories.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        *,
        library_repository: Optional[LibraryRepository] = None,
        series_repository: Optional[SeriesRepository] = None,
        series_metadata_repository: Optional[SeriesMetadataRepository] = None,
        aggregation_repository: Optional[BookMetadataAggregationRepository] = None,
        thumbnail_repository: Optional[SeriesThumbnailRepository] = None,
        book_repository: Optional[BookRepository] = None,
        media_repository: Optional[MediaRepository] = None,
        book_metadata_repository: Optional[BookMetadataRepository] = None,
        read_progress_repository: Optional[ReadProgressRepository] = None,
        collection_repository: Optional[CollectionRepository] = None,
        book_lifecycle: Optional[BookLifecycle] = None,
        task_receiver: Optional[TaskReceiver] = None,
        event_publisher: Optional[EventPublisher] = None,
        sort_key: Callable[[str], tuple] = natural_sort_key,
    ):
        """Initialize the series lifecycle.

        Any collaborator left out is built on top of ``db``.

        Args:
            db: Database instance (uses global if not provided)
            event_publisher: Receives events after each commit
            task_receiver: Receives metadata refresh requests
            sort_key: Key function giving the canonical book order by name
        """
        self.db = db or get_db()
        self.libraries = library_repository or LibraryRepository(self.db)
        self.series = series_repository or SeriesRepository(self.db)
        self.series_metadata = series_metadata_repository or SeriesMetadataRepository(self.db)
        self.aggregations = aggregation_repository or BookMetadataAggregationRepository(self.db)
        self.thumbnails = thumbnail_repository or SeriesThumbnailRepository(self.db)
        self.books = book_repository or BookRepository(self.db)
        self.media = media_repository or MediaRepository(self.db)
        self.book_metadata = book_metadata_repository or BookMetadataRepository(self.db)
        self.read_progress = read_progress_repository or ReadProgressRepository(self.db)
        self.collections = collection_repository or CollectionRepository(self.db)
        self.book_lifecycle = book_lifecycle or BookLifecycle(
            self.db,
            book_repository=self.books,
            media_repository=self.media,
            book_metadata_repository=self.book_metadata,
            read_progress_repository=self.read_progress,
        )
        self.tasks = task_receiver or TaskReceiver(self.db)
        self.events = event_publisher or EventPublisher()
        self.sort_key = sort_key

    # ========================================================================
    # Creation and Book Membership
    # ========================================================================

    def create_series(self, data: SeriesCreate) -> SeriesResponse:
        """Create a series together with its metadata and aggregation rows.

        Raises:
            NotFoundError: If the library does not exist
            ConstraintViolation: If a series with this id already exists
        """
        with self.db.transaction() as session:
            self.libraries.find_by_id(data.library_id, session)
            self.series.insert(
                Series(id=data.id, library_id=data.library_id, name=data.name, url=data.url),
                session,
            )
            self.series_metadata.insert(
                SeriesMetadata(
                    series_id=data.id,
                    title=data.name,
                    title_sort=strip_accents(data.name),
                ),
                session,
            )
            self.aggregations.insert(BookMetadataAggregation(series_id=data.id), session)

        created = SeriesResponse.model_validate(self.series.find_by_id(data.id))
        self._publish([SeriesAdded(created)])
        return created

    def add_books(self, series_id: str, books: Iterable[BookCreate]) -> list[BookResponse]:
        """Attach new books to a series, with empty media and seeded metadata.

        Every book must come from the series' library; one mismatch rejects
        the whole batch before anything is written. Positions are not
        normalized here, call ``sort_books`` afterwards.

        Raises:
            NotFoundError: If the series does not exist
            InvariantViolation: If a book belongs to another library
        """
        to_add = list(books)
        if not to_add:
            return []

        with self.db.transaction() as session:
            series = self.series.find_by_id(series_id, session)
            for book in to_add:
                if book.library_id != series.library_id:
                    raise InvariantViolation(
                        f"Cannot add book '{book.name}' from library {book.library_id} "
                        f"to series {series.id} of library {series.library_id}"
                    )

            rows = [
                Book(
                    id=book.id,
                    series_id=series.id,
                    library_id=book.library_id,
                    name=book.name,
                    url=book.url,
                    file_size=book.file_size,
                    number=book.number,
                )
                for book in to_add
            ]
            self.books.insert(rows, session)
            self.media.insert([Media(book_id=row.id) for row in rows], session)
            self.book_metadata.insert(
                [
                    BookMetadata(
                        book_id=row.id,
                        title=row.name,
                        number=str(row.number),
                        number_sort=float(row.number),
                    )
                    for row in rows
                ],
                session,
            )
            added = [BookResponse.model_validate(row) for row in rows]

        self._publish(BookAdded(book) for book in added)
        return added

    # ========================================================================
    # Renumbering
    # ========================================================================

    def sort_books(self, series_id: str) -> list[BookResponse]:
        """Renumber the active books of a series in natural name order.

        Book positions become 1..N. Metadata ``number`` and ``number_sort``
        follow unless their lock is set; every book whose metadata numbering
        changed gets a metadata refresh request limited to those two fields.
        The series book count is refreshed as well.

        Returns:
            The books in their new order

        Raises:
            NotFoundError: If the series does not exist
        """
        LOG.debug("Sorting books for series %s", series_id)
        to_refresh: list[str] = []

        with self.db.transaction() as session:
            if not self.series.lock(series_id, session):
                raise NotFoundError("Series", series_id)

            books = self.books.find_all_by_series_id(series_id, session=session)
            metadata = {
                m.book_id: m
                for m in self.book_metadata.find_all_by_ids([b.id for b in books], session)
            }
            LOG.debug("Existing books: %s", books)

            ordered = sorted(books, key=lambda b: (self.sort_key(b.name), b.name, b.id))
            for rank, book in enumerate(ordered, start=1):
                book.number = rank
            self.books.update(ordered, session)
            LOG.debug("Sorted books: %s", ordered)

            changed = []
            for rank, book in enumerate(ordered, start=1):
                meta = metadata.get(book.id)
                if meta is None:
                    LOG.warning("Book %s has no metadata, leaving its numbering alone", book.id)
                    continue
                if meta.number_lock and meta.number_sort_lock:
                    continue

                before = (meta.number, meta.number_sort)
                if not meta.number_lock:
                    meta.number = str(rank)
                if not meta.number_sort_lock:
                    meta.number_sort = float(rank)
                if (meta.number, meta.number_sort) != before:
                    changed.append(meta)
                    to_refresh.append(book.id)
            self.book_metadata.update(changed, session)

            series = self.series.find_by_id(series_id, session)
            series.book_count = len(books)
            self.series.update([series], session)

            result = [BookResponse.model_validate(book) for book in ordered]

        # Keeps a later metadata import from overwriting the new numbering
        for book_id in to_refresh:
            LOG.debug("Metadata numbering has changed, refreshing metadata for book %s", book_id)
            try:
                self.tasks.refresh_book_metadata(book_id, NUMBERING_CAPABILITIES)
            except Exception:
                LOG.error("Could not queue metadata refresh for book %s", book_id, exc_info=True)

        return result

    # ========================================================================
    # Deletion
    # ========================================================================

    def soft_delete_many(self, series_ids: Iterable[str]) -> list[SeriesResponse]:
        """Mark series and their active books as deleted, keeping the rows.

        Raises:
            NotFoundError: If any series does not exist (nothing is changed)
        """
        ids = list(dict.fromkeys(series_ids))
        if not ids:
            return []
        LOG.info("Soft delete series: %s", ids)
        deleted_date = utcnow()

        with self.db.transaction() as session:
            series_list = self._find_all_or_raise(ids, session)
            books = self.books.find_all_by_series_ids(ids, session=session)
            for series in series_list:
                # restore matches books on the first stamp
                if series.deleted_date is None:
                    series.deleted_date = deleted_date
                self.book_lifecycle.soft_delete_many(
                    [book for book in books if book.series_id == series.id],
                    session,
                    deleted_date=series.deleted_date,
                )
            self.series.update(series_list, session)
            updated = [SeriesResponse.model_validate(series) for series in series_list]

        self._publish(SeriesUpdated(series) for series in updated)
        return updated

    def restore_many(self, series_ids: Iterable[str]) -> list[SeriesResponse]:
        """Reverse a soft delete.

        Only books that were deleted together with their series come back;
        books deleted on their own before that stay deleted.
        """
        ids = list(dict.fromkeys(series_ids))
        if not ids:
            return []
        LOG.info("Restore series: %s", ids)

        with self.db.transaction() as session:
            series_list = self._find_all_or_raise(ids, session)
            deleted_dates = {s.id: s.deleted_date for s in series_list if s.deleted_date}
            books = [
                book
                for book in self.books.find_all_by_series_ids(
                    list(deleted_dates), include_deleted=True, session=session
                )
                if book.deleted_date is not None
                and book.deleted_date == deleted_dates.get(book.series_id)
            ]
            self.book_lifecycle.restore_many(books, session)
            for series in series_list:
                series.deleted_date = None
            self.series.update(series_list, session)
            restored = [SeriesResponse.model_validate(series) for series in series_list]

        self._publish(SeriesUpdated(series) for series in restored)
        return restored

    def delete_many(self, series_ids: Iterable[str]) -> list[SeriesResponse]:
        """Permanently remove series and every row that depends on them.

        Raises:
            NotFoundError: If any series does not exist (nothing is removed)
        """
        ids = list(dict.fromkeys(series_ids))
        if not ids:
            return []
        LOG.info("Delete series ids: %s", ids)

        with self.db.transaction() as session:
            series_list = self._find_all_or_raise(ids, session)
            deleted = [SeriesResponse.model_validate(series) for series in series_list]

            self.book_lifecycle.delete_many(
                self.books.find_all_by_series_ids(ids, include_deleted=True, session=session),
                session,
            )
            self.read_progress.delete_by_series_ids(ids, session)
            self.collections.remove_series_from_all(ids, session)
            self.thumbnails.delete_by_series_ids(ids, session)
            self.series_metadata.delete(ids, session)
            self.aggregations.delete(ids, session)
            self.series.delete(ids, session)

        self._publish(SeriesDeleted(series) for series in deleted)
        return deleted

    # ========================================================================
    # Read Progress
    # ========================================================================

    def mark_read_progress_completed(
        self, series_id: str, user_id: str
    ) -> list[ReadProgressResponse]:
        """Mark every active book of a series as fully read by a user.

        Raises:
            NotFoundError: If the series does not exist
        """
        with self.db.transaction() as session:
            self.series.find_by_id(series_id, session)
            book_ids = self.books.find_all_ids_by_series_id(series_id, session=session)
            pages = self.media.get_pages_sizes(book_ids, session)
            self.read_progress.save(
                [
                    {
                        "book_id": book_id,
                        "user_id": user_id,
                        "page": pages.get(book_id, 0),
                        "completed": True,
                    }
                    for book_id in book_ids
                ],
                session,
            )
            saved = {
                p.book_id: ReadProgressResponse.model_validate(p)
                for p in self.read_progress.find_all_by_book_ids_and_user_id(
                    book_ids, user_id, session
                )
            }
            progresses = [saved[book_id] for book_id in book_ids]

        self._publish(ReadProgressChanged(p) for p in progresses)
        self._publish([ReadProgressSeriesChanged(series_id=series_id, user_id=user_id)])
        return progresses

    def delete_read_progress(self, series_id: str, user_id: str) -> list[ReadProgressResponse]:
        """Clear a user's read progress on every book of a series.

        Clearing progress that does not exist is not an error.

        Raises:
            NotFoundError: If the series does not exist
        """
        with self.db.transaction() as session:
            self.series.find_by_id(series_id, session)
            book_ids = self.books.find_all_ids_by_series_id(
                series_id, include_deleted=True, session=session
            )
            removed = [
                ReadProgressResponse.model_validate(p)
                for p in self.read_progress.find_all_by_book_ids_and_user_id(
                    book_ids, user_id, session
                )
            ]
            self.read_progress.delete_by_book_ids_and_user_id(book_ids, user_id, session)

        self._publish(ReadProgressDeleted(p) for p in removed)
        self._publish([ReadProgressSeriesDeleted(series_id=series_id, user_id=user_id)])
        return removed

    # ========================================================================
    # Thumbnails
    # ========================================================================

    def get_thumbnail(self, series_id: str) -> Optional[ThumbnailResponse]:
        """Get the selected thumbnail, repairing the thumbnail set if needed."""
        selected = self.thumbnails.find_selected_by_series_id_or_none(series_id)
        if selected is not None and resource_exists(selected.url):
            return ThumbnailResponse.model_validate(selected)
        return self.thumbnails_housekeeping(series_id)

    def get_thumbnail_bytes(self, series_id: str, user_id: Optional[str] = None) -> Optional[bytes]:
        """Get the cover image of a series.

        Uses the series' own selected thumbnail when there is one, otherwise
        the cover of the book picked by the library's cover policy. The
        unread-based policies need ``user_id``; without it they fall back to
        the first or last book.

        Returns:
            Image bytes, or None if no cover can be found
        """
        thumbnail = self.get_thumbnail(series_id)
        if thumbnail is not None:
            data = read_resource(thumbnail.url)
            if data is not None:
                return data

        series = self.series.find_by_id_or_none(series_id)
        if series is None:
            return None

        library = self.libraries.find_by_id_or_none(series.library_id)
        policy = SeriesCover(library.series_cover) if library else SeriesCover.FIRST
        book_id = self._cover_book_id(series_id, policy, user_id)
        if book_id is None:
            return None
        return self.book_lifecycle.get_thumbnail_bytes(book_id)

    def _cover_book_id(
        self, series_id: str, policy: SeriesCover, user_id: Optional[str]
    ) -> Optional[str]:
        if policy is SeriesCover.LAST:
            return self.books.find_last_id_in_series_or_none(series_id)

        if policy in (SeriesCover.FIRST_UNREAD_OR_FIRST, SeriesCover.FIRST_UNREAD_OR_LAST):
            if user_id is not None:
                unread = self.books.find_first_unread_id_in_series_or_none(series_id, user_id)
                if unread is not None:
                    return unread
            if policy is SeriesCover.FIRST_UNREAD_OR_LAST:
                return self.books.find_last_id_in_series_or_none(series_id)

        return self.books.find_first_id_in_series_or_none(series_id)

    def add_thumbnail_for_series(self, data: ThumbnailCreate) -> ThumbnailResponse:
        """Attach a thumbnail to a series.

        A thumbnail of the same series with the same url is replaced. A
        selected thumbnail becomes the only selected one of the series.

        Raises:
            NotFoundError: If the series does not exist
        """
        with self.db.transaction() as session:
            if not self.series.lock(data.series_id, session):
                raise NotFoundError("Series", data.series_id)

            for existing in self.thumbnails.find_all_by_series_id(data.series_id, session):
                if existing.url == data.url:
                    self.thumbnails.delete(existing.id, session)

            thumbnail = SeriesThumbnail(
                id=data.id,
                series_id=data.series_id,
                url=data.url,
                selected=data.selected,
                type=data.type.value,
            )
            self.thumbnails.insert(thumbnail, session)
            if thumbnail.selected:
                self.thumbnails.mark_selected(thumbnail, session)
            added = ThumbnailResponse.model_validate(thumbnail)

        self._publish([ThumbnailSeriesAdded(added)])
        return added

    def thumbnails_housekeeping(self, series_id: str) -> Optional[ThumbnailResponse]:
        """Repair the thumbnail set of a series.

        Removes entries whose image file is gone and leaves exactly one
        selected thumbnail if any remain. Running it again changes nothing,
        and a thumbnail set that needs no repair is only read.

        Returns:
            The selected thumbnail afterwards, or None if none remain
        """
        with self.db.transaction() as session:
            thumbnails = self.thumbnails.find_all_by_series_id(series_id, session)
            if not _needs_housekeeping(thumbnails):
                chosen = next((t for t in thumbnails if t.selected), None)
                return ThumbnailResponse.model_validate(chosen) if chosen else None

            LOG.info("House keeping thumbnails for series: %s", series_id)
            self.series.lock(series_id, session)

            remaining = []
            for thumbnail in self.thumbnails.find_all_by_series_id(series_id, session):
                if resource_exists(thumbnail.url):
                    remaining.append(thumbnail)
                else:
                    LOG.warning(
                        "Thumbnail %s doesn't exist, removing entry: %s", thumbnail.id, thumbnail.url
                    )
                    self.thumbnails.delete(thumbnail.id, session)

            selected = [t for t in remaining if t.selected]
            chosen = selected[0] if selected else None
            if len(selected) > 1:
                LOG.info("More than one thumbnail is selected, removing extra ones")
                self.thumbnails.mark_selected(chosen, session)
            elif not selected and remaining:
                LOG.info("Series has no selected thumbnail, choosing one automatically")
                chosen = remaining[0]
                self.thumbnails.mark_selected(chosen, session)

            if chosen is None:
                return None
            session.refresh(chosen)
            return ThumbnailResponse.model_validate(chosen)

    def housekeep_all_thumbnails(self, library_id: Optional[str] = None) -> int:
        """Run thumbnail housekeeping on every active series.

        Returns:
            Number of series processed
        """
        series_ids = [s.id for s in self.series.find_all(library_id=library_id)]
        for series_id in series_ids:
            self.thumbnails_housekeeping(series_id)
        return len(series_ids)

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def _find_all_or_raise(self, series_ids: list[str], session: Session) -> list[Series]:
        """Load series in the given order, failing if any is missing."""
        found = {s.id: s for s in self.series.find_all_by_ids(series_ids, session)}
        for series_id in series_ids:
            if series_id not in found:
                raise NotFoundError("Series", series_id)
        return [found[series_id] for series_id in series_ids]

    def _publish(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            try:
                self.events.publish(event)
            except Exception:
                LOG.error("Failed to publish %s", type(event).__name__, exc_info=True)
