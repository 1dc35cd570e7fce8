"""Tests for series-wide read progress operations."""

import pytest

from mediashelf.books import BookLifecycle
from mediashelf.db.repositories import BookRepository, MediaRepository, ReadProgressRepository
from mediashelf.errors import NotFoundError
from mediashelf.events import (
    ReadProgressChanged,
    ReadProgressDeleted,
    ReadProgressSeriesChanged,
    ReadProgressSeriesDeleted,
)


@pytest.fixture
def books(db, series, add_books):
    """Three books with analyzed media."""
    added = add_books(series, "A", "B", "C")
    media = MediaRepository(db)
    for pages, book in zip((20, 30, 40), added):
        media.update_analysis(book.id, "ready", pages)
    return added


class TestMarkReadProgressCompleted:
    """Tests for marking a whole series as read."""

    def test_marks_every_book(self, db, lifecycle, series, books):
        """Test that each book is completed on its last page."""
        result = lifecycle.mark_read_progress_completed(series.id, "alice")

        assert [(p.book_id, p.page, p.completed) for p in result] == [
            (books[0].id, 20, True),
            (books[1].id, 30, True),
            (books[2].id, 40, True),
        ]
        stored = ReadProgressRepository(db).find_all_by_book_ids_and_user_id(
            [b.id for b in books], "alice"
        )
        assert len(stored) == 3

    def test_events(self, lifecycle, series, books, recorder):
        """Test per-book events followed by one series event."""
        recorder.clear()

        lifecycle.mark_read_progress_completed(series.id, "alice")

        assert recorder.types() == [
            "ReadProgressChanged",
            "ReadProgressChanged",
            "ReadProgressChanged",
            "ReadProgressSeriesChanged",
        ]
        assert [e.progress.book_id for e in recorder.of_type(ReadProgressChanged)] == [
            b.id for b in books
        ]
        summary = recorder.of_type(ReadProgressSeriesChanged)[0]
        assert (summary.series_id, summary.user_id) == (series.id, "alice")

    def test_overwrites_existing_progress(self, db, lifecycle, series, books):
        """Test that partial progress is replaced, not duplicated."""
        ReadProgressRepository(db).save(
            [{"book_id": books[0].id, "user_id": "alice", "page": 3, "completed": False}]
        )

        lifecycle.mark_read_progress_completed(series.id, "alice")
        lifecycle.mark_read_progress_completed(series.id, "alice")

        progress = ReadProgressRepository(db).find_by_book_id_and_user_id_or_none(books[0].id, "alice")
        assert progress.page == 20
        assert progress.completed is True
        assert len(ReadProgressRepository(db).find_all_by_book_ids([b.id for b in books])) == 3

    def test_missing_media_counts_as_zero_pages(self, db, lifecycle, series, books):
        """Test that a book without a media row is marked on page 0."""
        MediaRepository(db).delete_by_book_ids([books[1].id])

        result = lifecycle.mark_read_progress_completed(series.id, "alice")

        assert result[1].page == 0
        assert result[1].completed is True

    def test_soft_deleted_books_skipped(self, db, lifecycle, series, books):
        """Test that soft-deleted books get no progress."""
        BookLifecycle(db).soft_delete_many([BookRepository(db).find_by_id_or_none(books[2].id)])

        result = lifecycle.mark_read_progress_completed(series.id, "alice")

        assert [p.book_id for p in result] == [books[0].id, books[1].id]

    def test_empty_series(self, lifecycle, series, recorder):
        """Test that an empty series only gets the series event."""
        recorder.clear()

        assert lifecycle.mark_read_progress_completed(series.id, "alice") == []
        assert recorder.types() == ["ReadProgressSeriesChanged"]

    def test_unknown_series(self, lifecycle):
        """Test marking a series that does not exist."""
        with pytest.raises(NotFoundError):
            lifecycle.mark_read_progress_completed("missing", "alice")


class TestDeleteReadProgress:
    """Tests for clearing read progress on a series."""

    def test_deletes_only_that_user(self, db, lifecycle, series, books):
        """Test that other users keep their progress."""
        lifecycle.mark_read_progress_completed(series.id, "alice")
        lifecycle.mark_read_progress_completed(series.id, "bob")

        removed = lifecycle.delete_read_progress(series.id, "alice")

        assert {p.book_id for p in removed} == {b.id for b in books}
        repo = ReadProgressRepository(db)
        book_ids = [b.id for b in books]
        assert repo.find_all_by_book_ids_and_user_id(book_ids, "alice") == []
        assert len(repo.find_all_by_book_ids_and_user_id(book_ids, "bob")) == 3

    def test_events(self, lifecycle, series, books, recorder):
        """Test one event per removed row, then the series event."""
        lifecycle.mark_read_progress_completed(series.id, "alice")
        recorder.clear()

        lifecycle.delete_read_progress(series.id, "alice")

        assert len(recorder.of_type(ReadProgressDeleted)) == 3
        assert isinstance(recorder.events[-1], ReadProgressSeriesDeleted)

    def test_no_progress_is_not_an_error(self, lifecycle, series, books, recorder):
        """Test clearing progress that does not exist."""
        recorder.clear()

        assert lifecycle.delete_read_progress(series.id, "alice") == []
        assert recorder.types() == ["ReadProgressSeriesDeleted"]

    def test_clears_soft_deleted_books_too(self, db, lifecycle, series, books):
        """Test that progress on soft-deleted books is also cleared."""
        lifecycle.mark_read_progress_completed(series.id, "alice")
        BookLifecycle(db).soft_delete_many([BookRepository(db).find_by_id_or_none(books[0].id)])

        lifecycle.delete_read_progress(series.id, "alice")

        assert ReadProgressRepository(db).find_all_by_book_ids([b.id for b in books]) == []

    def test_unknown_series(self, lifecycle):
        """Test clearing progress on a series that does not exist."""
        with pytest.raises(NotFoundError):
            lifecycle.delete_read_progress("missing", "alice")
