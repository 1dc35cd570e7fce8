"""Tests for repository queries that the lifecycles rely on."""

from mediashelf.collections import Collection, CollectionRepository
from mediashelf.db.repositories import (
    BookMetadataRepository,
    BookRepository,
    ReadProgressRepository,
    chunked,
)
from mediashelf.series import SeriesThumbnail
from mediashelf.series.repository import SeriesRepository, SeriesThumbnailRepository
from mediashelf.series.schemas import SeriesCreate


class TestChunked:
    def test_chunks(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert list(chunked([], 2)) == []


class TestSeriesRepository:
    """Tests for series queries."""

    def test_lock(self, db, series):
        """Test that locking reports whether the series exists."""
        repo = SeriesRepository(db)
        with db.transaction() as session:
            assert repo.lock(series.id, session) is True
            assert repo.lock("missing", session) is False

    def test_find_all_hides_deleted(self, db, lifecycle, library, series):
        other = lifecycle.create_series(SeriesCreate(library_id=library.id, name="Another"))
        lifecycle.soft_delete_many([other.id])
        repo = SeriesRepository(db)

        assert [s.id for s in repo.find_all()] == [series.id]
        assert {s.id for s in repo.find_all(include_deleted=True)} == {series.id, other.id}

    def test_find_all_by_library(self, db, lifecycle, make_library, series):
        manga = make_library(name="Manga")
        lifecycle.create_series(SeriesCreate(library_id=manga.id, name="Berserk"))

        assert [s.name for s in SeriesRepository(db).find_all(library_id=manga.id)] == ["Berserk"]


class TestThumbnailRepository:
    def test_mark_selected(self, db, series):
        """Test that marking one thumbnail unselects the others."""
        repo = SeriesThumbnailRepository(db)
        first = repo.insert(SeriesThumbnail(series_id=series.id, url="/a.jpg", selected=True))
        second = repo.insert(SeriesThumbnail(series_id=series.id, url="/b.jpg"))

        repo.mark_selected(second)

        assert repo.find_selected_by_series_id_or_none(series.id).id == second.id
        assert repo.find_by_id_or_none(first.id).selected is False


class TestBookRepository:
    """Tests for cover book lookups."""

    def test_first_and_last_follow_number_sort(self, db, series, add_books):
        """Test that metadata number_sort decides first and last."""
        books = add_books(series, "A", "B", "C")
        metadata_repo = BookMetadataRepository(db)
        metadata = metadata_repo.find_by_id_or_none(books[0].id)
        metadata.number_sort = 99.0
        metadata_repo.update([metadata])
        repo = BookRepository(db)

        assert repo.find_first_id_in_series_or_none(series.id) == books[1].id
        assert repo.find_last_id_in_series_or_none(series.id) == books[0].id

    def test_first_unread(self, db, series, add_books):
        books = add_books(series, "A", "B")
        ReadProgressRepository(db).save(
            [{"book_id": books[0].id, "user_id": "alice", "page": 1, "completed": False}]
        )
        repo = BookRepository(db)

        assert repo.find_first_unread_id_in_series_or_none(series.id, "alice") == books[1].id
        assert repo.find_first_unread_id_in_series_or_none(series.id, "bob") == books[0].id

    def test_empty_series(self, db, series):
        assert BookRepository(db).find_first_id_in_series_or_none(series.id) is None


class TestReadProgressRepository:
    def test_save_many_rows(self, db):
        """Test bulk upserts larger than one statement batch."""
        repo = ReadProgressRepository(db)
        rows = [
            {"book_id": f"book-{i}", "user_id": "alice", "page": i, "completed": False}
            for i in range(250)
        ]

        assert repo.save(rows) == 250
        assert len(repo.find_all_by_book_ids([r["book_id"] for r in rows])) == 250


class TestCollectionRepository:
    """Tests for collection membership."""

    def test_add_series_appends(self, db, lifecycle, library, series):
        other = lifecycle.create_series(SeriesCreate(library_id=library.id, name="Other"))
        repo = CollectionRepository(db)
        collection = repo.insert(Collection(name="Favorites", ordered=True))

        first = repo.add_series(collection.id, series.id)
        second = repo.add_series(collection.id, other.id)

        assert (first.number, second.number) == (1, 2)
        assert repo.find_series_ids(collection.id) == [series.id, other.id]

    def test_remove_series_from_all(self, db, series):
        repo = CollectionRepository(db)
        a = repo.insert(Collection(name="A"))
        b = repo.insert(Collection(name="B"))
        repo.add_series(a.id, series.id)
        repo.add_series(b.id, series.id)
        assert [c.id for c in repo.find_all_by_series_id(series.id)] == [a.id, b.id]

        assert repo.remove_series_from_all([series.id]) == 2
        assert repo.find_all_by_series_id(series.id) == []
