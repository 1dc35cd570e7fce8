"""Tests for the Database session and transaction helpers."""

import pytest
from sqlalchemy import inspect

from mediashelf.db import Library
from mediashelf.db.repositories import LibraryRepository
from mediashelf.db.sqlite import Database, get_db
from mediashelf.errors import ConstraintViolation, NotFoundError


class TestCreateTables:
    """Tests for schema creation."""

    def test_creates_all_tables(self, db):
        """Test that feature-package tables are created too."""
        tables = set(inspect(db.engine).get_table_names())
        assert {
            "libraries",
            "books",
            "media",
            "book_metadata",
            "read_progress",
            "series",
            "series_metadata",
            "book_metadata_aggregations",
            "series_thumbnails",
            "collections",
            "collection_series",
            "task_queue",
        } <= tables

    def test_file_database(self, tmp_path):
        """Test creating a database file in a new directory."""
        database = Database(str(tmp_path / "nested" / "mediashelf.db"))
        database.create_tables()
        assert (tmp_path / "nested" / "mediashelf.db").exists()

    def test_global_instance_uses_env(self, env_db_path):
        """Test that get_db honours MEDIASHELF_DB_PATH."""
        database = get_db()
        assert database.db_path == env_db_path
        assert get_db() is database


class TestTransaction:
    """Tests for Database.transaction()."""

    def test_commits(self, db):
        with db.transaction() as session:
            LibraryRepository(db).insert(Library(id="lib-1", name="Comics", root="/c"), session)

        assert LibraryRepository(db).find_by_id("lib-1").name == "Comics"

    def test_duplicate_key_rolls_back_everything(self, db):
        """Test that a constraint error undoes all writes of the transaction."""
        repo = LibraryRepository(db)
        repo.insert(Library(id="lib-1", name="Comics", root="/c"))

        with pytest.raises(ConstraintViolation):
            with db.transaction() as session:
                repo.insert(Library(id="lib-2", name="Manga", root="/m"), session)
                repo.insert(Library(id="lib-1", name="Again", root="/a"), session)

        assert repo.find_by_id_or_none("lib-2") is None
        assert repo.find_by_id("lib-1").name == "Comics"

    def test_domain_errors_pass_through(self, db):
        """Test that non-storage errors are re-raised unchanged."""
        repo = LibraryRepository(db)

        with pytest.raises(NotFoundError):
            with db.transaction() as session:
                repo.insert(Library(id="lib-1", name="Comics", root="/c"), session)
                repo.find_by_id("missing", session)

        assert repo.find_by_id_or_none("lib-1") is None
