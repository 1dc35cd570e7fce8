"""Tests for TaskReceiver and TaskProcessor."""

import pytest

from mediashelf.tasks import (
    BookMetadataPatchCapability,
    TaskProcessor,
    TaskReceiver,
    TaskStatus,
    TaskType,
)

NUMBER = BookMetadataPatchCapability.NUMBER
NUMBER_SORT = BookMetadataPatchCapability.NUMBER_SORT
TITLE = BookMetadataPatchCapability.TITLE


@pytest.fixture
def receiver(db):
    return TaskReceiver(db)


class TestTaskReceiver:
    """Tests for queuing tasks."""

    def test_refresh_book_metadata(self, receiver):
        """Test queuing a metadata refresh."""
        task = receiver.refresh_book_metadata("book-1", [NUMBER_SORT, NUMBER])

        assert task.task_type == TaskType.REFRESH_BOOK_METADATA
        assert task.book_id == "book-1"
        assert task.capabilities == [NUMBER, NUMBER_SORT]
        assert task.status == TaskStatus.PENDING
        assert task.retry_count == 0
        assert receiver.count_pending() == 1

    def test_pending_requests_merge(self, receiver):
        """Test that a second request for the same book merges fields."""
        first = receiver.refresh_book_metadata("book-1", [NUMBER])
        second = receiver.refresh_book_metadata("book-1", [TITLE, NUMBER])

        assert second.id == first.id
        assert set(second.capabilities) == {NUMBER, TITLE}
        assert receiver.count_pending() == 1

    def test_different_books_queue_separately(self, receiver):
        receiver.refresh_book_metadata("book-1", [NUMBER])
        receiver.refresh_book_metadata("book-2", [NUMBER])

        assert [t.book_id for t in receiver.list_pending()] == ["book-1", "book-2"]

    def test_accepts_raw_values(self, receiver):
        """Test that capability strings are accepted."""
        task = receiver.refresh_book_metadata("book-1", ["number"])
        assert task.capabilities == [NUMBER]


class TestTaskProcessor:
    """Tests for running queued tasks."""

    def test_completes_tasks(self, db, receiver):
        """Test that handled tasks leave the pending list."""
        receiver.refresh_book_metadata("book-1", [NUMBER])
        seen = []

        result = TaskProcessor(db, max_retries=3).process_pending(
            {TaskType.REFRESH_BOOK_METADATA: lambda task: seen.append(task.book_id)}
        )

        assert result.completed == 1
        assert result.success
        assert seen == ["book-1"]
        assert receiver.count_pending() == 0

    def test_failed_task_is_retried(self, db, receiver):
        """Test that a failing task stays pending with its error."""
        receiver.refresh_book_metadata("book-1", [NUMBER])

        def boom(task):
            raise RuntimeError("metadata provider unavailable")

        result = TaskProcessor(db, max_retries=3).process_pending(
            {TaskType.REFRESH_BOOK_METADATA: boom}
        )

        assert result.retried == 1
        assert not result.success
        pending = receiver.list_pending()
        assert pending[0].retry_count == 1
        assert pending[0].last_error == "metadata provider unavailable"

    def test_gives_up_after_max_retries(self, db, receiver):
        """Test that a task fails permanently after max_retries attempts."""
        receiver.refresh_book_metadata("book-1", [NUMBER])
        processor = TaskProcessor(db, max_retries=2)

        def boom(task):
            raise RuntimeError("nope")

        processor.process_pending({TaskType.REFRESH_BOOK_METADATA: boom})
        result = processor.process_pending({TaskType.REFRESH_BOOK_METADATA: boom})

        assert result.failed == 1
        assert receiver.count_pending() == 0

    def test_skips_tasks_without_handler(self, db, receiver):
        receiver.refresh_book_metadata("book-1", [NUMBER])

        result = TaskProcessor(db, max_retries=3).process_pending({})

        assert result.skipped == 1
        assert receiver.count_pending() == 1
