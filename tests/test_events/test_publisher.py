"""Tests for EventPublisher."""

from dataclasses import FrozenInstanceError

import pytest

from mediashelf.events import EventPublisher, ReadProgressSeriesChanged, ReadProgressSeriesDeleted


def changed(series_id="s1"):
    return ReadProgressSeriesChanged(series_id=series_id, user_id="alice")


class TestEventPublisher:
    """Tests for subscribing and publishing."""

    def test_delivers_in_subscription_order(self):
        publisher = EventPublisher()
        calls = []
        publisher.subscribe(lambda e: calls.append("first"))
        publisher.subscribe(lambda e: calls.append("second"))

        publisher.publish(changed())

        assert calls == ["first", "second"]

    def test_filters_by_event_type(self):
        """Test that typed subscriptions only see matching events."""
        publisher = EventPublisher()
        seen = []
        publisher.subscribe(seen.append, ReadProgressSeriesDeleted)

        publisher.publish(changed())
        deleted = ReadProgressSeriesDeleted(series_id="s1", user_id="alice")
        publisher.publish(deleted)

        assert seen == [deleted]

    def test_failing_handler_does_not_stop_others(self, caplog):
        """Test that a raising handler is logged and skipped."""
        publisher = EventPublisher()
        seen = []

        def broken(event):
            raise ValueError("subscriber bug")

        publisher.subscribe(broken)
        publisher.subscribe(seen.append)

        publisher.publish(changed())

        assert len(seen) == 1
        assert "ReadProgressSeriesChanged" in caplog.text

    def test_unsubscribe(self):
        publisher = EventPublisher()
        seen = []
        publisher.subscribe(seen.append)
        publisher.unsubscribe(seen.append)

        publisher.publish(changed())

        assert seen == []

    def test_events_are_immutable(self):
        event = changed()
        with pytest.raises(FrozenInstanceError):
            event.series_id = "other"
