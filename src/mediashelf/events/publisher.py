"""In-process fan-out of domain events to subscribers."""

import threading
from typing import Callable, Optional

from ..utils.logging import get_logger
from .events import DomainEvent

LOG = get_logger("mediashelf.events")

EventHandler = Callable[[DomainEvent], None]


class EventPublisher:
    """Delivers events to subscribed handlers.

    Handlers run synchronously, in subscription order, on the publishing
    thread. A handler that raises is logged and skipped; the other handlers
    still receive the event and the publisher never raises.
    """

    def __init__(self):
        """Initialize an empty publisher."""
        self._lock = threading.Lock()
        self._subscriptions: list[tuple[EventHandler, Optional[tuple[type, ...]]]] = []

    def subscribe(self, handler: EventHandler, *event_types: type) -> None:
        """Register a handler.

        Args:
            handler: Callable taking the event
            event_types: Event classes to receive; all events if omitted
        """
        with self._lock:
            self._subscriptions.append((handler, event_types or None))

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove every subscription of a handler."""
        with self._lock:
            self._subscriptions = [
                (h, types) for h, types in self._subscriptions if h != handler
            ]

    def publish(self, event: DomainEvent) -> None:
        """Deliver an event to every matching handler."""
        with self._lock:
            subscriptions = list(self._subscriptions)

        LOG.debug("Publishing %s", event)
        for handler, event_types in subscriptions:
            if event_types is not None and not isinstance(event, event_types):
                continue
            try:
                handler(event)
            except Exception:
                LOG.error(
                    "Event handler %r failed on %s", handler, type(event).__name__, exc_info=True
                )
