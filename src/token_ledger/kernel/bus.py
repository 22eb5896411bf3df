"""
In-process Notification Bus

Committed ledger events are published here so external callers (CLI
reporting, monitoring hooks, tests) can observe Minted, Withdrawn,
ParameterChangeExecuted and friends without reading the event store.

Handlers only ever see events that were already appended - a rejected
operation publishes nothing.
"""

from collections import defaultdict
from typing import Callable

from token_ledger.kernel.events import Event
from token_ledger.kernel.logging import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[Event], None]

# Subscribing to this key receives every event type
ALL_EVENTS = "*"


class InProcessBus:
    """
    Simple synchronous in-process pub/sub

    Handlers are called in registration order on the thread that
    committed the operation.
    """

    def __init__(self) -> None:
        self._event_handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an event handler (can have multiple per event type)

        Args:
            event_type: Type of event to handle (e.g., "Minted"), or ALL_EVENTS
            handler: Callable receiving the committed event
        """
        self._event_handlers[event_type].append(handler)
        logger.debug(
            "Event handler registered",
            event_type=event_type,
            total_handlers=len(self._event_handlers[event_type]),
        )

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """Remove a previously registered handler; unknown handlers are ignored"""
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish_event(self, event: Event) -> None:
        """
        Publish an event to all registered handlers

        A failing handler is logged and skipped; the event is already
        committed, so the remaining subscribers still get notified.
        """
        handlers = [
            *self._event_handlers.get(event.event_type, []),
            *self._event_handlers.get(ALL_EVENTS, []),
        ]
        if not handlers:
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    error=str(e),
                    exc_info=True,
                )

    def publish_events(self, events: list[Event]) -> None:
        """Publish multiple events in commit order"""
        for event in events:
            self.publish_event(event)

    def get_event_types(self) -> list[str]:
        """Event types with at least one subscriber"""
        return [k for k, v in self._event_handlers.items() if v]

    def clear(self) -> None:
        """Remove all subscribers (useful for testing)"""
        self._event_handlers.clear()
