"""In-memory event bus.

Design goals
------------
1.  **Type-routed dispatching**: subscribers register for a concrete
    ``DomainEvent`` subclass.  When an event is published the bus routes
    it to every handler whose registered type matches ``type(event)``.
2.  **Fire-and-forget for publishers**: a failing subscriber never
    fails ``publish()``.  The error is logged, counted and the event is
    kept as a dead letter.
3.  **Deterministic**: handlers run in subscription order, one after
    another, inside the publisher's task.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from order_shipping.core.errors import EventPublishError
from order_shipping.domain.events import DomainEvent

logger = logging.getLogger(__name__)

# Type alias for async event handlers.
EventHandler = Callable[[DomainEvent], Awaitable[None]]


class InMemoryEventBus:
    """Deterministic, in-process event bus.

    Parameters
    ----------
    require_running
        When ``True``, ``publish()`` raises ``EventPublishError`` unless
        ``start()`` has been awaited and ``stop()`` has not.
    """

    def __init__(self, *, require_running: bool = False) -> None:
        self._handlers: dict[
            type[DomainEvent], list[EventHandler]
        ] = defaultdict(list)
        self._history: list[DomainEvent] = []
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[tuple[DomainEvent, str]] = []
        self._messages_processed: int = 0
        self._running = False
        self._require_running = require_running

    # -- Lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    # -- Core API ----------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Publish *event* to all subscribed handlers.

        Raises
        ------
        EventPublishError
            If ``require_running`` is set and the bus is not running.
        """
        event_cls = type(event)
        if self._require_running and not self._running:
            raise EventPublishError(
                f"event bus is stopped; cannot publish {event_cls.__name__}"
            )

        self._history.append(event)
        logger.debug("Published %s for %s", event.event_type, event.aggregate_id)

        for handler in self._handlers.get(event_cls, []):
            try:
                await handler(event)
                self._messages_processed += 1
            except Exception as exc:
                key = event_cls.__name__
                self._error_counts[key] += 1
                self._dead_letters.append((event, str(exc)))
                logger.exception(
                    "Handler error on %s: %s", key, exc,
                )

    def subscribe(
        self,
        event_type: type[DomainEvent],
        handler: EventHandler,
    ) -> None:
        """Register *handler* for *event_type*."""
        self._handlers[event_type].append(handler)

    # -- Observability -----------------------------------------------------

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]:
        """Return published events, optionally filtered."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if type(e) is event_type]

    def clear_history(self) -> None:
        """Clear the event history (testing helper)."""
        self._history.clear()

    def get_error_counts(self) -> dict[str, int]:
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[tuple[DomainEvent, str]]:
        return list(self._dead_letters)

    @property
    def messages_processed(self) -> int:
        return self._messages_processed
