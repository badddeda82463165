"""Exception hierarchy for faults raised by collaborators.

Expected domain failures are never raised: they travel as
``WorkflowFailure`` values inside a ``Result``.  The exceptions below
are what repositories, the event bus and configuration loading raise
when something outside the domain goes wrong.  Command handlers catch
them at the async boundary and convert them into ``repository_error``.
"""


class OrderShippingError(Exception):
    """Base exception for all platform faults."""


# --- Configuration ---
class ConfigError(OrderShippingError):
    """Invalid or missing configuration."""


# --- Persistence ---
class RepositoryError(OrderShippingError):
    """A repository read or write failed."""


class StaleWriteError(RepositoryError):
    """A save carried a snapshot older than the one already stored."""

    def __init__(self, aggregate_id: str, stored: object, incoming: object):
        self.aggregate_id = aggregate_id
        self.stored = stored
        self.incoming = incoming
        super().__init__(
            f"Stale write for {aggregate_id}: stored updated_at={stored}, "
            f"incoming updated_at={incoming}"
        )


# --- Events ---
class EventPublishError(OrderShippingError):
    """The event bus could not accept an event."""
