"""Dashboard event feed."""

from finantech.events.publisher import (
    EventPublisher,
    get_publisher,
    start_publisher,
    stop_publisher,
)
from finantech.events.types import (
    DashboardEvent,
    EventType,
    collection_saved,
    error_event,
    notification_created,
    receivables_recalculated,
    reconciliation_confirmed,
)

__all__ = [
    "EventPublisher",
    "get_publisher",
    "start_publisher",
    "stop_publisher",
    "DashboardEvent",
    "EventType",
    "collection_saved",
    "error_event",
    "notification_created",
    "receivables_recalculated",
    "reconciliation_confirmed",
]
