"""Event type definitions for the dashboard event feed.

Events are published to connected dashboard clients so open views can
refresh after the root state changes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Types of events published to dashboard clients."""

    # State container
    COLLECTION_SAVED = "collection.saved"

    # Notification center
    NOTIFICATION_CREATED = "notification.created"

    # Reconciliation
    RECONCILIATION_CONFIRMED = "reconciliation.confirmed"

    # Rent adjustment
    RECEIVABLES_RECALCULATED = "receivables.recalculated"

    # Errors
    ERROR = "error"


@dataclass
class DashboardEvent:
    """Base event structure for all dashboard events.

    ``company`` scopes the event; None means it concerns every company.
    """

    event_type: EventType
    company: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: UUID = field(default_factory=uuid4)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary for JSON transmission."""
        return {
            "id": str(self.event_id),
            "type": self.event_type.value,
            "company": self.company,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# Factory functions for creating events


def collection_saved(collection: str, count: int) -> DashboardEvent:
    """Create an event for a persisted collection."""
    return DashboardEvent(
        event_type=EventType.COLLECTION_SAVED,
        data={"collection": collection, "count": count},
    )


def notification_created(notification: dict[str, Any]) -> DashboardEvent:
    """Create an event carrying a new notification in wire format."""
    return DashboardEvent(
        event_type=EventType.NOTIFICATION_CREATED,
        company=notification.get("company"),
        data={"notification": notification},
    )


def reconciliation_confirmed(
    company: str, bank_ids: list[str], system_ids: list[str]
) -> DashboardEvent:
    """Create an event for applied reconciliation pairs."""
    return DashboardEvent(
        event_type=EventType.RECONCILIATION_CONFIRMED,
        company=company,
        data={
            "count": len(system_ids),
            "bank_tx_ids": bank_ids,
            "system_tx_ids": system_ids,
            "message": f"{len(system_ids)} transações foram conciliadas com sucesso!",
        },
    )


def receivables_recalculated(
    company: str | None, index_id: str, regenerated: int, properties: list[str]
) -> DashboardEvent:
    """Create an event for regenerated rent receivables."""
    return DashboardEvent(
        event_type=EventType.RECEIVABLES_RECALCULATED,
        company=company,
        data={
            "index_id": index_id,
            "regenerated": regenerated,
            "properties": properties,
            "title": "Recálculo Automático",
            "message": (
                f"O valor de {regenerated} aluguéis futuros foi recalculado "
                "com base no novo valor do índice."
            ),
        },
    )


def error_event(message: str, details: dict[str, Any] | None = None) -> DashboardEvent:
    """Create an error event."""
    return DashboardEvent(
        event_type=EventType.ERROR,
        data={"message": message, "details": details or {}},
    )
