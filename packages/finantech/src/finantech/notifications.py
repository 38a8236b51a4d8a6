"""Automatic reminders and overdue alerts for payables and receivables."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

import structlog

from finantech.dates import parse_date
from finantech.models import (
    Notification,
    NotificationType,
    Transaction,
    TransactionStatus,
    new_id,
)

logger = structlog.get_logger(__name__)


def make_notification(
    type: NotificationType,
    title: str,
    description: str,
    company: str,
    entity_id: str | None = None,
) -> Notification:
    return Notification(
        id=new_id("notif"),
        type=type,
        title=title,
        description=description,
        timestamp=datetime.now(UTC).isoformat(),
        is_read=False,
        entity_id=entity_id,
        company=company,
    )


def due_reminders(
    transactions: Iterable[Transaction], kind: str, today: date
) -> list[Notification]:
    """Reminders for scheduled items due tomorrow not yet notified today.

    ``kind`` is the Portuguese label used in the title (``pagamento`` or
    ``recebimento``).
    """
    tomorrow = today + timedelta(days=1)
    return [
        make_notification(
            NotificationType.PAYMENT_DUE_TODAY,
            f"Lembrete de {kind}",
            f'O item "{tx.description}" vence amanhã.',
            tx.company,
            entity_id=tx.id,
        )
        for tx in transactions
        if tx.status == TransactionStatus.SCHEDULED
        and tx.notification_email
        and parse_date(tx.scheduled_payment_date) == tomorrow
        and parse_date(tx.notification_sent_on) != today
    ]


def overdue_alerts(
    transactions: Iterable[Transaction],
    type: NotificationType,
    existing: Iterable[Notification],
    today: date,
) -> list[Notification]:
    """Alerts for pending items past due without an unread alert already."""
    unread_entities = {n.entity_id for n in existing if not n.is_read and n.entity_id}
    title = (
        "Conta a Pagar Vencida"
        if type == NotificationType.OVERDUE_PAYABLE
        else "Conta a Receber Vencida"
    )

    alerts = []
    for tx in transactions:
        if tx.status != TransactionStatus.PENDING or tx.id in unread_entities:
            continue
        due_date = parse_date(tx.due_date)
        if due_date is None or due_date >= today:
            continue
        alerts.append(
            make_notification(
                type,
                title,
                f'A transação "{tx.description}" venceu.',
                tx.company,
                entity_id=tx.id,
            )
        )
    return alerts


def scan_transactions(
    payables: Iterable[Transaction],
    receivables: Iterable[Transaction],
    existing: Iterable[Notification],
    today: date | None = None,
) -> list[Notification]:
    """Build the new notifications for one scan, newest first."""
    today = today or date.today()
    payables = list(payables)
    receivables = list(receivables)
    existing = list(existing)

    created = (
        due_reminders(payables, "pagamento", today)
        + due_reminders(receivables, "recebimento", today)
        + overdue_alerts(payables, NotificationType.OVERDUE_PAYABLE, existing, today)
        + overdue_alerts(receivables, NotificationType.OVERDUE_RECEIVABLE, existing, today)
    )

    if created:
        logger.info("notifications_created", count=len(created), date=today.isoformat())
    return list(reversed(created))


def mark_read(notifications: Iterable[Notification], notification_id: str) -> list[Notification]:
    return [
        n.model_copy(update={"is_read": True}) if n.id == notification_id else n
        for n in notifications
    ]


def mark_all_read(notifications: Iterable[Notification]) -> list[Notification]:
    return [n.model_copy(update={"is_read": True}) for n in notifications]
