"""Persistence service and root state container.

Every collection is stored as one JSON document named ``finantech_<key>``
under the data directory. Writes overwrite the whole document; there is no
versioning or migration. :class:`AppState` holds the loaded collections,
persists each one as soon as it changes and notifies listeners (usually the
dashboard event publisher) after every save.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from finantech.cashflow import cash_flow
from finantech.config import get_settings
from finantech.config.seed_loader import load_seed_data
from finantech.documents import require_valid_document
from finantech.errors import NotFoundError
from finantech.events.types import (
    DashboardEvent,
    collection_saved,
    error_event,
    notification_created,
    receivables_recalculated,
    reconciliation_confirmed,
)
from finantech.models import (
    AdjustmentIndex,
    BankAccount,
    BankTransaction,
    CashFlowData,
    Category,
    Company,
    Contact,
    CostCenter,
    DebtorCustomer,
    FinantechModel,
    Notification,
    NotificationType,
    Property,
    SystemTransaction,
    Transaction,
    User,
    from_wire_list,
    new_id,
    to_wire_list,
)
from finantech.notifications import mark_all_read, mark_read, scan_transactions
from finantech.reconciliation import ReconciliationSession
from finantech.rent import (
    RecalculationResult,
    delete_adjustment_index,
    recalculate_for_index,
    save_adjustment_index,
)

logger = structlog.get_logger(__name__)

KEY_PREFIX = "finantech_"
SELECTED_COMPANY_KEY = "selected_company"

COLLECTIONS: dict[str, type[FinantechModel]] = {
    "companies": Company,
    "users": User,
    "contacts": Contact,
    "properties": Property,
    "cost_centers": CostCenter,
    "categories": Category,
    "adjustment_indexes": AdjustmentIndex,
    "payables": Transaction,
    "receivables": Transaction,
    "bank_accounts": BankAccount,
    "bank_transactions": BankTransaction,
    "system_transactions": SystemTransaction,
    "notifications": Notification,
    "debtors": DebtorCustomer,
}


class JsonStore:
    """Key/value store keeping one JSON file per key."""

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else get_settings().data_dir
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logger.bind(component="json_store", data_dir=str(self.data_dir))

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{KEY_PREFIX}{key}.json"

    def has(self, key: str) -> bool:
        return self.path_for(key).exists()

    def get(self, key: str, default: Any = None) -> Any:
        """Read a value, falling back to ``default`` when missing or unreadable."""
        path = self.path_for(key)
        if not path.exists():
            return default

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self._logger.warning("store_read_failed", key=key, error=str(e))
            return default

    def set(self, key: str, value: Any) -> None:
        """Overwrite the value stored under ``key``."""
        path = self.path_for(key)
        try:
            path.write_text(json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            self._logger.error("store_write_failed", key=key, error=str(e))
            raise

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class AppState:
    """Root container holding every collection of the application.

    Usage:
        state = AppState.load(JsonStore())
        state.add_listener(get_publisher().publish)
        state.update("payables", payables)
    """

    def __init__(self, store: JsonStore):
        self._store = store
        self._collections: dict[str, list[Any]] = {name: [] for name in COLLECTIONS}
        self._listeners: list[Callable[[DashboardEvent], None]] = []
        self.selected_company = ""

    @classmethod
    def load(
        cls, store: JsonStore, seed: dict[str, list[dict[str, Any]]] | None = None
    ) -> AppState:
        """Load every collection, using the seed data for missing documents."""
        seed = seed if seed is not None else load_seed_data()
        state = cls(store)

        for name, model in COLLECTIONS.items():
            default = seed.get(name, [])
            raw = store.get(name, default)
            try:
                state._collections[name] = from_wire_list(model, raw)
            except (ValidationError, TypeError) as e:
                logger.warning("collection_invalid", collection=name, error=str(e))
                state._collections[name] = from_wire_list(model, default)

        companies = state.companies
        state.selected_company = store.get(
            SELECTED_COMPANY_KEY, companies[0].name if companies else ""
        )

        logger.info(
            "state_loaded",
            collections={name: len(records) for name, records in state._collections.items()},
            selected_company=state.selected_company,
        )
        return state

    # === Listeners ===

    def add_listener(self, listener: Callable[[DashboardEvent], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[DashboardEvent], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: DashboardEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error("state_listener_error", event_type=event.event_type.value, error=str(e))

    # === Collections ===

    def records(self, collection: str) -> list[Any]:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")
        return list(self._collections[collection])

    def update(self, collection: str, records: Iterable[FinantechModel]) -> None:
        """Replace a whole collection and persist it immediately."""
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")

        model = COLLECTIONS[collection]
        records = [r if isinstance(r, model) else model.model_validate(r) for r in records]
        try:
            self._store.set(collection, to_wire_list(records))
        except OSError as e:
            self._emit(
                error_event(
                    f"Não foi possível salvar {collection}.",
                    {"collection": collection, "error": str(e)},
                )
            )
            raise
        self._collections[collection] = records

        logger.debug("collection_saved", collection=collection, count=len(records))
        self._emit(collection_saved(collection, len(records)))

    def select_company(self, name: str) -> None:
        if not any(c.name == name for c in self.companies):
            raise NotFoundError(f"Company {name} not found")
        self.selected_company = name
        self._store.set(SELECTED_COMPANY_KEY, name)

    @property
    def companies(self) -> list[Company]:
        return self.records("companies")

    @property
    def contacts(self) -> list[Contact]:
        return self.records("contacts")

    @property
    def properties(self) -> list[Property]:
        return self.records("properties")

    @property
    def adjustment_indexes(self) -> list[AdjustmentIndex]:
        return self.records("adjustment_indexes")

    @property
    def payables(self) -> list[Transaction]:
        return self.records("payables")

    @property
    def receivables(self) -> list[Transaction]:
        return self.records("receivables")

    @property
    def bank_accounts(self) -> list[BankAccount]:
        return self.records("bank_accounts")

    @property
    def bank_transactions(self) -> list[BankTransaction]:
        return self.records("bank_transactions")

    @property
    def system_transactions(self) -> list[SystemTransaction]:
        return self.records("system_transactions")

    @property
    def notifications(self) -> list[Notification]:
        return self.records("notifications")

    # === Adjustment indexes ===

    def save_adjustment_index(
        self,
        *,
        name: str,
        value: Decimal | float | str,
        description: str = "",
        index_id: str | None = None,
        today: date | None = None,
    ) -> tuple[AdjustmentIndex, RecalculationResult]:
        """Save an index, then regenerate the rent receivables that depend on it."""
        indexes, saved = save_adjustment_index(
            self.adjustment_indexes,
            name=name,
            value=value,
            company=self.selected_company,
            description=description,
            index_id=index_id,
        )
        self.update("adjustment_indexes", indexes)

        result = recalculate_for_index(
            saved.id, self.properties, indexes, self.receivables, today
        )
        if result.properties:
            self.update("receivables", result.receivables)
            self._emit(
                receivables_recalculated(
                    self.selected_company, saved.id, result.regenerated, result.properties
                )
            )
        return saved, result

    def delete_adjustment_index(self, index_id: str) -> None:
        self.update(
            "adjustment_indexes", delete_adjustment_index(self.adjustment_indexes, index_id)
        )

    # === Reconciliation ===

    def reconciliation_session(self, company: str | None = None) -> ReconciliationSession:
        return ReconciliationSession(
            self.bank_transactions,
            self.system_transactions,
            self.bank_accounts,
            company or self.selected_company,
        )

    def apply_reconciliation(self, session: ReconciliationSession) -> int:
        """Persist the ledger entries a session paired; returns how many."""
        already_matched = {tx.id for tx in self.system_transactions if tx.matched}
        updated = session.system_transactions
        newly_matched = [tx.id for tx in updated if tx.matched and tx.id not in already_matched]
        if not newly_matched:
            return 0

        self.update("system_transactions", updated)
        self._emit(
            reconciliation_confirmed(
                session.company, sorted(session.hidden_bank_ids), newly_matched
            )
        )
        return len(newly_matched)

    # === Cash flow ===

    def cash_flow(
        self, company: str | None = None, today: date | None = None
    ) -> list[CashFlowData]:
        """Last six months of settled payables and receivables for a company."""
        return cash_flow(
            self.payables + self.receivables, company or self.selected_company, today
        )

    # === Notifications ===

    def refresh_notifications(self, today: date | None = None) -> list[Notification]:
        """Scan payables and receivables, storing any new notifications.

        Items that received a due-date reminder are stamped with today's date
        so later scans on the same day skip them.
        """
        today = today or date.today()
        created = scan_transactions(
            self.payables, self.receivables, self.notifications, today
        )
        if not created:
            return []

        self.update("notifications", created + self.notifications)

        reminded = {
            n.entity_id for n in created if n.type == NotificationType.PAYMENT_DUE_TODAY
        }
        if reminded:
            stamp = today.isoformat()
            for collection in ("payables", "receivables"):
                records = self.records(collection)
                if any(tx.id in reminded for tx in records):
                    self.update(
                        collection,
                        [
                            tx.model_copy(update={"notification_sent_on": stamp})
                            if tx.id in reminded
                            else tx
                            for tx in records
                        ],
                    )

        for notification in created:
            self._emit(notification_created(notification.to_wire()))
        return created

    def mark_notification_read(self, notification_id: str) -> None:
        self.update("notifications", mark_read(self.notifications, notification_id))

    def mark_all_notifications_read(self) -> None:
        self.update("notifications", mark_all_read(self.notifications))

    # === Contacts and companies ===

    def save_contact(self, data: dict[str, Any]) -> Contact:
        """Create or replace a contact after validating its CPF/CNPJ."""
        data = dict(data)
        data["document"] = require_valid_document(data.get("document", ""), "document")
        data.setdefault("company", self.selected_company)
        if not data.get("id"):
            data["id"] = new_id("contact")

        contact = Contact.model_validate(data)
        self.update("contacts", _upsert(self.contacts, contact))
        return contact

    def save_company(self, data: dict[str, Any]) -> Company:
        """Create or replace a company after validating its CNPJ."""
        data = dict(data)
        data["cnpj"] = require_valid_document(data.get("cnpj", ""), "cnpj")
        if not data.get("id"):
            data["id"] = new_id("comp")

        company = Company.model_validate(data)
        self.update("companies", _upsert(self.companies, company))
        return company


def _upsert(records: list[Any], record: Any) -> list[Any]:
    for position, existing in enumerate(records):
        if existing.id == record.id:
            return records[:position] + [record] + records[position + 1 :]
    return records + [record]
