"""Tests for the JSON store and the root state container."""

from datetime import date
from decimal import Decimal

import pytest

from finantech.errors import DocumentValidationError, NotFoundError
from finantech.events import EventType
from finantech.models import NotificationType
from finantech.store import AppState

TODAY = date(2024, 7, 16)


@pytest.fixture
def events(state):
    """Events emitted by the state after the fixture is created."""
    received = []
    state.add_listener(received.append)
    return received


class TestJsonStore:
    """Tests for JsonStore."""

    def test_set_and_get(self, store):
        store.set("payables", [{"id": "p1", "description": "Aluguel"}])

        assert store.has("payables")
        assert store.path_for("payables").name == "finantech_payables.json"
        assert store.get("payables") == [{"id": "p1", "description": "Aluguel"}]

    def test_keeps_non_ascii_text(self, store):
        store.set("selected_company", "Filial São Paulo")

        assert "São Paulo" in store.path_for("selected_company").read_text(encoding="utf-8")

    def test_missing_key_returns_default(self, store):
        assert store.get("contacts") is None
        assert store.get("contacts", []) == []

    def test_unreadable_document_returns_default(self, store):
        """Test a corrupt document falls back to the default."""
        store.path_for("contacts").write_text("{not json", encoding="utf-8")

        assert store.get("contacts", []) == []

    def test_delete(self, store):
        store.set("contacts", [])
        store.delete("contacts")
        store.delete("contacts")

        assert not store.has("contacts")


class TestAppStateLoad:
    """Tests for AppState.load."""

    def test_empty_store_uses_seed(self, state):
        assert [c.name for c in state.companies] == [
            "Minha Empresa (Matriz)",
            "Filial São Paulo",
            "Filial Rio de Janeiro",
        ]
        assert len(state.payables) == 7
        assert len(state.receivables) == 8
        assert state.selected_company == "Minha Empresa (Matriz)"

    def test_reads_stored_documents(self, store):
        store.set("payables", [])
        store.set("selected_company", "Filial São Paulo")

        state = AppState.load(store)

        assert state.payables == []
        assert state.selected_company == "Filial São Paulo"

    def test_invalid_collection_falls_back_to_seed(self, store):
        store.set("payables", [{"id": "broken"}])

        state = AppState.load(store)

        assert len(state.payables) == 7

    def test_custom_seed(self, store):
        state = AppState.load(store, seed={})

        assert state.companies == []
        assert state.selected_company == ""

    def test_unknown_collection(self, state):
        with pytest.raises(KeyError):
            state.records("invoices")


class TestAppStateUpdate:
    """Tests for persistence and listeners."""

    def test_update_persists_and_emits(self, state, store, events):
        state.update("payables", state.payables[:1])

        assert len(store.get("payables")) == 1
        assert len(AppState.load(store).payables) == 1
        assert events[-1].event_type == EventType.COLLECTION_SAVED
        assert events[-1].data == {"collection": "payables", "count": 1}

    def test_update_accepts_wire_dicts(self, state, store):
        state.update("payables", [p.to_wire() for p in state.payables])

        assert state.payables[0].amount == Decimal("5500.00")
        assert store.get("payables")[0]["dueDate"] == "2024-07-05"

    def test_update_unknown_collection(self, state):
        with pytest.raises(KeyError):
            state.update("invoices", [])

    def test_listener_errors_do_not_propagate(self, state, events):
        def failing(event):
            raise RuntimeError("boom")

        state.add_listener(failing)
        state.update("payables", [])

        assert events[-1].event_type == EventType.COLLECTION_SAVED

    def test_failed_save_emits_error_and_keeps_records(self, state, store, events, monkeypatch):
        """Test a write failure is reported to listeners and re-raised."""
        before = len(state.payables)

        def failing_set(key, value):
            raise OSError("No space left on device")

        monkeypatch.setattr(store, "set", failing_set)

        with pytest.raises(OSError):
            state.update("payables", [])

        assert len(state.payables) == before
        assert events[-1].event_type == EventType.ERROR
        assert events[-1].data["details"] == {
            "collection": "payables",
            "error": "No space left on device",
        }

    def test_remove_listener(self, state, events):
        state.remove_listener(events.append)
        state.update("payables", [])

        assert events == []

    def test_select_company(self, state, store):
        state.select_company("Filial São Paulo")

        assert state.selected_company == "Filial São Paulo"
        assert store.get("selected_company") == "Filial São Paulo"

    def test_select_unknown_company(self, state):
        with pytest.raises(NotFoundError):
            state.select_company("Filial Curitiba")


class TestAdjustmentIndexes:
    """Tests for saving indexes and the rent recalculation they trigger."""

    def test_edit_used_index_regenerates_rent(self, state, events):
        """Test editing IGP-M regenerates the rent of the apartment using it."""
        saved, result = state.save_adjustment_index(
            index_id="idx1", name="IGP-M", value=10, today=TODAY
        )

        assert saved.value == Decimal("10")
        assert result.properties == ["prop1"]
        assert result.regenerated == 12
        assert len(state.receivables) == 20

        rent = [r for r in state.receivables if r.id.startswith("rent_prop1_")]
        assert rent[0].due_date == "2024-08-10"
        assert rent[0].amount == Decimal("4950.00")

        recalculated = [e for e in events if e.event_type == EventType.RECEIVABLES_RECALCULATED]
        assert len(recalculated) == 1
        assert recalculated[0].data["regenerated"] == 12

    def test_unused_index_leaves_receivables(self, state, events):
        _, result = state.save_adjustment_index(
            index_id="idx2", name="IPCA", value=4.2, today=TODAY
        )

        assert result.properties == []
        assert len(state.receivables) == 8
        assert all(e.event_type != EventType.RECEIVABLES_RECALCULATED for e in events)

    def test_create_and_delete(self, state):
        saved, _ = state.save_adjustment_index(name="INCC", value="3.1", today=TODAY)

        assert saved.id.startswith("idx")
        assert saved.company == "Minha Empresa (Matriz)"
        assert len(state.adjustment_indexes) == 4

        state.delete_adjustment_index(saved.id)

        assert [i.id for i in state.adjustment_indexes] == ["idx1", "idx2", "idx3"]


class TestReconciliation:
    """Tests for applying a reconciliation session."""

    def test_apply_manual_match(self, state, store, events):
        session = state.reconciliation_session()
        session.match_manually("bt1", "st1")

        assert state.apply_reconciliation(session) == 1

        matched = {tx.id for tx in state.system_transactions if tx.matched}
        assert matched == {"st1"}
        assert store.get("system_transactions")[0]["matched"] is True
        assert events[-1].event_type == EventType.RECONCILIATION_CONFIRMED
        assert events[-1].data["bank_tx_ids"] == ["bt1"]

    def test_apply_twice_counts_once(self, state):
        session = state.reconciliation_session()
        session.match_manually("bt1", "st1")
        state.apply_reconciliation(session)

        assert state.apply_reconciliation(session) == 0

    def test_session_for_other_company(self, state):
        session = state.reconciliation_session("Filial Rio de Janeiro")

        assert [tx.id for tx in session.unmatched_bank] == ["bt6"]
        assert [tx.id for tx in session.unmatched_system] == ["st6"]


class TestNotifications:
    """Tests for the notification scan on the state."""

    def test_refresh_creates_overdue_alerts(self, state, events):
        created = state.refresh_notifications(TODAY)

        assert sorted(n.entity_id for n in created) == ["p3", "p7", "r6"]
        assert state.notifications[: len(created)] == created
        assert len(state.notifications) == 5
        assert sum(e.event_type == EventType.NOTIFICATION_CREATED for e in events) == 3

    def test_refresh_twice_same_day(self, state):
        state.refresh_notifications(TODAY)

        assert state.refresh_notifications(TODAY) == []

    def test_reminder_stamps_item(self, state):
        payables = [
            p.model_copy(
                update={
                    "scheduled_payment_date": "2024-07-17",
                    "notification_email": "financeiro@empresa.com",
                }
            )
            if p.id == "p4"
            else p
            for p in state.payables
        ]
        state.update("payables", payables)

        created = state.refresh_notifications(TODAY)

        reminders = [n for n in created if n.type == NotificationType.PAYMENT_DUE_TODAY]
        assert [n.entity_id for n in reminders] == ["p4"]
        p4 = next(p for p in state.payables if p.id == "p4")
        assert p4.notification_sent_on == "2024-07-16"

    def test_mark_read(self, state):
        state.mark_notification_read("notif2")

        assert all(n.is_read for n in state.notifications)

        created = state.refresh_notifications(TODAY)
        state.mark_all_notifications_read()

        assert created
        assert all(n.is_read for n in state.notifications)


class TestContactsAndCompanies:
    """Tests for contact and company registration."""

    def test_save_contact(self, state):
        contact = state.save_contact(
            {"name": "Maria Souza", "type": "Cliente", "document": "52998224725"}
        )

        assert contact.id.startswith("contact")
        assert contact.document == "529.982.247-25"
        assert contact.company == "Minha Empresa (Matriz)"
        assert state.contacts[-1] == contact

    def test_save_contact_replaces_existing(self, state):
        state.save_contact(
            {
                "id": "contact1",
                "name": "Cliente A Soluções S.A.",
                "type": "Cliente",
                "document": "11.222.333/0001-81",
            }
        )

        assert len(state.contacts) == 10
        assert state.contacts[0].name == "Cliente A Soluções S.A."

    def test_save_contact_invalid_document(self, state):
        with pytest.raises(DocumentValidationError):
            state.save_contact({"name": "X", "type": "Cliente", "document": "111.111.111-11"})

        assert len(state.contacts) == 10

    def test_save_company(self, state):
        company = state.save_company({"name": "Filial Curitiba", "cnpj": "11222333000181"})

        assert company.id.startswith("comp")
        assert company.cnpj == "11.222.333/0001-81"

        state.select_company("Filial Curitiba")
        assert state.selected_company == "Filial Curitiba"


class TestCashFlow:
    """Tests for the state's cash flow view."""

    def test_defaults_to_selected_company(self, state):
        data = state.cash_flow(today=TODAY)

        assert [item.month for item in data][-1] == "JUL"
        assert data[-1].receitas > 0

    def test_company_without_activity(self, state):
        assert state.cash_flow("Filial Rio de Janeiro", date(2030, 1, 1)) == []
