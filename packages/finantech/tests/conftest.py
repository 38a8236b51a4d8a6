"""Pytest configuration and fixtures."""

import os
from datetime import date
from decimal import Decimal

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("API_KEY", "test-key")
os.environ.setdefault("GEMINI_MODEL", "gemini-2.5-flash")

from finantech.models import (  # noqa: E402
    BankAccount,
    BankEntryType,
    BankTransaction,
    SystemTransaction,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from finantech.store import AppState, JsonStore  # noqa: E402

TODAY = date(2024, 7, 16)


@pytest.fixture
def today():
    """Fixed reference date for date-dependent rules."""
    return TODAY


@pytest.fixture
def store(tmp_path):
    """JSON store writing into a temporary directory."""
    return JsonStore(tmp_path / "data")


@pytest.fixture
def state(store):
    """Application state loaded from the packaged seed data."""
    return AppState.load(store)


@pytest.fixture
def make_transaction():
    """Factory for payables and receivables with sensible defaults."""

    def _make(**overrides):
        data = {
            "id": "t1",
            "description": "Fornecedor de Café XYZ",
            "category": "Suprimentos",
            "amount": Decimal("1000.00"),
            "due_date": "2024-07-10",
            "status": TransactionStatus.PENDING,
            "type": TransactionType.EXPENSE,
            "company": "Minha Empresa (Matriz)",
        }
        data.update(overrides)
        return Transaction(**data)

    return _make


@pytest.fixture
def bank_accounts():
    return [
        BankAccount(id="acc1", name="Banco do Brasil", balance=Decimal("1000"), company="Matriz"),
        BankAccount(id="acc2", name="Itaú Unibanco", balance=Decimal("500"), company="Filial"),
    ]


@pytest.fixture
def bank_transactions():
    return [
        BankTransaction(
            id="bt1",
            bank_account_id="acc1",
            date="2024-07-01",
            description="TEF 12345 CLIENTE A",
            amount=Decimal("15000.00"),
            type=BankEntryType.CREDIT,
        ),
        BankTransaction(
            id="bt2",
            bank_account_id="acc1",
            date="2024-07-05",
            description="PAGTO ALUGUEL IMOVEL",
            amount=Decimal("5500.00"),
            type=BankEntryType.DEBIT,
        ),
        BankTransaction(
            id="bt3",
            bank_account_id="acc1",
            date="2024-07-10",
            description="PIX SOFTWARE LTDA",
            amount=Decimal("750.00"),
            type=BankEntryType.DEBIT,
        ),
        BankTransaction(
            id="bt9",
            bank_account_id="acc2",
            date="2024-07-12",
            description="TAXA BANCARIA",
            amount=Decimal("45.90"),
            type=BankEntryType.DEBIT,
        ),
    ]


@pytest.fixture
def system_transactions():
    return [
        SystemTransaction(
            id="st1",
            bank_account_id="acc1",
            date="2024-07-01",
            description="Projeto Cliente A",
            amount=Decimal("15000.00"),
            type=BankEntryType.CREDIT,
            company="Matriz",
        ),
        SystemTransaction(
            id="st2",
            bank_account_id="acc1",
            date="2024-07-05",
            description="Aluguel do Escritório",
            amount=Decimal("5500.00"),
            type=BankEntryType.DEBIT,
            company="Matriz",
        ),
        SystemTransaction(
            id="st3",
            bank_account_id="acc1",
            date="2024-07-10",
            description="Software de Gestão (SaaS)",
            amount=Decimal("750.00"),
            type=BankEntryType.DEBIT,
            company="Matriz",
        ),
        SystemTransaction(
            id="st9",
            bank_account_id="acc2",
            date="2024-07-12",
            description="Tarifa bancária",
            amount=Decimal("45.90"),
            type=BankEntryType.DEBIT,
            company="Filial",
        ),
    ]
