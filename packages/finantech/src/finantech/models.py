"""Domain records shared by the store, the domain services and the AI proxy.

Records use camelCase aliases on the wire so the same JSON documents the
dashboard persists can be validated here unchanged. Unknown fields are kept
(``extra="allow"``) so attachments, invoice details and other view-only
data survive a load/save cycle.
"""

from __future__ import annotations

import threading
import time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

# Percentages (interest, fine, index values) travel as JSON numbers too.
Rate = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

RENT_CATEGORY = "Aluguéis"
RENT_COST_CENTER = "Imobiliário"

ModelT = TypeVar("ModelT", bound="FinantechModel")

_id_lock = threading.Lock()
_last_id_ms = 0


def new_id(prefix: str = "") -> str:
    """Return a locally generated id based on the current time in milliseconds.

    Ids are strictly increasing within the process so records created in the
    same millisecond do not collide.
    """
    global _last_id_ms
    with _id_lock:
        now_ms = int(time.time() * 1000)
        _last_id_ms = max(now_ms, _last_id_ms + 1)
        return f"{prefix}{_last_id_ms}"


class FinantechModel(BaseModel):
    """Base record with camelCase wire aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape used by the store and the HTTP API."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls: type[ModelT], data: dict[str, Any]) -> ModelT:
        return cls.model_validate(data)


def to_wire_list(records: list[FinantechModel]) -> list[dict[str, Any]]:
    return [record.to_wire() for record in records]


def from_wire_list(model: type[ModelT], items: list[dict[str, Any]]) -> list[ModelT]:
    return [model.model_validate(item) for item in items]


# === Enumerations ===


class TransactionStatus(str, Enum):
    PENDING = "Pendente"
    PAID = "Pago"
    OVERDUE = "Vencido"
    SCHEDULED = "Agendado"


class TransactionType(str, Enum):
    INCOME = "receita"
    EXPENSE = "despesa"


class InterestType(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


class BankEntryType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class PropertyStatus(str, Enum):
    AVAILABLE = "Disponível"
    RENTED = "Alugado"
    SOLD = "Vendido"
    FOR_SALE = "À Venda"


class NotificationType(str, Enum):
    OVERDUE_PAYABLE = "overdue_payable"
    OVERDUE_RECEIVABLE = "overdue_receivable"
    ACCOUNTANT_REQUEST = "accountant_request"
    PAYMENT_DUE_TODAY = "payment_due_today"
    INFO = "info"


class FunnelStage(str, Enum):
    NOTIFICATION = "Notificação"
    NEGOTIATION = "Negociação"
    AGREEMENT = "Acordo"
    LEGAL_ACTION = "Ação Jurídica"


# === Companies, users and contacts ===


class Address(FinantechModel):
    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


class Company(FinantechModel):
    id: str
    name: str
    cnpj: str
    address: Address = Field(default_factory=Address)
    ie: str | None = None
    plan: str = "Basic"
    enabled_modules: list[str] = Field(default_factory=list)


class User(FinantechModel):
    id: str
    name: str
    email: str
    role: str
    avatar: str = ""
    accessible_companies: list[str] = Field(default_factory=list)
    permissions: dict[str, dict[str, bool]] = Field(default_factory=dict)


class ContactBankDetails(FinantechModel):
    bank_name: str
    agency: str
    account: str
    pix_key: str | None = None


class Contact(FinantechModel):
    id: str
    name: str
    type: str
    document: str
    email: str = ""
    phone: str = ""
    company: str
    address: Address = Field(default_factory=Address)
    tax_regime: str = "Simples Nacional"
    bank_details: ContactBankDetails | None = None
    ie: str | None = None


class CostCenter(FinantechModel):
    id: str
    name: str
    description: str = ""
    budget: Money | None = None
    company: str


class Category(FinantechModel):
    id: str
    name: str
    type: TransactionType
    company: str


# === Payables and receivables ===


class Recurrence(FinantechModel):
    interval: str
    end_date: str | None = None


class Transaction(FinantechModel):
    """A payable (``despesa``) or receivable (``receita``).

    ``due_date`` and the other date fields are strings in either
    ``DD/MM/YYYY`` or ``YYYY-MM-DD``; see :mod:`finantech.dates`.
    """

    id: str
    description: str
    category: str
    amount: Money
    due_date: str
    payment_date: str | None = None
    scheduled_payment_date: str | None = None
    notification_email: str | None = None
    notification_sent_on: str | None = None
    status: TransactionStatus
    type: TransactionType
    recurrence: Recurrence | None = None
    company: str
    cost_center: str = ""
    bank_account: str = ""
    payment_method: str | None = None
    interest_rate: Rate | None = None
    interest_type: InterestType | None = None
    fine_rate: Rate | None = None
    fixed_or_variable: str | None = None
    contact_id: str | None = None
    property_id: str | None = None
    project_id: str | None = None


# === Banking ===


class BankAccount(FinantechModel):
    id: str
    name: str
    agency: str = ""
    account: str = ""
    balance: Money = Decimal("0")
    logo_url: str = ""
    company: str


class BankTransaction(FinantechModel):
    """A bank statement entry."""

    id: str
    bank_account_id: str
    date: str
    description: str
    amount: Money
    type: BankEntryType


class SystemTransaction(BankTransaction):
    """A ledger entry awaiting reconciliation against the statement."""

    matched: bool = False
    company: str


class MatchSuggestion(FinantechModel):
    """A candidate statement/ledger pair proposed by the model."""

    bank_tx_id: str
    system_tx_id: str
    reason: str = ""


# === Properties and adjustment indexes ===


class AdjustmentIndex(FinantechModel):
    id: str
    name: str
    description: str = ""
    company: str
    value: Rate  # percent, e.g. 4.5 for 4.5%


class RentalDetails(FinantechModel):
    tenant_id: str = ""
    rent_amount: Money = Decimal("0")
    contract_start: str = ""
    contract_end: str = ""
    payment_day: int = 0
    adjustment_index_id: str | None = None


class SaleDetails(FinantechModel):
    price: Money


class Property(FinantechModel):
    id: str
    name: str
    address: Address = Field(default_factory=Address)
    type: str
    status: PropertyStatus
    owner_id: str = ""
    rental_details: RentalDetails | None = None
    sale_details: SaleDetails | None = None
    company: str
    iptu_amount: Money | None = None
    condo_amount: Money | None = None
    iptu_due_date: int | None = None
    condo_due_date: int | None = None


# === Notifications ===


class Notification(FinantechModel):
    id: str
    type: NotificationType
    title: str
    description: str
    timestamp: str
    is_read: bool = False
    entity_id: str | None = None
    company: str


# === Dashboard and CRM payloads ===


class CashFlowData(FinantechModel):
    month: str
    receitas: Money
    despesas: Money
    saldo: Money


class CommunicationHistory(FinantechModel):
    id: str
    date: str
    type: str  # email | sms | call | whatsapp
    summary: str


class DebtorCustomer(FinantechModel):
    id: str
    name: str
    avatar: str = ""
    total_debt: Money
    last_due_date: str
    status: FunnelStage
    communication_history: list[CommunicationHistory] = Field(default_factory=list)
    company: str
    has_open_invoice: bool = False
