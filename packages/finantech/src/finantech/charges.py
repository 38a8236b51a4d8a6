"""Late-payment interest and fine for overdue transactions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from finantech.dates import parse_date
from finantech.models import InterestType, Transaction, TransactionStatus

CENTS = Decimal("0.01")
DAYS_PER_MONTH = Decimal("30")


@dataclass(frozen=True)
class Charges:
    """Interest and fine owed on top of the original amount."""

    interest: Decimal
    fine: Decimal
    total: Decimal


def _quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_charges(transaction: Transaction, today: date | None = None) -> Charges:
    """Compute interest and fine for an overdue transaction.

    Only ``Vencido`` transactions with a parseable due date before ``today``
    accrue charges. Monthly interest is prorated over 30-day months.
    """
    today = today or date.today()
    amount = transaction.amount
    no_charges = Charges(interest=Decimal("0"), fine=Decimal("0"), total=amount)

    if transaction.status != TransactionStatus.OVERDUE:
        return no_charges

    due_date = parse_date(transaction.due_date)
    if due_date is None or today <= due_date:
        return no_charges

    fine = Decimal("0")
    if transaction.fine_rate and transaction.fine_rate > 0:
        fine = amount * transaction.fine_rate / 100

    interest = Decimal("0")
    if transaction.interest_rate and transaction.interest_type:
        days_overdue = Decimal((today - due_date).days)
        rate = transaction.interest_rate / 100
        if transaction.interest_type == InterestType.DAILY:
            interest = amount * rate * days_overdue
        elif transaction.interest_type == InterestType.MONTHLY:
            interest = amount * rate * (days_overdue / DAYS_PER_MONTH)

    interest = _quantize(max(Decimal("0"), interest))
    fine = _quantize(max(Decimal("0"), fine))
    return Charges(interest=interest, fine=fine, total=amount + interest + fine)
