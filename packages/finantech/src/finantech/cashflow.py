"""Monthly cash flow built from settled payables and receivables."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from finantech.dates import MONTH_NAMES_PT, add_months, parse_date
from finantech.models import CashFlowData, Transaction, TransactionStatus, TransactionType

CASH_FLOW_MONTHS = 6


def month_abbreviation(month: int) -> str:
    """Short upper-case Portuguese month name, e.g. ``JUL``."""
    return MONTH_NAMES_PT[month - 1][:3].upper()


def settled_transactions(transactions: Iterable[Transaction], company: str) -> list[Transaction]:
    """Paid transactions of a company that carry a payment date."""
    return [
        tx
        for tx in transactions
        if tx.company == company and tx.status == TransactionStatus.PAID and tx.payment_date
    ]


def cash_flow(
    transactions: Iterable[Transaction],
    company: str,
    today: date | None = None,
    months: int = CASH_FLOW_MONTHS,
) -> list[CashFlowData]:
    """Income, expenses and running balance for the last ``months`` months.

    Transactions are bucketed by payment date; the current month is the last
    entry. The balance starts at zero in the oldest month. Returns an empty
    list when no month saw any activity.
    """
    first_of_month = (today or date.today()).replace(day=1)
    totals: dict[tuple[int, int], dict[TransactionType, Decimal]] = {}
    for tx in settled_transactions(transactions, company):
        paid_on = parse_date(tx.payment_date)
        if paid_on is None:
            continue
        bucket = totals.setdefault((paid_on.year, paid_on.month), {})
        bucket[tx.type] = bucket.get(tx.type, Decimal("0")) + tx.amount

    balance = Decimal("0")
    data = []
    for offset in range(months - 1, -1, -1):
        month = add_months(first_of_month, -offset)
        bucket = totals.get((month.year, month.month), {})
        income = bucket.get(TransactionType.INCOME, Decimal("0"))
        expenses = bucket.get(TransactionType.EXPENSE, Decimal("0"))
        balance += income - expenses
        data.append(
            CashFlowData(
                month=month_abbreviation(month.month),
                receitas=income,
                despesas=expenses,
                saldo=balance,
            )
        )

    if not any(item.receitas or item.despesas for item in data):
        return []
    return data
