"""Bank account balances."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from finantech.models import BankAccount, BankEntryType, BankTransaction


def company_account_ids(accounts: Iterable[BankAccount], company: str) -> set[str]:
    """Ids of the bank accounts owned by a company."""
    return {account.id for account in accounts if account.company == company}


def transactions_for_account(
    account: BankAccount, transactions: Iterable[BankTransaction]
) -> list[BankTransaction]:
    return [tx for tx in transactions if tx.bank_account_id == account.id]


def running_balance(account: BankAccount, transactions: Iterable[BankTransaction]) -> Decimal:
    """Opening balance plus credits minus debits of the account's entries."""
    balance = account.balance
    for tx in transactions_for_account(account, transactions):
        if tx.type == BankEntryType.CREDIT:
            balance += tx.amount
        else:
            balance -= tx.amount
    return balance


def company_balance(
    accounts: Iterable[BankAccount],
    transactions: Iterable[BankTransaction],
    company: str,
) -> Decimal:
    """Sum of running balances over a company's accounts."""
    entries = list(transactions)
    return sum(
        (running_balance(account, entries) for account in accounts if account.company == company),
        Decimal("0"),
    )
