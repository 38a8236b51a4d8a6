"""Bank reconciliation: pairing statement entries with ledger entries.

A :class:`ReconciliationSession` is scoped to one company. Statement entries
are never removed from the source data; once paired they are only hidden
from this session's unmatched view. Ledger entries are marked
``matched=True`` by replacing the whole list, so callers can persist the
result with a single collection update.

Pairs come either from a manual selection (one entry of each side) or from
suggestions proposed by a :class:`ReconciliationAdvisor` and confirmed by the
user. There is no conflict detection between the two paths: the last write
wins.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal, Protocol

import structlog

from finantech.banking import company_account_ids
from finantech.errors import NotFoundError
from finantech.models import (
    BankAccount,
    BankTransaction,
    MatchSuggestion,
    SystemTransaction,
)

logger = structlog.get_logger(__name__)

Side = Literal["bank", "system"]


class ReconciliationAdvisor(Protocol):
    """Anything that can propose statement/ledger pairs."""

    async def reconcile(
        self,
        bank_transactions: list[BankTransaction],
        system_transactions: list[SystemTransaction],
    ) -> list[MatchSuggestion]: ...


class ReconciliationSession:
    """Reconciliation state for one company.

    Usage:
        session = ReconciliationSession(bank_txs, system_txs, accounts, "Matriz")
        await session.request_suggestions(advisor)
        confirmed = session.confirm_suggestions()
        save(session.system_transactions)
    """

    def __init__(
        self,
        bank_transactions: Iterable[BankTransaction],
        system_transactions: Iterable[SystemTransaction],
        bank_accounts: Iterable[BankAccount],
        company: str,
    ):
        self._bank_transactions = list(bank_transactions)
        self._system_transactions = list(system_transactions)
        self._bank_accounts = list(bank_accounts)
        self.company = company

        self._hidden_bank_ids: set[str] = set()
        self._suggestions: list[MatchSuggestion] = []
        self.selected_bank_id: str | None = None
        self.selected_system_id: str | None = None

        self._logger = logger.bind(component="reconciliation", company=company)

    # === Views ===

    @property
    def system_transactions(self) -> list[SystemTransaction]:
        """The full ledger list, including other companies' entries."""
        return list(self._system_transactions)

    @property
    def hidden_bank_ids(self) -> set[str]:
        return set(self._hidden_bank_ids)

    @property
    def suggestions(self) -> list[MatchSuggestion]:
        return list(self._suggestions)

    @property
    def unmatched_bank(self) -> list[BankTransaction]:
        """Statement entries of the company's accounts not yet paired here."""
        account_ids = company_account_ids(self._bank_accounts, self.company)
        return [
            tx
            for tx in self._bank_transactions
            if tx.bank_account_id in account_ids and tx.id not in self._hidden_bank_ids
        ]

    @property
    def unmatched_system(self) -> list[SystemTransaction]:
        """The company's ledger entries still awaiting a pair."""
        return [
            tx
            for tx in self._system_transactions
            if not tx.matched and tx.company == self.company
        ]

    # === Selection ===

    def select(self, tx_id: str, side: Side) -> None:
        """Toggle the selection on one side."""
        if side == "bank":
            self.selected_bank_id = None if self.selected_bank_id == tx_id else tx_id
        else:
            self.selected_system_id = None if self.selected_system_id == tx_id else tx_id

    def reset(self, company: str | None = None) -> None:
        """Clear suggestions, selection and hidden entries.

        Passing a company switches the session scope.
        """
        if company is not None:
            self.company = company
            self._logger = logger.bind(component="reconciliation", company=company)
        self._suggestions = []
        self._hidden_bank_ids = set()
        self.selected_bank_id = None
        self.selected_system_id = None

    # === Matching ===

    def _apply_pairs(self, pairs: list[tuple[str, str]]) -> None:
        system_ids = {system_id for _, system_id in pairs}
        self._system_transactions = [
            tx.model_copy(update={"matched": True}) if tx.id in system_ids else tx
            for tx in self._system_transactions
        ]
        self._hidden_bank_ids.update(bank_id for bank_id, _ in pairs)

    def match_manually(
        self, bank_id: str | None = None, system_id: str | None = None
    ) -> bool:
        """Pair one statement entry with one ledger entry.

        Falls back to the current selection for missing ids. Returns False
        when either side is missing. Both ids must still be open for the
        session company.
        """
        bank_id = bank_id or self.selected_bank_id
        system_id = system_id or self.selected_system_id
        if not bank_id or not system_id:
            return False

        if not any(tx.id == bank_id for tx in self.unmatched_bank):
            raise NotFoundError(f"Bank transaction {bank_id} not found or already matched")
        if not any(tx.id == system_id for tx in self.unmatched_system):
            raise NotFoundError(f"System transaction {system_id} not found or already matched")

        self._apply_pairs([(bank_id, system_id)])
        self._suggestions = [
            s
            for s in self._suggestions
            if s.bank_tx_id != bank_id and s.system_tx_id != system_id
        ]
        self.selected_bank_id = None
        self.selected_system_id = None

        self._logger.info("manual_match", bank_id=bank_id, system_id=system_id)
        return True

    def _usable_suggestions(self, proposals: Iterable[MatchSuggestion]) -> list[MatchSuggestion]:
        """Keep proposals that reference open entries, each entry used once."""
        bank_ids = {tx.id for tx in self.unmatched_bank}
        system_ids = {tx.id for tx in self.unmatched_system}
        used_bank: set[str] = set()
        used_system: set[str] = set()
        usable: list[MatchSuggestion] = []

        for proposal in proposals:
            if proposal.bank_tx_id not in bank_ids or proposal.system_tx_id not in system_ids:
                self._logger.debug(
                    "suggestion_discarded",
                    bank_id=proposal.bank_tx_id,
                    system_id=proposal.system_tx_id,
                    reason="unknown_id",
                )
                continue
            if proposal.bank_tx_id in used_bank or proposal.system_tx_id in used_system:
                self._logger.debug(
                    "suggestion_discarded",
                    bank_id=proposal.bank_tx_id,
                    system_id=proposal.system_tx_id,
                    reason="duplicate",
                )
                continue
            used_bank.add(proposal.bank_tx_id)
            used_system.add(proposal.system_tx_id)
            usable.append(proposal)

        return usable

    def set_suggestions(self, proposals: Iterable[MatchSuggestion]) -> list[MatchSuggestion]:
        """Replace the pending suggestions with the usable subset of proposals."""
        self._suggestions = self._usable_suggestions(proposals)
        return self.suggestions

    async def request_suggestions(self, advisor: ReconciliationAdvisor) -> list[MatchSuggestion]:
        """Ask the advisor for pairs over the current unmatched lists."""
        self._suggestions = []
        bank = self.unmatched_bank
        system = self.unmatched_system
        self._logger.info(
            "requesting_suggestions", bank_count=len(bank), system_count=len(system)
        )

        proposals = await advisor.reconcile(bank, system)
        suggestions = self.set_suggestions(proposals)

        self._logger.info(
            "suggestions_received", proposed=len(proposals), usable=len(suggestions)
        )
        return suggestions

    def confirm_suggestions(self) -> int:
        """Apply every pending suggestion; returns the number of pairs applied."""
        if not self._suggestions:
            return 0

        pairs = [(s.bank_tx_id, s.system_tx_id) for s in self._suggestions]
        self._apply_pairs(pairs)
        self._suggestions = []

        self._logger.info("suggestions_confirmed", count=len(pairs))
        return len(pairs)
