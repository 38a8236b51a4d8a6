"""Rent receivables and adjustment-index recalculation.

Saving an adjustment index regenerates the future rent receivables of every
property that references it: unpaid receivables due today or later are
dropped and rebuilt from the rental contract, escalating the base rent by the
index once per full contract year. The loop is synchronous, has no rollback
and is not guarded against repetition; saving the same value twice simply
regenerates twice.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import structlog

from finantech.dates import add_months, day_in_month, month_label, parse_date
from finantech.errors import NotFoundError
from finantech.models import (
    RENT_CATEGORY,
    RENT_COST_CENTER,
    AdjustmentIndex,
    Property,
    PropertyStatus,
    Transaction,
    TransactionStatus,
    TransactionType,
    new_id,
)

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


@dataclass
class RecalculationResult:
    """Outcome of regenerating rent receivables for one index."""

    receivables: list[Transaction]
    regenerated: int = 0
    removed: int = 0
    properties: list[str] = field(default_factory=list)


def _is_rent_of(receivable: Transaction, property_id: str) -> bool:
    return receivable.property_id == property_id and receivable.category == RENT_CATEGORY


def _keep_receivable(receivable: Transaction, property_id: str, today: date) -> bool:
    if not _is_rent_of(receivable, property_id):
        return True
    if receivable.status == TransactionStatus.PAID:
        return True
    due_date = parse_date(receivable.due_date)
    # Unparseable due dates are treated as future and regenerated.
    return due_date is not None and due_date < today


def _full_years_between(start: date, current: date) -> int:
    years = current.year - start.year
    if (current.month, current.day) < (start.month, start.day):
        years -= 1
    return max(0, years)


def adjustment_rate(index_id: str | None, indexes: Iterable[AdjustmentIndex]) -> Decimal:
    """Yearly multiplier for an index, 1 when the index is missing."""
    if not index_id:
        return Decimal("1")
    for index in indexes:
        if index.id == index_id:
            return Decimal("1") + index.value / 100
    return Decimal("1")


def adjusted_rent(base_rent: Decimal, rate: Decimal, years: int) -> Decimal:
    """Base rent escalated ``years`` times by ``rate``, rounded to cents."""
    return (base_rent * rate**years).quantize(CENTS, rounding=ROUND_HALF_UP)


def generate_and_adjust_rent_receivables(
    prop: Property,
    indexes: Iterable[AdjustmentIndex],
    receivables: Iterable[Transaction],
    today: date | None = None,
) -> tuple[list[Transaction], list[Transaction]]:
    """Split receivables into those to keep and freshly priced rent receivables.

    Returns ``(to_keep, new)``. ``to_keep`` holds every receivable except the
    property's unpaid rent due today or later. ``new`` holds one pending
    receivable per remaining contract month, unless the property is not
    rented or its rental details are incomplete.
    """
    today = today or date.today()
    to_keep = [r for r in receivables if _keep_receivable(r, prop.id, today)]

    details = prop.rental_details
    if prop.status != PropertyStatus.RENTED or details is None:
        return to_keep, []
    if not (
        details.tenant_id
        and details.rent_amount
        and details.contract_start
        and details.contract_end
        and details.payment_day
    ):
        return to_keep, []

    start = parse_date(details.contract_start)
    end = parse_date(details.contract_end)
    if start is None or end is None:
        logger.warning(
            "rental_contract_dates_invalid",
            property_id=prop.id,
            contract_start=details.contract_start,
            contract_end=details.contract_end,
        )
        return to_keep, []

    rate = adjustment_rate(details.adjustment_index_id, indexes)
    kept_ids = {r.id for r in to_keep}
    new_receivables: list[Transaction] = []

    offset = 0
    current = start
    while current <= end:
        due_date = day_in_month(current.year, current.month, details.payment_day)
        receivable_id = f"rent_{prop.id}_{due_date.strftime('%Y-%m')}"

        # Months already settled in advance stay as they are.
        if due_date >= today and receivable_id not in kept_ids:
            years = _full_years_between(start, current)
            new_receivables.append(
                Transaction(
                    id=receivable_id,
                    description=f"Aluguel Ref. {month_label(current)} - {prop.name}",
                    category=RENT_CATEGORY,
                    amount=adjusted_rent(details.rent_amount, rate, years),
                    due_date=due_date.isoformat(),
                    status=TransactionStatus.PENDING,
                    type=TransactionType.INCOME,
                    company=prop.company,
                    cost_center=RENT_COST_CENTER,
                    bank_account="",
                    contact_id=details.tenant_id,
                    property_id=prop.id,
                )
            )

        offset += 1
        current = add_months(start, offset)

    return to_keep, new_receivables


def recalculate_for_index(
    index_id: str,
    properties: Iterable[Property],
    indexes: Iterable[AdjustmentIndex],
    receivables: Iterable[Transaction],
    today: date | None = None,
) -> RecalculationResult:
    """Regenerate the future rent receivables of every property using an index."""
    today = today or date.today()
    index_list = list(indexes)
    current = list(receivables)
    affected = [
        p
        for p in properties
        if p.rental_details is not None and p.rental_details.adjustment_index_id == index_id
    ]

    if not affected:
        return RecalculationResult(receivables=current)

    regenerated: list[Transaction] = []
    removed = 0
    for prop in affected:
        to_keep, new_receivables = generate_and_adjust_rent_receivables(
            prop, index_list, current, today
        )
        removed += len(current) - len(to_keep)
        # Later properties must not see receivables already dropped.
        current = to_keep
        regenerated.extend(new_receivables)

    logger.info(
        "rent_receivables_recalculated",
        index_id=index_id,
        properties=len(affected),
        removed=removed,
        regenerated=len(regenerated),
    )

    return RecalculationResult(
        receivables=current + regenerated,
        regenerated=len(regenerated),
        removed=removed,
        properties=[p.id for p in affected],
    )


def save_adjustment_index(
    indexes: Iterable[AdjustmentIndex],
    *,
    name: str,
    value: Decimal | float | str,
    company: str,
    description: str = "",
    index_id: str | None = None,
) -> tuple[list[AdjustmentIndex], AdjustmentIndex]:
    """Create or edit an index. Returns the new list and the saved index."""
    if not name.strip():
        raise ValueError("O nome do índice é obrigatório.")
    value = Decimal(str(value))
    current = list(indexes)

    if index_id is None:
        saved = AdjustmentIndex(
            id=new_id("idx"),
            name=name,
            description=description,
            company=company,
            value=value,
        )
        return current + [saved], saved

    for position, index in enumerate(current):
        if index.id == index_id:
            saved = index.model_copy(
                update={"name": name, "description": description, "value": value}
            )
            current[position] = saved
            return current, saved

    raise NotFoundError(f"Adjustment index {index_id} not found")


def delete_adjustment_index(
    indexes: Iterable[AdjustmentIndex], index_id: str
) -> list[AdjustmentIndex]:
    """Drop an index. Properties referencing it keep the dangling id."""
    return [index for index in indexes if index.id != index_id]
