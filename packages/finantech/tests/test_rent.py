"""Tests for rent receivables and adjustment-index recalculation."""

from decimal import Decimal

import pytest

from finantech.errors import NotFoundError
from finantech.models import (
    AdjustmentIndex,
    Property,
    PropertyStatus,
    RentalDetails,
    TransactionStatus,
    TransactionType,
)
from finantech.rent import (
    adjusted_rent,
    adjustment_rate,
    delete_adjustment_index,
    generate_and_adjust_rent_receivables,
    recalculate_for_index,
    save_adjustment_index,
)


@pytest.fixture
def indexes():
    return [
        AdjustmentIndex(id="idx1", name="IGP-M", company="Matriz", value=Decimal("4.5")),
        AdjustmentIndex(id="idx2", name="IPCA", company="Matriz", value=Decimal("3.9")),
    ]


@pytest.fixture
def apartment():
    return Property(
        id="prop1",
        name="Apartamento Av. Paulista",
        type="Apartamento",
        status=PropertyStatus.RENTED,
        company="Filial São Paulo",
        rental_details=RentalDetails(
            tenant_id="contact7",
            rent_amount=Decimal("4500"),
            contract_start="2023-01-15",
            contract_end="2025-07-15",
            payment_day=10,
            adjustment_index_id="idx1",
        ),
    )


@pytest.fixture
def rent_receivable(make_transaction):
    def _make(**overrides):
        data = {
            "description": "Aluguel Apto Av. Paulista",
            "category": "Aluguéis",
            "amount": Decimal("4500"),
            "type": TransactionType.INCOME,
            "company": "Filial São Paulo",
            "property_id": "prop1",
        }
        data.update(overrides)
        return make_transaction(**data)

    return _make


class TestAdjustment:
    """Tests for rate helpers."""

    def test_adjustment_rate(self, indexes):
        assert adjustment_rate("idx1", indexes) == Decimal("1.045")

    def test_missing_index_means_no_adjustment(self, indexes):
        assert adjustment_rate("idx404", indexes) == Decimal("1")
        assert adjustment_rate(None, indexes) == Decimal("1")

    def test_adjusted_rent_compounds_yearly(self):
        assert adjusted_rent(Decimal("4500"), Decimal("1.045"), 0) == Decimal("4500.00")
        assert adjusted_rent(Decimal("4500"), Decimal("1.045"), 1) == Decimal("4702.50")
        assert adjusted_rent(Decimal("4500"), Decimal("1.045"), 2) == Decimal("4914.11")


class TestGenerateReceivables:
    """Tests for generate_and_adjust_rent_receivables."""

    def test_generates_remaining_contract_months(self, apartment, indexes, today):
        """Test one receivable per month due today or later."""
        to_keep, new = generate_and_adjust_rent_receivables(apartment, indexes, [], today)

        assert to_keep == []
        assert len(new) == 12
        assert new[0].id == "rent_prop1_2024-08"
        assert new[0].due_date == "2024-08-10"
        assert new[-1].id == "rent_prop1_2025-07"

    def test_receivable_fields(self, apartment, indexes, today):
        _, new = generate_and_adjust_rent_receivables(apartment, indexes, [], today)
        first = new[0]

        assert first.description == "Aluguel Ref. agosto de 2024 - Apartamento Av. Paulista"
        assert first.category == "Aluguéis"
        assert first.cost_center == "Imobiliário"
        assert first.status == TransactionStatus.PENDING
        assert first.type == TransactionType.INCOME
        assert first.contact_id == "contact7"
        assert first.property_id == "prop1"
        assert first.company == "Filial São Paulo"

    def test_rent_escalates_per_contract_year(self, apartment, indexes, today):
        """Test that each full contract year applies the index once more."""
        _, new = generate_and_adjust_rent_receivables(apartment, indexes, [], today)
        amounts = {r.id: r.amount for r in new}

        assert amounts["rent_prop1_2024-12"] == Decimal("4702.50")
        assert amounts["rent_prop1_2025-01"] == Decimal("4914.11")

    def test_keeps_past_paid_and_unrelated(
        self, apartment, indexes, today, rent_receivable, make_transaction
    ):
        """Test which existing receivables survive the regeneration."""
        past = rent_receivable(id="r6", due_date="2024-07-10")
        future = rent_receivable(id="rent_prop1_2024-09", due_date="2024-09-10")
        paid = rent_receivable(
            id="rent_prop1_2024-10", due_date="2024-10-10", status=TransactionStatus.PAID
        )
        other = make_transaction(id="r3", type=TransactionType.INCOME, due_date="2024-08-18")

        to_keep, new = generate_and_adjust_rent_receivables(
            apartment, indexes, [past, future, paid, other], today
        )

        assert [r.id for r in to_keep] == ["r6", "rent_prop1_2024-10", "r3"]
        new_ids = [r.id for r in new]
        assert "rent_prop1_2024-09" in new_ids
        assert "rent_prop1_2024-10" not in new_ids
        assert len(new) == 11

    def test_unparseable_due_date_is_regenerated(self, apartment, indexes, today, rent_receivable):
        broken = rent_receivable(id="broken", due_date="sem data")

        to_keep, _ = generate_and_adjust_rent_receivables(apartment, indexes, [broken], today)

        assert to_keep == []

    def test_not_rented_generates_nothing(self, apartment, indexes, today):
        apartment = apartment.model_copy(update={"status": PropertyStatus.AVAILABLE})

        _, new = generate_and_adjust_rent_receivables(apartment, indexes, [], today)

        assert new == []

    def test_incomplete_details_generate_nothing(self, apartment, indexes, today):
        details = apartment.rental_details.model_copy(update={"payment_day": 0})
        apartment = apartment.model_copy(update={"rental_details": details})

        _, new = generate_and_adjust_rent_receivables(apartment, indexes, [], today)

        assert new == []


class TestRecalculateForIndex:
    """Tests for recalculate_for_index."""

    def test_regenerates_for_properties_using_index(
        self, apartment, indexes, today, rent_receivable
    ):
        receivables = [rent_receivable(id="r6", due_date="2024-07-10")]

        result = recalculate_for_index("idx1", [apartment], indexes, receivables, today)

        assert result.properties == ["prop1"]
        assert result.regenerated == 12
        assert result.removed == 0
        assert len(result.receivables) == 13

    def test_repeated_recalculation_keeps_count(self, apartment, indexes, today):
        """Test that regenerating twice yields the same number of receivables."""
        first = recalculate_for_index("idx1", [apartment], indexes, [], today)
        second = recalculate_for_index("idx1", [apartment], indexes, first.receivables, today)

        assert second.regenerated == first.regenerated
        assert second.removed == first.regenerated
        assert len(second.receivables) == len(first.receivables)

    def test_new_value_reprices_future_rent(self, apartment, indexes, today):
        first = recalculate_for_index("idx1", [apartment], indexes, [], today)
        indexes, _ = save_adjustment_index(
            indexes, name="IGP-M", value="10", company="Matriz", index_id="idx1"
        )

        second = recalculate_for_index("idx1", [apartment], indexes, first.receivables, today)

        amounts = {r.id: r.amount for r in second.receivables}
        assert amounts["rent_prop1_2024-08"] == Decimal("4950.00")

    def test_unused_index_changes_nothing(self, apartment, indexes, today, rent_receivable):
        receivables = [rent_receivable(id="r6")]

        result = recalculate_for_index("idx2", [apartment], indexes, receivables, today)

        assert result.properties == []
        assert result.receivables == receivables


class TestIndexCrud:
    """Tests for saving and deleting indexes."""

    def test_create(self, indexes):
        updated, saved = save_adjustment_index(
            indexes, name="IVAR", value=5.0, company="Matriz", description="FGV"
        )

        assert saved.id.startswith("idx")
        assert saved.value == Decimal("5.0")
        assert updated[-1] == saved
        assert len(updated) == 3

    def test_edit(self, indexes):
        updated, saved = save_adjustment_index(
            indexes, name="IGP-M", value="6", company="Matriz", index_id="idx1"
        )

        assert saved.id == "idx1"
        assert updated[0].value == Decimal("6")
        assert len(updated) == 2

    def test_blank_name_rejected(self, indexes):
        with pytest.raises(ValueError):
            save_adjustment_index(indexes, name="  ", value=1, company="Matriz")

    def test_edit_unknown_raises(self, indexes):
        with pytest.raises(NotFoundError):
            save_adjustment_index(
                indexes, name="X", value=1, company="Matriz", index_id="idx404"
            )

    def test_delete(self, indexes):
        assert [i.id for i in delete_adjustment_index(indexes, "idx1")] == ["idx2"]
