"""
Tests for the distribution (percentage of total) charts
"""
from datetime import date
from decimal import Decimal

import pytest

from pilotage.application.distribution import build_distribution
from pilotage.domain.accounting import CategoryRecord, SubCategoryRecord, TransactionRecord


CATEGORIES = [
    CategoryRecord(id="food", name="Alimentation", type="expense"),
    CategoryRecord(id="rent", name="Logement", type="expense"),
    CategoryRecord(id="salary", name="Salaire", type="income"),
]
SUB_CATEGORIES = [
    SubCategoryRecord(id="groceries", name="Courses", category_id="food"),
    SubCategoryRecord(id="restaurant", name="Restaurant", category_id="food"),
    SubCategoryRecord(id="loyer", name="Loyer", category_id="rent"),
]


def _tx(tx_id, day, category_id, amount, subcategory_id=None, category_type="expense", net_amount=None):
    return TransactionRecord(
        id=tx_id,
        amount=Decimal(str(amount)),
        net_amount=Decimal(str(net_amount)) if net_amount is not None else None,
        accounting_date=date.fromisoformat(day),
        category_id=category_id,
        category_type=category_type,
        subcategory_id=subcategory_id,
    )


TRANSACTIONS_2024 = [
    _tx("t1", "2024-01-05", "food", 120, "groceries"),
    _tx("t2", "2024-02-05", "food", 60, "restaurant"),
    _tx("t3", "2024-02-10", "food", 20),
    _tx("t4", "2024-03-01", "rent", 800, "loyer"),
    _tx("t5", "2024-03-01", "salary", 3000, category_type="income"),
]


class TestNestedDistribution:
    def test_categories_sorted_and_relative_to_total(self):
        entries = build_distribution(TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024)

        assert [e.id for e in entries] == ["rent", "food"]
        assert entries[0].amount == Decimal("800")
        assert entries[0].percentage == pytest.approx(80.0)
        assert entries[1].amount == Decimal("200")
        assert entries[1].percentage == pytest.approx(20.0)

    def test_category_percentages_sum_to_100(self):
        entries = build_distribution(TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024)
        assert sum(e.percentage for e in entries) == pytest.approx(100.0)

    def test_sub_categories_relative_to_parent(self):
        entries = build_distribution(TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024)
        food = next(e for e in entries if e.id == "food")

        assert [s.id for s in food.sub_categories] == ["groceries", "restaurant"]
        assert food.sub_categories[0].percentage == pytest.approx(60.0)
        assert food.sub_categories[1].percentage == pytest.approx(30.0)

    def test_sub_category_percentages_sum_to_100_when_all_classified(self):
        transactions = [
            _tx("t1", "2024-01-05", "food", 75, "groceries"),
            _tx("t2", "2024-01-06", "food", 25, "restaurant"),
        ]
        entries = build_distribution(transactions, CATEGORIES, SUB_CATEGORIES, "expense", 2024)

        assert sum(s.percentage for s in entries[0].sub_categories) == pytest.approx(100.0)

    def test_zero_total_gives_empty_list(self):
        assert build_distribution(TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2019) == []

    def test_unknown_category_skipped(self):
        transactions = TRANSACTIONS_2024 + [_tx("t9", "2024-05-05", "gone", 1000)]
        entries = build_distribution(transactions, CATEGORIES, SUB_CATEGORIES, "expense", 2024)

        assert "gone" not in [e.id for e in entries]
        # the grand total still includes it
        assert sum(e.percentage for e in entries) == pytest.approx(50.0)

    def test_net_amounts_are_used(self):
        transactions = [
            _tx("t1", "2024-01-05", "food", 100, net_amount=50),
            _tx("t2", "2024-01-05", "rent", 50),
        ]
        entries = build_distribution(transactions, CATEGORIES, SUB_CATEGORIES, "expense", 2024)

        assert all(e.percentage == pytest.approx(50.0) for e in entries)


class TestFlatDistribution:
    def test_one_entry_per_sub_category_and_no_sub_bucket(self):
        entries = build_distribution(
            TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024, flat_sub_categories=True
        )

        by_id = {e.id: e for e in entries}
        assert set(by_id) == {"loyer", "groceries", "restaurant", "no-sub-food"}
        assert by_id["loyer"].name == "Loyer (Logement)"
        assert by_id["groceries"].name == "Courses (Alimentation)"
        assert by_id["no-sub-food"].name == "Alimentation"

    def test_percentages_against_grand_total(self):
        entries = build_distribution(
            TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024, flat_sub_categories=True
        )

        assert [e.id for e in entries] == ["loyer", "groceries", "restaurant", "no-sub-food"]
        assert entries[1].percentage == pytest.approx(12.0)
        assert sum(e.percentage for e in entries) == pytest.approx(100.0)

    def test_flat_mode_has_no_comparison(self):
        entries = build_distribution(
            TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024,
            flat_sub_categories=True, with_comparison=True,
        )
        assert all(e.previous_year_amount is None for e in entries)


class TestYearOverYear:
    PREVIOUS = [
        _tx("p1", "2023-04-05", "food", 100, "groceries"),
        _tx("p2", "2023-04-06", "food", 100, "restaurant"),
        _tx("p3", "2023-05-01", "rent", 800, "loyer"),
    ]

    def test_previous_year_figures(self):
        entries = build_distribution(
            TRANSACTIONS_2024 + self.PREVIOUS, CATEGORIES, SUB_CATEGORIES, "expense", 2024,
            with_comparison=True,
        )
        food = next(e for e in entries if e.id == "food")
        rent = next(e for e in entries if e.id == "rent")

        assert food.previous_year_amount == Decimal("200")
        assert food.previous_year_percentage == pytest.approx(20.0)
        assert food.percentage_change == pytest.approx(0.0)
        assert rent.percentage_change == pytest.approx(0.0)

        groceries = next(s for s in food.sub_categories if s.id == "groceries")
        assert groceries.previous_year_amount == Decimal("100")
        # relative to the previous food amount
        assert groceries.previous_year_percentage == pytest.approx(50.0)
        assert groceries.percentage_change == pytest.approx(20.0)

    def test_no_previous_year_data(self):
        entries = build_distribution(
            TRANSACTIONS_2024, CATEGORIES, SUB_CATEGORIES, "expense", 2024, with_comparison=True
        )

        for entry in entries:
            assert entry.previous_year_amount == 0
            assert entry.previous_year_percentage == 0.0
            assert entry.percentage_change == 100.0
