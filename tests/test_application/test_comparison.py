"""
Tests for period comparison of accounting table cells
"""
from datetime import date
from decimal import Decimal

import pytest

from pilotage.application.comparison import (
    ComparisonValidationError,
    calculate_comparison,
    compare_amounts,
    comparison_baseline,
    month_comparisons,
    percentage_change,
    previous_month_index,
)
from pilotage.application.rollups import build_category_rollups, rollup_totals
from pilotage.domain.accounting import CategoryRecord, TransactionRecord


CATEGORIES = [
    CategoryRecord(id="rent", name="Rent", type="expense"),
    CategoryRecord(id="food", name="Alimentation", type="expense"),
]


def _tx(tx_id, day, category_id, amount):
    return TransactionRecord(
        id=tx_id,
        amount=Decimal(str(amount)),
        accounting_date=date.fromisoformat(day),
        category_id=category_id,
        category_type="expense",
    )


def _rollups(transactions, year=2024):
    return build_category_rollups(transactions, CATEGORIES, [], "expense", year)


class TestCompareAmounts:
    def test_zero_baseline_positive_current(self):
        result = compare_amounts(Decimal("250"), Decimal("0"))
        assert result.percentage == 100.0
        assert result.absolute_diff == Decimal("250")

    @pytest.mark.parametrize("current", ["0", "-40"])
    def test_zero_baseline_non_positive_current(self, current):
        result = compare_amounts(Decimal(current), Decimal("0"))
        assert result.percentage == 0.0
        assert result.absolute_diff == 0

    def test_negative_baseline_uses_absolute_value(self):
        result = compare_amounts(Decimal("-50"), Decimal("-100"))
        assert result.percentage == pytest.approx(50.0)
        assert result.absolute_diff == Decimal("50")

    def test_decrease(self):
        result = compare_amounts(Decimal("75"), Decimal("100"))
        assert result.percentage == pytest.approx(-25.0)
        assert result.absolute_diff == Decimal("-25")

    def test_percentage_change_same_zero_rule(self):
        assert percentage_change(Decimal("10"), Decimal("0")) == 100.0
        assert percentage_change(Decimal("0"), Decimal("0")) == 0.0
        assert percentage_change(Decimal("120"), Decimal("100")) == pytest.approx(20.0)


class TestPreviousMonthComparison:
    def test_rent_example(self):
        """Février (1200) contre janvier (1000) -> +20 %, +200."""
        rollups = _rollups([
            _tx("t1", "2024-01-15", "rent", 1000),
            _tx("t2", "2024-02-15", "rent", 1200),
        ])

        result = calculate_comparison(Decimal("1200"), 1, rollups, "previous")

        assert result.percentage == pytest.approx(20.0)
        assert result.absolute_diff == Decimal("200")

    def test_january_wraps_to_december_of_same_year(self):
        """Janvier est comparé au décembre de la même année, pas à celui de l'année précédente."""
        transactions = [
            _tx("t1", "2023-12-10", "rent", 400),
            _tx("t2", "2024-01-10", "rent", 500),
            _tx("t3", "2024-12-10", "rent", 1000),
        ]
        rollups = _rollups(transactions)

        assert previous_month_index(0) == 11
        assert comparison_baseline(rollups, 0, "previous") == Decimal("1000")
        result = calculate_comparison(Decimal("500"), 0, rollups, "previous")
        assert result.percentage == pytest.approx(-50.0)
        assert result.absolute_diff == Decimal("-500")

    def test_baseline_comes_from_all_categories(self):
        """Même pour une cellule de catégorie, la base est la ligne Total."""
        rollups = _rollups([
            _tx("t1", "2024-02-01", "rent", 800),
            _tx("t2", "2024-02-01", "food", 200),
            _tx("t3", "2024-03-01", "food", 250),
        ])

        result = calculate_comparison(Decimal("250"), 2, rollups, "previous")

        assert result.absolute_diff == Decimal("-750")
        assert result.percentage == pytest.approx(-75.0)


class TestAverageComparison:
    TRANSACTIONS = [
        _tx("t1", "2024-01-01", "rent", 100),
        _tx("t2", "2024-02-01", "rent", 200),
        _tx("t3", "2024-03-01", "rent", 300),
    ]

    def test_average_of_selected_months(self):
        rollups = _rollups(self.TRANSACTIONS)

        result = calculate_comparison(Decimal("300"), 6, rollups, "average", [0, 1, 2])

        assert comparison_baseline(rollups, 6, "average", [0, 1, 2]) == Decimal("200")
        assert result.percentage == pytest.approx(50.0)
        assert result.absolute_diff == Decimal("100")

    def test_default_selection_is_first_half_year(self):
        rollups = _rollups(self.TRANSACTIONS)
        # (100 + 200 + 300) / 6
        assert comparison_baseline(rollups, 8, "average") == Decimal("100")

    def test_empty_selection_gives_zero_baseline(self):
        rollups = _rollups(self.TRANSACTIONS)

        result = calculate_comparison(Decimal("42"), 3, rollups, "average", [])

        assert result.percentage == 100.0
        assert result.absolute_diff == Decimal("42")

    def test_unknown_mode_rejected(self):
        with pytest.raises(ComparisonValidationError, match="inconnu"):
            comparison_baseline(_rollups(self.TRANSACTIONS), 1, "yearly")

    def test_month_out_of_range_rejected(self):
        with pytest.raises(ComparisonValidationError, match="Mois invalide"):
            comparison_baseline(_rollups(self.TRANSACTIONS), 12, "previous")


class TestMonthComparisons:
    def test_one_comparison_per_month(self):
        rollups = _rollups([
            _tx("t1", "2024-01-01", "rent", 100),
            _tx("t2", "2024-02-01", "rent", 150),
        ])
        _, monthly = rollup_totals(rollups)

        comparisons = month_comparisons(rollups, monthly, "previous")

        assert len(comparisons) == 12
        assert comparisons[1].percentage == pytest.approx(50.0)
        # mars : 0 contre 150
        assert comparisons[2].absolute_diff == Decimal("-150")
        assert comparisons[2].percentage == pytest.approx(-100.0)
