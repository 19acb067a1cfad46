"""
Accounting overview: balance cards, monthly chart and category evolution.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from pilotage.domain.accounting import (
    CATEGORY_TYPE_EXPENSE,
    CATEGORY_TYPE_INCOME,
    CategoryRecord,
    MONTHS_IN_YEAR,
    TransactionRecord,
)
from pilotage.application.comparison import percentage_change
from pilotage.application.rollups import transactions_for

_ZERO = Decimal("0")

MONTH_SHORT_LABELS = [
    "Jan", "Fév", "Mar", "Avr", "Mai", "Jun",
    "Jul", "Aoû", "Sep", "Oct", "Nov", "Déc",
]

DEFAULT_TOP_CATEGORIES = 5


def _totals_by_type(transactions: Iterable[TransactionRecord]) -> Dict[str, Decimal]:
    totals = {CATEGORY_TYPE_INCOME: _ZERO, CATEGORY_TYPE_EXPENSE: _ZERO}
    for t in transactions:
        if t.category_type in totals:
            totals[t.category_type] += t.effective_amount
    return totals


def year_summary(
    transactions: Sequence[TransactionRecord],
    year: int,
    today: date,
) -> Dict[str, Any]:
    """
    Revenues, expenses and balance of `year` with year-over-year changes

    When `year` is the current year, the comparison with the previous year
    only covers January up to the current month.
    """
    year_transactions = transactions_for(transactions, year)
    totals = _totals_by_type(year_transactions)
    revenues = totals[CATEGORY_TYPE_INCOME]
    expenses = totals[CATEGORY_TYPE_EXPENSE]

    max_month = today.month if year == today.year else MONTHS_IN_YEAR
    previous = _totals_by_type(
        t for t in transactions_for(transactions, year - 1) if t.accounting_date.month <= max_month
    )
    current = _totals_by_type(t for t in year_transactions if t.accounting_date.month <= max_month)

    previous_balance = previous[CATEGORY_TYPE_INCOME] - previous[CATEGORY_TYPE_EXPENSE]
    current_balance = current[CATEGORY_TYPE_INCOME] - current[CATEGORY_TYPE_EXPENSE]

    return {
        "year": year,
        "revenues": revenues,
        "expenses": expenses,
        "balance": revenues - expenses,
        "compared_up_to_month": max_month,
        "previous_year": {
            "revenues": previous[CATEGORY_TYPE_INCOME],
            "expenses": previous[CATEGORY_TYPE_EXPENSE],
            "balance": previous_balance,
        },
        "revenue_change": percentage_change(current[CATEGORY_TYPE_INCOME], previous[CATEGORY_TYPE_INCOME]),
        "expense_change": percentage_change(current[CATEGORY_TYPE_EXPENSE], previous[CATEGORY_TYPE_EXPENSE]),
        "balance_change": percentage_change(current_balance, previous_balance),
    }


def monthly_series(transactions: Sequence[TransactionRecord], year: int) -> List[Dict[str, Any]]:
    """12 points {month, revenus, depenses} for the monthly line chart."""
    points = [
        {"month": label, "revenus": _ZERO, "depenses": _ZERO}
        for label in MONTH_SHORT_LABELS
    ]
    for t in transactions_for(transactions, year):
        point = points[t.accounting_date.month - 1]
        if t.category_type == CATEGORY_TYPE_INCOME:
            point["revenus"] += t.effective_amount
        elif t.category_type == CATEGORY_TYPE_EXPENSE:
            point["depenses"] += t.effective_amount
    return points


def available_categories(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[CategoryRecord],
    category_type: str,
    year: int,
) -> List[Dict[str, Any]]:
    """Categories of `category_type` used in `year`, with their totals, largest first."""
    totals: Dict[str, Decimal] = {}
    for t in transactions_for(transactions, year, category_type):
        totals[t.category_id] = totals.get(t.category_id, _ZERO) + t.effective_amount

    result = [
        {"id": c.id, "name": c.name, "total": totals[c.id]}
        for c in categories
        if c.type == category_type and c.id in totals
    ]
    return sorted(result, key=lambda item: item["total"], reverse=True)


def top_categories(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[CategoryRecord],
    category_type: str,
    year: int,
    limit: int = DEFAULT_TOP_CATEGORIES,
) -> List[str]:
    """Default chart selection: ids of the `limit` largest categories."""
    return [item["id"] for item in available_categories(transactions, categories, category_type, year)[:limit]]


def category_evolution(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[CategoryRecord],
    category_type: str,
    year: int,
    selected: Iterable[str],
    with_comparison: bool = False,
) -> List[Dict[str, Any]]:
    """
    Month-by-month totals of the selected categories

    Each point carries "<category_id>_current" and, with comparison,
    "<category_id>_previous" for the same month of the previous year.
    Unknown category ids are skipped.
    """
    known = {c.id for c in categories}
    selected_ids = [category_id for category_id in selected if category_id in known]

    def _monthly(year_: int) -> Dict[tuple, Decimal]:
        sums: Dict[tuple, Decimal] = {}
        for t in transactions_for(transactions, year_, category_type):
            key = (t.category_id, t.accounting_date.month - 1)
            sums[key] = sums.get(key, _ZERO) + t.effective_amount
        return sums

    current = _monthly(year)
    previous = _monthly(year - 1) if with_comparison else {}

    points = []
    for month_index, label in enumerate(MONTH_SHORT_LABELS):
        point: Dict[str, Any] = {"month": label}
        for category_id in selected_ids:
            point[f"{category_id}_current"] = current.get((category_id, month_index), _ZERO)
            if with_comparison:
                point[f"{category_id}_previous"] = previous.get((category_id, month_index), _ZERO)
        points.append(point)
    return points


def filter_stats(transactions: Sequence[TransactionRecord]) -> Dict[str, int]:
    """Counts shown next to the all/common/personal filter."""
    personal = sum(1 for t in transactions if t.is_personal)
    return {
        "all": len(transactions),
        "personal": personal,
        "common": len(transactions) - personal,
    }
