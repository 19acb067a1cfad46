"""
Category/month rollups for the accounting table.

Groups a flat transaction list by category and sub-category for one year
and one type (expense or income). Everything is recomputed from scratch on
each call.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from pilotage.domain.accounting import (
    CategoryRecord,
    CategoryRollup,
    SubCategoryRecord,
    SubCategoryRollup,
    TransactionRecord,
    empty_months,
)

_ZERO = Decimal("0")

TABLE_YEAR_SPAN = 3


def transactions_for(
    transactions: Iterable[TransactionRecord],
    year: int,
    category_type: str | None = None,
) -> List[TransactionRecord]:
    """Transactions booked (accounting_date) in `year`, optionally of one type."""
    return [
        t for t in transactions
        if t.accounting_date.year == year
        and (category_type is None or t.category_type == category_type)
    ]


def sum_amounts(transactions: Iterable[TransactionRecord]) -> Decimal:
    return sum((t.effective_amount for t in transactions), _ZERO)


def _matches(name: str, needle: str) -> bool:
    return needle in name.lower()


def filter_rollups(rollups: List[CategoryRollup], search: str | None) -> List[CategoryRollup]:
    """
    Apply the free-text search to a rollup list

    A category stays when its own name matches OR one of its sub-categories
    matches. Its sub-categories stay when their name matches OR the parent
    name matches.
    """
    if not search:
        return rollups

    needle = search.lower()
    result = []
    for rollup in rollups:
        category_matches = _matches(rollup.name, needle)
        if not category_matches and not any(_matches(sub.name, needle) for sub in rollup.sub_categories):
            continue
        if not category_matches:
            rollup.sub_categories = [sub for sub in rollup.sub_categories if _matches(sub.name, needle)]
        result.append(rollup)
    return result


def build_category_rollups(
    transactions: Iterable[TransactionRecord],
    categories: Sequence[CategoryRecord],
    sub_categories: Sequence[SubCategoryRecord],
    category_type: str,
    year: int,
    search: str | None = None,
) -> List[CategoryRollup]:
    """
    One rollup per category of `category_type` with a non-zero total in `year`

    Args:
        transactions: flat list, already scoped to an organization
        categories: all categories (only those of `category_type` seed the result)
        sub_categories: all sub-categories (lookup by id)
        category_type: "expense" or "income"
        year: calendar year of accounting_date
        search: optional case-insensitive name filter

    Returns:
        Rollups in category order; sub-rollups in first-seen order
    """
    rollups: Dict[str, CategoryRollup] = {
        c.id: CategoryRollup(category_id=c.id, name=c.name, type=c.type)
        for c in categories
        if c.type == category_type
    }
    sub_by_id = {s.id: s for s in sub_categories}

    for transaction in transactions_for(transactions, year, category_type):
        rollup = rollups.get(transaction.category_id)
        if rollup is None:
            continue

        amount = transaction.effective_amount
        month_index = transaction.accounting_date.month - 1
        rollup.add(month_index, amount)

        if not transaction.subcategory_id:
            continue
        sub_rollup = rollup.find_sub_category(transaction.subcategory_id)
        if sub_rollup is None:
            sub_category = sub_by_id.get(transaction.subcategory_id)
            if sub_category is None:
                continue
            sub_rollup = SubCategoryRollup(id=sub_category.id, name=sub_category.name)
            rollup.sub_categories.append(sub_rollup)
        sub_rollup.add(month_index, amount)

    non_empty = [r for r in rollups.values() if r.year_total != 0]
    return filter_rollups(non_empty, search)


def rollup_totals(rollups: Iterable[CategoryRollup]) -> Tuple[Decimal, List[Decimal]]:
    """Year total and monthly totals summed across categories (the "Total" row)."""
    year_total = _ZERO
    monthly = empty_months()
    for rollup in rollups:
        year_total += rollup.year_total
        for index, value in enumerate(rollup.monthly_totals):
            monthly[index] += value
    return year_total, monthly


def build_multi_year_rollups(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[CategoryRecord],
    sub_categories: Sequence[SubCategoryRecord],
    category_type: str,
    year: int,
    search: str | None = None,
    span: int = TABLE_YEAR_SPAN,
) -> Dict[int, List[CategoryRollup]]:
    """Rollups for `year` and the `span - 1` preceding years, newest first."""
    return {
        y: build_category_rollups(transactions, categories, sub_categories, category_type, y, search)
        for y in range(year, year - span, -1)
    }
