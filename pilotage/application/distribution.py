"""
Distribution (percentage of total) of a year's amounts by category.

Two modes share the same numbers but not the same denominators:
- nested: categories relative to the grand total, their sub-categories
  relative to the parent category amount;
- flat: every sub-category (plus one "no-sub-<category_id>" bucket per
  category for transactions without sub-category) relative to the grand
  total.
"""
from decimal import Decimal
from typing import Dict, List, Sequence

from pilotage.domain.accounting import (
    CategoryRecord,
    DistributionEntry,
    SubCategoryRecord,
    TransactionRecord,
)
from pilotage.application.rollups import transactions_for, sum_amounts

_ZERO = Decimal("0")

NO_SUB_CATEGORY_PREFIX = "no-sub-"


def _share(amount: Decimal, total: Decimal) -> float:
    return float(amount / total * 100) if total else 0.0


def _change(current: Decimal, previous: Decimal) -> float:
    if previous > 0:
        return float((current - previous) / previous * 100)
    return 100.0 if current > 0 else 0.0


def _by_amount(entries: List[DistributionEntry]) -> List[DistributionEntry]:
    return sorted(entries, key=lambda e: e.amount, reverse=True)


def _flat_distribution(
    transactions: List[TransactionRecord],
    category_by_id: Dict[str, CategoryRecord],
    sub_by_id: Dict[str, SubCategoryRecord],
    total: Decimal,
) -> List[DistributionEntry]:
    buckets: Dict[str, DistributionEntry] = {}

    for transaction in transactions:
        category = category_by_id.get(transaction.category_id)
        if category is None:
            continue

        if transaction.subcategory_id:
            sub_category = sub_by_id.get(transaction.subcategory_id)
            if sub_category is None:
                continue
            key = sub_category.id
            name = f"{sub_category.name} ({category.name})"
        else:
            key = f"{NO_SUB_CATEGORY_PREFIX}{category.id}"
            name = category.name

        entry = buckets.get(key)
        if entry is None:
            entry = buckets[key] = DistributionEntry(id=key, name=name)
        entry.amount += transaction.effective_amount

    for entry in buckets.values():
        entry.percentage = _share(entry.amount, total)
    return _by_amount(list(buckets.values()))


def _nested_distribution(
    transactions: List[TransactionRecord],
    category_by_id: Dict[str, CategoryRecord],
    sub_by_id: Dict[str, SubCategoryRecord],
) -> Dict[str, DistributionEntry]:
    entries: Dict[str, DistributionEntry] = {}

    for transaction in transactions:
        entry = entries.get(transaction.category_id)
        if entry is None:
            category = category_by_id.get(transaction.category_id)
            if category is None:
                continue
            entry = entries[category.id] = DistributionEntry(id=category.id, name=category.name)

        amount = transaction.effective_amount
        entry.amount += amount

        if not transaction.subcategory_id:
            continue
        sub_entry = next((s for s in entry.sub_categories if s.id == transaction.subcategory_id), None)
        if sub_entry is None:
            sub_category = sub_by_id.get(transaction.subcategory_id)
            if sub_category is None:
                continue
            sub_entry = DistributionEntry(id=sub_category.id, name=sub_category.name)
            entry.sub_categories.append(sub_entry)
        sub_entry.amount += amount

    return entries


def _attach_previous_year(
    entries: Dict[str, DistributionEntry],
    previous_transactions: List[TransactionRecord],
) -> None:
    previous_total = sum_amounts(previous_transactions)
    previous_by_category: Dict[str, Decimal] = {}
    previous_by_sub: Dict[str, Decimal] = {}
    for transaction in previous_transactions:
        amount = transaction.effective_amount
        previous_by_category[transaction.category_id] = previous_by_category.get(transaction.category_id, _ZERO) + amount
        if transaction.subcategory_id:
            previous_by_sub[transaction.subcategory_id] = previous_by_sub.get(transaction.subcategory_id, _ZERO) + amount

    for category_id, entry in entries.items():
        previous_amount = previous_by_category.get(category_id, _ZERO)
        entry.previous_year_amount = previous_amount
        entry.previous_year_percentage = _share(previous_amount, previous_total) if previous_total > 0 else 0.0
        entry.percentage_change = _change(entry.amount, previous_amount)

        for sub_entry in entry.sub_categories:
            previous_sub_amount = previous_by_sub.get(sub_entry.id, _ZERO)
            sub_entry.previous_year_amount = previous_sub_amount
            sub_entry.previous_year_percentage = (
                _share(previous_sub_amount, previous_amount) if previous_amount > 0 else 0.0
            )
            sub_entry.percentage_change = _change(sub_entry.amount, previous_sub_amount)


def build_distribution(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[CategoryRecord],
    sub_categories: Sequence[SubCategoryRecord],
    category_type: str,
    year: int,
    flat_sub_categories: bool = False,
    with_comparison: bool = False,
) -> List[DistributionEntry]:
    """
    Share of each category (or sub-category) in the year's total for one type

    Args:
        flat_sub_categories: list every sub-category against the grand total
        with_comparison: attach previous-year amounts, shares and changes
            (nested mode only)

    Returns:
        Entries sorted by amount, largest first; [] when the total is zero
    """
    year_transactions = transactions_for(transactions, year, category_type)
    total = sum_amounts(year_transactions)
    if total == 0:
        return []

    category_by_id = {c.id: c for c in categories}
    sub_by_id = {s.id: s for s in sub_categories}

    if flat_sub_categories:
        return _flat_distribution(year_transactions, category_by_id, sub_by_id, total)

    entries = _nested_distribution(year_transactions, category_by_id, sub_by_id)
    if with_comparison:
        _attach_previous_year(entries, transactions_for(transactions, year - 1, category_type))

    for entry in entries.values():
        entry.percentage = _share(entry.amount, total)
        for sub_entry in entry.sub_categories:
            sub_entry.percentage = _share(sub_entry.amount, entry.amount)
        entry.sub_categories = _by_amount(entry.sub_categories)
    return _by_amount(list(entries.values()))
