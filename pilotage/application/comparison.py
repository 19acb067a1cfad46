"""
Period comparison for the accounting table cells.

A month value is compared either with the previous month or with the
average of a chosen set of months. The baseline is always read from the
whole rollup set (the "Total" row), also when the compared value belongs
to a single category or sub-category.
"""
from decimal import Decimal
from typing import Iterable, List, Sequence

from pilotage.domain.accounting import CategoryRollup, Comparison, MONTHS_IN_YEAR

COMPARISON_PREVIOUS = "previous"
COMPARISON_AVERAGE = "average"
COMPARISON_MODES = (COMPARISON_PREVIOUS, COMPARISON_AVERAGE)

# January to June
DEFAULT_AVERAGE_MONTHS = (0, 1, 2, 3, 4, 5)

_ZERO = Decimal("0")


class ComparisonValidationError(ValueError):
    """Paramètres de comparaison invalides"""
    pass


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compare_amounts(current, baseline) -> Comparison:
    """
    Percentage and absolute delta of `current` against `baseline`

    A zero baseline gives +100% (delta = current) when current is positive,
    and 0% / 0 otherwise.
    """
    current = _to_decimal(current)
    baseline = _to_decimal(baseline)
    if baseline == 0:
        if current > 0:
            return Comparison(percentage=100.0, absolute_diff=current)
        return Comparison(percentage=0.0, absolute_diff=_ZERO)

    percentage = float((current - baseline) / abs(baseline) * 100)
    return Comparison(percentage=percentage, absolute_diff=current - baseline)


def percentage_change(current, previous) -> float:
    """Year-over-year change used by the balance cards (same zero rule)."""
    return compare_amounts(current, previous).percentage


def previous_month_index(month_index: int) -> int:
    """January wraps to December of the same data set."""
    return MONTHS_IN_YEAR - 1 if month_index == 0 else month_index - 1


def _month_total(rollups: Iterable[CategoryRollup], month_index: int) -> Decimal:
    return sum((r.monthly_totals[month_index] for r in rollups), _ZERO)


def _validate_month(month_index: int) -> None:
    if not 0 <= month_index < MONTHS_IN_YEAR:
        raise ComparisonValidationError(f"Mois invalide : {month_index}")


def comparison_baseline(
    rollups: Sequence[CategoryRollup],
    month_index: int,
    mode: str = COMPARISON_PREVIOUS,
    selected_months: Iterable[int] = DEFAULT_AVERAGE_MONTHS,
) -> Decimal:
    _validate_month(month_index)
    if mode == COMPARISON_PREVIOUS:
        return _month_total(rollups, previous_month_index(month_index))
    if mode == COMPARISON_AVERAGE:
        months: List[int] = sorted(set(selected_months))
        for m in months:
            _validate_month(m)
        if not months:
            return _ZERO
        total = sum((_month_total(rollups, m) for m in months), _ZERO)
        return total / len(months)
    raise ComparisonValidationError(f"Mode de comparaison inconnu : {mode}")


def calculate_comparison(
    current_amount,
    month_index: int,
    rollups: Sequence[CategoryRollup],
    mode: str = COMPARISON_PREVIOUS,
    selected_months: Iterable[int] = DEFAULT_AVERAGE_MONTHS,
) -> Comparison:
    """
    Compare a month cell with the previous month or a custom average

    Args:
        current_amount: value displayed in the cell
        month_index: 0-based month of the cell
        rollups: rollups of the selected year (baseline source)
        mode: "previous" or "average"
        selected_months: months averaged in "average" mode
    """
    baseline = comparison_baseline(rollups, month_index, mode, selected_months)
    return compare_amounts(current_amount, baseline)


def month_comparisons(
    rollups: Sequence[CategoryRollup],
    monthly_totals: Sequence[Decimal],
    mode: str = COMPARISON_PREVIOUS,
    selected_months: Iterable[int] = DEFAULT_AVERAGE_MONTHS,
) -> List[Comparison]:
    """Comparison for each of the 12 cells of one table row."""
    selected = tuple(selected_months)
    return [
        calculate_comparison(amount, index, rollups, mode, selected)
        for index, amount in enumerate(monthly_totals)
    ]
