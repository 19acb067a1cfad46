"""
Accounting aggregation endpoints (table, comparison, distribution, overview)
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator

from pilotage.api.deps import get_accounting_store
from pilotage.application.accounting import AccountingStore
from pilotage.application.comparison import (
    COMPARISON_MODES,
    COMPARISON_PREVIOUS,
    DEFAULT_AVERAGE_MONTHS,
    calculate_comparison,
    month_comparisons,
)
from pilotage.application.distribution import build_distribution
from pilotage.application.filters import validate_filter
from pilotage.application.overview import (
    available_categories,
    category_evolution,
    monthly_series,
    top_categories,
    year_summary,
)
from pilotage.application.rollups import (
    TABLE_YEAR_SPAN,
    build_category_rollups,
    build_multi_year_rollups,
    rollup_totals,
)
from pilotage.config import get_settings
from pilotage.domain.accounting import CATEGORY_TYPE_EXPENSE, CATEGORY_TYPES
from pilotage.utils.money import format_money, format_percentage


router = APIRouter(prefix="/api/v1/accounting", tags=["accounting"])


# === Response models ===

class SubCategoryRollupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    year_total: Decimal
    monthly_totals: List[Decimal]


class CategoryRollupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category_id: str
    name: str
    type: str
    year_total: Decimal
    monthly_totals: List[Decimal]
    sub_categories: List[SubCategoryRollupResponse]


class TotalRow(BaseModel):
    year_total: Decimal
    monthly_totals: List[Decimal]


class RollupTableResponse(BaseModel):
    year: int
    category_type: str
    categories: List[CategoryRollupResponse]
    total: TotalRow


class ComparisonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    percentage: float
    absolute_diff: Decimal


class DistributionEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    amount: Decimal
    percentage: float
    previous_year_amount: Decimal | None = None
    previous_year_percentage: float | None = None
    percentage_change: float | None = None
    sub_categories: List["DistributionEntryResponse"] = []


DistributionEntryResponse.model_rebuild()


class FilterRequest(BaseModel):
    filter: str

    @field_validator("filter")
    @classmethod
    def validate_value(cls, v: str) -> str:
        """Valeurs acceptées : all, common, personal"""
        return validate_filter(v)


# === Helpers ===

def selected_year(year: int | None = None) -> int:
    """Année demandée, l'année en cours par défaut"""
    return year or date.today().year


def _check_type(category_type: str) -> str:
    if category_type not in CATEGORY_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Type invalide : {category_type}. Utilisez expense ou income"
        )
    return category_type


def _table(store: AccountingStore, category_type: str, year: int, search: str | None) -> RollupTableResponse:
    rollups = build_category_rollups(
        store.transactions, store.categories, store.sub_categories, category_type, year, search
    )
    year_total, monthly = rollup_totals(rollups)
    return RollupTableResponse(
        year=year,
        category_type=category_type,
        categories=[CategoryRollupResponse.model_validate(r) for r in rollups],
        total=TotalRow(year_total=year_total, monthly_totals=monthly),
    )


# === Endpoints ===

@router.get("/rollups", response_model=RollupTableResponse)
def get_rollups(
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    search: str | None = None,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Tableau catégories x mois d'une année"""
    return _table(store, _check_type(category_type), year, search)


@router.get("/table", response_model=list[RollupTableResponse])
def get_multi_year_table(
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    search: str | None = None,
    span: int = Query(default=TABLE_YEAR_SPAN, ge=1, le=10),
    store: AccountingStore = Depends(get_accounting_store),
):
    """Année sélectionnée et années précédentes, la plus récente d'abord"""
    _check_type(category_type)
    by_year = build_multi_year_rollups(
        store.transactions, store.categories, store.sub_categories, category_type, year, search, span
    )
    tables = []
    for table_year, rollups in by_year.items():
        year_total, monthly = rollup_totals(rollups)
        tables.append(RollupTableResponse(
            year=table_year,
            category_type=category_type,
            categories=[CategoryRollupResponse.model_validate(r) for r in rollups],
            total=TotalRow(year_total=year_total, monthly_totals=monthly),
        ))
    return tables


@router.get("/comparison", response_model=ComparisonResponse)
def get_comparison(
    amount: Decimal,
    month: int = Query(ge=0, le=11),
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    mode: str = COMPARISON_PREVIOUS,
    months: List[int] = Query(default=list(DEFAULT_AVERAGE_MONTHS)),
    store: AccountingStore = Depends(get_accounting_store),
):
    """Comparer une cellule avec le mois précédent ou une moyenne de mois"""
    if mode not in COMPARISON_MODES:
        raise HTTPException(status_code=400, detail=f"Mode de comparaison inconnu : {mode}")
    rollups = build_category_rollups(
        store.transactions, store.categories, store.sub_categories, _check_type(category_type), year
    )
    return ComparisonResponse.model_validate(calculate_comparison(amount, month, rollups, mode, months))


@router.get("/comparison/total", response_model=list[ComparisonResponse])
def get_total_row_comparisons(
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    mode: str = COMPARISON_PREVIOUS,
    months: List[int] = Query(default=list(DEFAULT_AVERAGE_MONTHS)),
    store: AccountingStore = Depends(get_accounting_store),
):
    """Comparaisons des 12 mois de la ligne Total"""
    if mode not in COMPARISON_MODES:
        raise HTTPException(status_code=400, detail=f"Mode de comparaison inconnu : {mode}")
    rollups = build_category_rollups(
        store.transactions, store.categories, store.sub_categories, _check_type(category_type), year
    )
    _, monthly = rollup_totals(rollups)
    return [ComparisonResponse.model_validate(c) for c in month_comparisons(rollups, monthly, mode, months)]


@router.get("/distribution", response_model=list[DistributionEntryResponse])
def get_distribution(
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    flat: bool = False,
    with_comparison: bool = False,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Répartition par catégorie (ou par sous-catégorie en mode à plat)"""
    entries = build_distribution(
        store.transactions, store.categories, store.sub_categories,
        _check_type(category_type), year,
        flat_sub_categories=flat, with_comparison=with_comparison,
    )
    return [DistributionEntryResponse.model_validate(e) for e in entries]


@router.get("/summary")
def get_summary(
    year: int = Depends(selected_year),
    store: AccountingStore = Depends(get_accounting_store),
) -> Dict[str, Any]:
    """Cartes revenus / dépenses / solde avec évolution sur un an"""
    summary = year_summary(store.transactions, year, date.today())
    currency = get_settings().DEFAULT_CURRENCY
    summary["formatted"] = {
        "revenues": format_money(summary["revenues"], currency),
        "expenses": format_money(summary["expenses"], currency),
        "balance": format_money(summary["balance"], currency),
        "revenue_change": format_percentage(summary["revenue_change"]),
        "expense_change": format_percentage(summary["expense_change"]),
        "balance_change": format_percentage(summary["balance_change"]),
    }
    return summary


@router.get("/monthly")
def get_monthly_series(
    year: int = Depends(selected_year),
    store: AccountingStore = Depends(get_accounting_store),
) -> List[Dict[str, Any]]:
    """Revenus et dépenses mois par mois"""
    return monthly_series(store.transactions, year)


@router.get("/evolution")
def get_category_evolution(
    year: int = Depends(selected_year),
    category_type: str = CATEGORY_TYPE_EXPENSE,
    categories: List[str] | None = Query(default=None),
    with_comparison: bool = False,
    store: AccountingStore = Depends(get_accounting_store),
) -> Dict[str, Any]:
    """Évolution mensuelle des catégories choisies (5 plus grosses par défaut)"""
    _check_type(category_type)
    selected = categories or top_categories(store.transactions, store.categories, category_type, year)
    return {
        "selected": selected,
        "available": available_categories(store.transactions, store.categories, category_type, year),
        "points": category_evolution(
            store.transactions, store.categories, category_type, year, selected, with_comparison
        ),
    }


@router.get("/filter")
def get_filter(store: AccountingStore = Depends(get_accounting_store)) -> Dict[str, Any]:
    return {"filter": store.transaction_filter, "stats": store.get_filter_stats()}


@router.put("/filter")
def set_filter(
    req: FilterRequest,
    store: AccountingStore = Depends(get_accounting_store),
) -> Dict[str, Any]:
    """Changer le filtre de visibilité (persisté en session)"""
    store.set_filter(req.filter)
    return {"filter": store.transaction_filter, "stats": store.get_filter_stats()}
