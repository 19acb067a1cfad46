"""
Accounting domain records

Transactions, categories, sub-categories and refunds as the client sees
them, plus the derived (never persisted) rollup records.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional


# Category types
CATEGORY_TYPE_EXPENSE = "expense"
CATEGORY_TYPE_INCOME = "income"
CATEGORY_TYPES = (CATEGORY_TYPE_EXPENSE, CATEGORY_TYPE_INCOME)

# Transaction visibility filter
FILTER_ALL = "all"
FILTER_COMMON = "common"
FILTER_PERSONAL = "personal"
TRANSACTION_FILTERS = (FILTER_ALL, FILTER_COMMON, FILTER_PERSONAL)

MONTHS_IN_YEAR = 12

_ZERO = Decimal("0")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class CategoryRecord:
    id: str
    name: str
    type: str  # expense, income
    organization_id: Optional[str] = None
    is_system: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "CategoryRecord":
        return cls(
            id=row.id,
            name=row.name,
            type=row.type,
            organization_id=row.organization_id,
            is_system=bool(row.is_system),
        )


@dataclass
class SubCategoryRecord:
    id: str
    name: str
    category_id: str
    is_system: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "SubCategoryRecord":
        return cls(
            id=row.id,
            name=row.name,
            category_id=row.category_id,
            is_system=bool(row.is_system),
        )


@dataclass
class TransactionRecord:
    """
    Transaction with its display details

    net_amount = amount minus refunds; when set it supersedes amount in
    every aggregate.
    """
    id: str
    amount: Decimal
    accounting_date: date
    category_id: str
    category_type: str
    transaction_date: Optional[date] = None
    description: Optional[str] = None
    subcategory_id: Optional[str] = None
    is_personal: bool = False
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    net_amount: Optional[Decimal] = None
    total_refunded: Decimal = _ZERO
    category_name: Optional[str] = None
    subcategory_name: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    @property
    def effective_amount(self) -> Decimal:
        """net_amount when present, amount otherwise."""
        return self.net_amount if self.net_amount is not None else self.amount

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransactionRecord":
        """Build from a get_organization_transactions row."""
        net_amount = data.get("net_amount")
        transaction_date = data.get("transaction_date")
        return cls(
            id=str(data["id"]),
            amount=_to_decimal(data["amount"]),
            accounting_date=_to_date(data["accounting_date"]),
            category_id=str(data["category_id"]),
            category_type=data["category_type"],
            transaction_date=_to_date(transaction_date) if transaction_date else None,
            description=data.get("description"),
            subcategory_id=data.get("subcategory_id"),
            is_personal=bool(data.get("is_personal", False)),
            user_id=data.get("user_id"),
            organization_id=data.get("organization_id"),
            net_amount=_to_decimal(net_amount) if net_amount is not None else None,
            total_refunded=_to_decimal(data.get("total_refunded") or 0),
            category_name=data.get("category_name"),
            subcategory_name=data.get("subcategory_name"),
            user_name=data.get("user_name"),
            user_email=data.get("user_email"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "net_amount": self.net_amount,
            "total_refunded": self.total_refunded,
            "description": self.description,
            "transaction_date": self.transaction_date,
            "accounting_date": self.accounting_date,
            "category_id": self.category_id,
            "category_type": self.category_type,
            "category_name": self.category_name,
            "subcategory_id": self.subcategory_id,
            "subcategory_name": self.subcategory_name,
            "is_personal": self.is_personal,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
        }


@dataclass
class RefundRecord:
    id: str
    transaction_id: str
    amount: Decimal
    refund_date: date
    description: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any, user_name: str | None = None, user_email: str | None = None) -> "RefundRecord":
        return cls(
            id=row.id,
            transaction_id=row.transaction_id,
            amount=_to_decimal(row.amount),
            refund_date=_to_date(row.refund_date),
            description=row.description,
            user_id=row.user_id,
            user_name=user_name,
            user_email=user_email,
        )


# ============================================================================
# Derived records
# ============================================================================


def empty_months() -> List[Decimal]:
    return [_ZERO] * MONTHS_IN_YEAR


@dataclass
class SubCategoryRollup:
    id: str
    name: str
    year_total: Decimal = _ZERO
    monthly_totals: List[Decimal] = field(default_factory=empty_months)

    def add(self, month_index: int, amount: Decimal) -> None:
        self.year_total += amount
        self.monthly_totals[month_index] += amount


@dataclass
class CategoryRollup:
    """Per-category totals for one year: yearly sum, 12 monthly sums, nested sub-categories."""
    category_id: str
    name: str
    type: str
    year_total: Decimal = _ZERO
    monthly_totals: List[Decimal] = field(default_factory=empty_months)
    sub_categories: List[SubCategoryRollup] = field(default_factory=list)

    def add(self, month_index: int, amount: Decimal) -> None:
        self.year_total += amount
        self.monthly_totals[month_index] += amount

    def find_sub_category(self, sub_category_id: str) -> Optional[SubCategoryRollup]:
        for sub in self.sub_categories:
            if sub.id == sub_category_id:
                return sub
        return None


@dataclass(frozen=True)
class Comparison:
    percentage: float
    absolute_diff: Decimal


@dataclass
class DistributionEntry:
    id: str
    name: str
    amount: Decimal = _ZERO
    percentage: float = 0.0
    previous_year_amount: Optional[Decimal] = None
    previous_year_percentage: Optional[float] = None
    percentage_change: Optional[float] = None
    sub_categories: List["DistributionEntry"] = field(default_factory=list)
