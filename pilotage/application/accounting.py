"""
Accounting store - cached categories, sub-categories, transactions and refunds
of the current organization, with their mutations.

Mutations patch the caches optimistically, call the backend, then reconcile
the cache with the row the backend returned. A failure restores the
previous cache state and propagates.
"""
import logging
import uuid
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from pilotage.application.cache import EntityCache
from pilotage.application.filters import FilterStore, validate_filter
from pilotage.application.overview import filter_stats
from pilotage.domain.accounting import (
    CATEGORY_TYPE_EXPENSE,
    CATEGORY_TYPE_INCOME,
    CATEGORY_TYPES,
    FILTER_COMMON,
    FILTER_PERSONAL,
    CategoryRecord,
    RefundRecord,
    SubCategoryRecord,
    TransactionRecord,
)
from pilotage.infrastructure.db.models import (
    CategoryModel,
    Profile,
    RefundModel,
    SubCategoryModel,
    TransactionModel,
)
from pilotage.infrastructure.remote.gateway import RemoteAPIError, RemoteGateway

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

TRANSACTION_FIELDS = (
    "amount", "description", "transaction_date", "accounting_date",
    "category_id", "subcategory_id", "is_personal",
)


class AccountingValidationError(ValueError):
    """Erreur de validation comptable"""
    pass


def _clean_name(name: str | None, what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise AccountingValidationError(f"Le nom de la {what} ne peut pas être vide")
    return name


def _positive_amount(amount: Any) -> Decimal:
    try:
        amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        raise AccountingValidationError(f"Montant invalide : {amount}")
    if amount <= 0:
        raise AccountingValidationError("Le montant doit être supérieur à zéro")
    return amount


class AccountingStore:
    """
    Accounting data of one organization as seen by one user

    Usage:
        store = AccountingStore(gateway, user_id, organization_id, FilterStore(session))
        store.refetch()
        store.create_transaction(amount="42.50", category_id=..., ...)
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        user_id: str | None,
        organization_id: str | None,
        filter_store: FilterStore | None = None,
    ):
        self.gateway = gateway
        self.user_id = user_id
        self.organization_id = organization_id
        self.filter_store = filter_store if filter_store is not None else FilterStore()
        self.transaction_filter = self.filter_store.value
        self.loading = False

        self._categories: EntityCache[CategoryRecord] = EntityCache()
        self._sub_categories: EntityCache[SubCategoryRecord] = EntityCache()
        self._transactions: EntityCache[TransactionRecord] = EntityCache()
        self._refunds: EntityCache[RefundRecord] = EntityCache()

        self._unsubscribe = self.filter_store.subscribe(self._on_filter_changed)

    def close(self) -> None:
        """Stop listening to filter changes."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Cached views
    # ------------------------------------------------------------------

    @property
    def categories(self) -> List[CategoryRecord]:
        return self._categories.items

    @property
    def sub_categories(self) -> List[SubCategoryRecord]:
        return self._sub_categories.items

    @property
    def transactions(self) -> List[TransactionRecord]:
        return self._transactions.items

    @property
    def refunds(self) -> List[RefundRecord]:
        return self._refunds.items

    @property
    def expense_categories(self) -> List[CategoryRecord]:
        return [c for c in self.categories if c.type == CATEGORY_TYPE_EXPENSE]

    @property
    def income_categories(self) -> List[CategoryRecord]:
        return [c for c in self.categories if c.type == CATEGORY_TYPE_INCOME]

    def get_sub_categories_for_category(self, category_id: str) -> List[SubCategoryRecord]:
        return [s for s in self.sub_categories if s.category_id == category_id]

    def get_refunds_for_transaction(self, transaction_id: str) -> List[RefundRecord]:
        return [r for r in self.refunds if r.transaction_id == transaction_id]

    def get_filter_stats(self) -> Dict[str, int]:
        return filter_stats(self.transactions)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def fetch_categories(self) -> None:
        if not self.organization_id:
            return
        rows = self.gateway.select(
            CategoryModel,
            CategoryModel.organization_id == self.organization_id,
            order_by=(CategoryModel.type.asc(), CategoryModel.name.asc()),
        )
        self._categories.replace_all(CategoryRecord.from_row(r) for r in rows)

    def fetch_sub_categories(self) -> None:
        if not self.organization_id:
            return
        organization_categories = select(CategoryModel.id).where(
            CategoryModel.organization_id == self.organization_id
        )
        rows = self.gateway.select(
            SubCategoryModel,
            SubCategoryModel.category_id.in_(organization_categories),
            order_by=(SubCategoryModel.name.asc(),),
        )
        self._sub_categories.replace_all(SubCategoryRecord.from_row(r) for r in rows)

    def fetch_transactions(self, transaction_filter: str | None = None) -> None:
        """Load detail rows through get_organization_transactions."""
        if not self.organization_id or not self.user_id:
            return
        transaction_filter = validate_filter(transaction_filter or self.transaction_filter)
        rows = self.gateway.call_rpc(
            "get_organization_transactions",
            org_id=self.organization_id,
            filter_type=transaction_filter,
            current_user_id=self.user_id,
        )
        self._transactions.replace_all(TransactionRecord.from_mapping(r) for r in rows)

    def fetch_refunds(self) -> None:
        transaction_ids = [t.id for t in self.transactions]
        if not transaction_ids:
            self._refunds.replace_all([])
            return

        rows = self.gateway.select(
            RefundModel,
            RefundModel.transaction_id.in_(transaction_ids),
            order_by=(RefundModel.refund_date.asc(),),
        )
        user_ids = {r.user_id for r in rows}
        profiles = {
            p.id: p for p in (self.gateway.select(Profile, Profile.id.in_(user_ids)) if user_ids else [])
        }
        self._refunds.replace_all(
            RefundRecord.from_row(
                r,
                user_name=getattr(profiles.get(r.user_id), "full_name", None),
                user_email=getattr(profiles.get(r.user_id), "email", None),
            )
            for r in rows
        )

    def refetch(self) -> None:
        """
        Reload every list

        A failing part keeps its previous snapshot; the other parts still
        load and the first failure is raised at the end.
        """
        if not self.organization_id:
            return

        self.loading = True
        failures: List[RemoteAPIError] = []
        try:
            for load in (self.fetch_categories, self.fetch_sub_categories, self.fetch_transactions, self.fetch_refunds):
                try:
                    load()
                except RemoteAPIError as exc:
                    logger.exception("Accounting %s failed for organization %s", load.__name__, self.organization_id)
                    failures.append(exc)
        finally:
            self.loading = False
        if failures:
            raise failures[0]

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------

    def set_filter(self, transaction_filter: str) -> None:
        """Change the filter, reload transactions and notify the other stores."""
        validate_filter(transaction_filter)
        self.loading = True
        try:
            self.fetch_transactions(transaction_filter)
        finally:
            self.loading = False
        self.transaction_filter = transaction_filter
        self.filter_store.set(transaction_filter)

    def _on_filter_changed(self, transaction_filter: str) -> None:
        if transaction_filter == self.transaction_filter:
            return
        self.fetch_transactions(transaction_filter)
        self.transaction_filter = transaction_filter

    def _is_visible(self, record: TransactionRecord) -> bool:
        own = record.user_id == self.user_id
        if self.transaction_filter == FILTER_COMMON:
            return not record.is_personal
        if self.transaction_filter == FILTER_PERSONAL:
            return record.is_personal and own
        return not record.is_personal or own

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _require_context(self) -> None:
        if not self.user_id or not self.organization_id:
            raise AccountingValidationError("Utilisateur ou organisation non disponible")

    def _validate_classification(self, category_id: str, subcategory_id: str | None) -> CategoryRecord:
        category = self._categories.get(category_id)
        if category is None:
            raise AccountingValidationError(f"Catégorie {category_id} introuvable")
        if subcategory_id:
            sub_category = self._sub_categories.get(subcategory_id)
            if sub_category is None or sub_category.category_id != category_id:
                raise AccountingValidationError("La sous-catégorie n'appartient pas à cette catégorie")
        return category

    def _refund_total(self, transaction_id: str) -> Decimal:
        rows = self.gateway.select(RefundModel, RefundModel.transaction_id == transaction_id)
        return sum((Decimal(str(r.amount)) for r in rows), _ZERO)

    def _detail_from_row(self, row: TransactionModel, previous: TransactionRecord | None = None) -> TransactionRecord:
        """Rebuild a detail record from a raw transactions row and the caches."""
        category = self._categories.get(row.category_id)
        sub_category = self._sub_categories.get(row.subcategory_id) if row.subcategory_id else None
        amount = Decimal(str(row.amount))
        total_refunded = self._refund_total(row.id)
        return TransactionRecord(
            id=row.id,
            amount=amount,
            accounting_date=row.accounting_date,
            category_id=row.category_id,
            category_type=category.type if category else (previous.category_type if previous else CATEGORY_TYPE_EXPENSE),
            transaction_date=row.transaction_date,
            description=row.description,
            subcategory_id=row.subcategory_id,
            is_personal=bool(row.is_personal),
            user_id=row.user_id,
            organization_id=row.organization_id,
            net_amount=amount - total_refunded,
            total_refunded=total_refunded,
            category_name=category.name if category else None,
            subcategory_name=sub_category.name if sub_category else None,
            user_name=previous.user_name if previous else None,
            user_email=previous.user_email if previous else None,
        )

    def create_transaction(
        self,
        amount: Any,
        category_id: str,
        accounting_date: date,
        transaction_date: date | None = None,
        subcategory_id: str | None = None,
        description: str | None = None,
        is_personal: bool = False,
    ) -> TransactionRecord:
        self._require_context()
        amount = _positive_amount(amount)
        category = self._validate_classification(category_id, subcategory_id)
        transaction_date = transaction_date or accounting_date

        pending = TransactionRecord(
            id=f"pending-{uuid.uuid4()}",
            amount=amount,
            accounting_date=accounting_date,
            category_id=category_id,
            category_type=category.type,
            transaction_date=transaction_date,
            description=description,
            subcategory_id=subcategory_id,
            is_personal=is_personal,
            user_id=self.user_id,
            organization_id=self.organization_id,
            category_name=category.name,
        )
        with self._transactions.optimistic() as cache:
            if self._is_visible(pending):
                cache.upsert(pending)
            row = self.gateway.insert(
                TransactionModel,
                amount=amount,
                description=description,
                transaction_date=transaction_date,
                accounting_date=accounting_date,
                category_id=category_id,
                subcategory_id=subcategory_id,
                is_personal=is_personal,
                user_id=self.user_id,
                organization_id=self.organization_id,
            )
            cache.discard(pending.id)
            record = self._detail_from_row(row)
            if self._is_visible(record):
                cache.upsert(record)

        logger.info("Transaction %s created in organization %s", record.id, self.organization_id)
        return record

    def update_transaction(self, transaction_id: str, **changes: Any) -> TransactionRecord:
        unknown = set(changes) - set(TRANSACTION_FIELDS)
        if unknown:
            raise AccountingValidationError(f"Champs non modifiables : {', '.join(sorted(unknown))}")
        if not changes:
            raise AccountingValidationError("Aucune modification à enregistrer")
        if "amount" in changes:
            changes["amount"] = _positive_amount(changes["amount"])

        previous = self._transactions.get(transaction_id)
        if "category_id" in changes or "subcategory_id" in changes:
            current = previous or self.gateway.get(TransactionModel, transaction_id)
            category_id = changes.get("category_id") or (current.category_id if current else None)
            if "subcategory_id" in changes:
                subcategory_id = changes["subcategory_id"]
            else:
                subcategory_id = current.subcategory_id if current else None
                kept = self._sub_categories.get(subcategory_id) if subcategory_id else None
                if kept is not None and kept.category_id != category_id:
                    # the sub-category of the old parent cannot follow the move
                    changes["subcategory_id"] = subcategory_id = None
            self._validate_classification(category_id, subcategory_id)

        with self._transactions.optimistic() as cache:
            if previous is not None:
                cache.upsert(replace(previous, **changes))
            row = self.gateway.update(TransactionModel, transaction_id, **changes)
            record = self._detail_from_row(row, previous)
            if self._is_visible(record):
                cache.upsert(record)
            else:
                cache.discard(transaction_id)
        return record

    def delete_transaction(self, transaction_id: str) -> None:
        with self._transactions.optimistic() as cache:
            cache.discard(transaction_id)
            self.gateway.delete(TransactionModel, transaction_id)

        for refund in self.get_refunds_for_transaction(transaction_id):
            self._refunds.discard(refund.id)

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def create_refund(
        self,
        transaction_id: str,
        amount: Any,
        refund_date: date,
        description: str | None = None,
    ) -> RefundRecord:
        """
        Record a refund; the refunded total is not capped by the
        transaction amount.
        """
        if not self.user_id:
            raise AccountingValidationError("Utilisateur non disponible")
        amount = _positive_amount(amount)

        row = self.gateway.insert(
            RefundModel,
            transaction_id=transaction_id,
            amount=amount,
            refund_date=refund_date,
            description=description,
            user_id=self.user_id,
        )
        refund = RefundRecord.from_row(row)
        self._refunds.upsert(refund)

        previous = self._transactions.get(transaction_id)
        if previous is not None:
            total_refunded = self._refund_total(transaction_id)
            self._transactions.upsert(replace(
                previous,
                total_refunded=total_refunded,
                net_amount=previous.amount - total_refunded,
            ))
        return refund

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def _sort_categories(self) -> None:
        self._categories.replace_all(sorted(self.categories, key=lambda c: (c.type, c.name)))

    def create_category(self, name: str, category_type: str) -> CategoryRecord:
        if not self.organization_id:
            raise AccountingValidationError("Organisation non disponible")
        name = _clean_name(name, "catégorie")
        if category_type not in CATEGORY_TYPES:
            raise AccountingValidationError(
                f"Le type doit être {CATEGORY_TYPE_EXPENSE} ou {CATEGORY_TYPE_INCOME}, reçu : {category_type}"
            )

        row = self.gateway.insert(
            CategoryModel, name=name, type=category_type, organization_id=self.organization_id
        )
        category = CategoryRecord.from_row(row)
        self._categories.upsert(category)
        self._sort_categories()
        return category

    def update_category(self, category_id: str, name: str) -> CategoryRecord:
        name = _clean_name(name, "catégorie")
        current = self._categories.get(category_id)
        if current is not None and current.is_system:
            raise AccountingValidationError("Impossible de modifier une catégorie système")

        with self._categories.optimistic() as cache:
            if current is not None:
                cache.upsert(replace(current, name=name))
            row = self.gateway.update(CategoryModel, category_id, name=name)
            category = CategoryRecord.from_row(row)
            cache.upsert(category)
        self._sort_categories()
        return category

    def create_sub_category(self, name: str, category_id: str) -> SubCategoryRecord:
        name = _clean_name(name, "sous-catégorie")
        if self._categories.get(category_id) is None:
            raise AccountingValidationError(f"Catégorie {category_id} introuvable")

        row = self.gateway.insert(SubCategoryModel, name=name, category_id=category_id)
        sub_category = SubCategoryRecord.from_row(row)
        self._sub_categories.upsert(sub_category)
        return sub_category

    def update_sub_category(self, sub_category_id: str, name: str) -> SubCategoryRecord:
        name = _clean_name(name, "sous-catégorie")
        with self._sub_categories.optimistic() as cache:
            current: Optional[SubCategoryRecord] = cache.get(sub_category_id)
            if current is not None:
                cache.upsert(replace(current, name=name))
            row = self.gateway.update(SubCategoryModel, sub_category_id, name=name)
            sub_category = SubCategoryRecord.from_row(row)
            cache.upsert(sub_category)
        return sub_category
