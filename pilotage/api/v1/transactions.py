"""
Transaction and refund API endpoints
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator

from pilotage.api.deps import get_accounting_store
from pilotage.application.accounting import AccountingStore
from pilotage.utils.validation import parse_amount


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])

# Fields a PATCH may explicitly clear
NULLABLE_FIELDS = ("subcategory_id", "description")


# === Request/Response models ===

class CreateTransactionRequest(BaseModel):
    amount: str  # Decimal as string, "12,50" accepted
    category_id: str
    accounting_date: date
    transaction_date: date | None = None
    subcategory_id: str | None = None
    description: str | None = None
    is_personal: bool = False

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return str(parse_amount(v))


class UpdateTransactionRequest(BaseModel):
    amount: str | None = None
    category_id: str | None = None
    accounting_date: date | None = None
    transaction_date: date | None = None
    subcategory_id: str | None = None
    description: str | None = None
    is_personal: bool | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return str(parse_amount(v)) if v is not None else None


class CreateRefundRequest(BaseModel):
    amount: str
    refund_date: date
    description: str | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return str(parse_amount(v))


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: Decimal
    net_amount: Decimal | None = None
    total_refunded: Decimal
    description: str | None = None
    transaction_date: date | None = None
    accounting_date: date
    category_id: str
    category_type: str
    category_name: str | None = None
    subcategory_id: str | None = None
    subcategory_name: str | None = None
    is_personal: bool
    user_id: str | None = None
    user_name: str | None = None
    user_email: str | None = None


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    amount: Decimal
    refund_date: date
    description: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    user_email: str | None = None


# === Endpoints ===

@router.get("/")
def list_transactions(store: AccountingStore = Depends(get_accounting_store)) -> Dict[str, Any]:
    """Transactions visibles avec le filtre courant"""
    return {
        "filter": store.transaction_filter,
        "stats": store.get_filter_stats(),
        "transactions": [
            TransactionResponse.model_validate(t).model_dump(mode="json") for t in store.transactions
        ],
    }


@router.post("/", response_model=TransactionResponse)
def create_transaction(
    req: CreateTransactionRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Créer une transaction dans l'organisation courante"""
    record = store.create_transaction(
        amount=Decimal(req.amount),
        category_id=req.category_id,
        accounting_date=req.accounting_date,
        transaction_date=req.transaction_date,
        subcategory_id=req.subcategory_id,
        description=req.description,
        is_personal=req.is_personal,
    )
    return TransactionResponse.model_validate(record)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    req: UpdateTransactionRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Modifier une transaction (champs fournis uniquement)"""
    changes = {
        key: value
        for key, value in req.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    if "amount" in changes:
        changes["amount"] = Decimal(changes["amount"])
    record = store.update_transaction(transaction_id, **changes)
    return TransactionResponse.model_validate(record)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Supprimer une transaction"""
    store.delete_transaction(transaction_id)
    return {"status": "deleted"}


@router.get("/{transaction_id}/refunds", response_model=list[RefundResponse])
def list_refunds(
    transaction_id: str,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Remboursements d'une transaction"""
    return [RefundResponse.model_validate(r) for r in store.get_refunds_for_transaction(transaction_id)]


@router.post("/{transaction_id}/refunds", response_model=RefundResponse)
def create_refund(
    transaction_id: str,
    req: CreateRefundRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Enregistrer un remboursement (le total remboursé n'est pas plafonné)"""
    refund = store.create_refund(
        transaction_id=transaction_id,
        amount=Decimal(req.amount),
        refund_date=req.refund_date,
        description=req.description,
    )
    return RefundResponse.model_validate(refund)
