"""
Category and sub-category API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator

from pilotage.api.deps import get_accounting_store
from pilotage.application.accounting import AccountingStore
from pilotage.domain.accounting import CATEGORY_TYPE_EXPENSE, CATEGORY_TYPE_INCOME, CATEGORY_TYPES


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


# === Request/Response models ===

class CreateCategoryRequest(BaseModel):
    name: str
    category_type: str  # expense, income

    @field_validator("category_type")
    @classmethod
    def validate_category_type(cls, v: str) -> str:
        """Validation du type de catégorie"""
        if v not in CATEGORY_TYPES:
            raise ValueError(f"category_type doit être expense ou income, reçu : {v}")
        return v


class RenameRequest(BaseModel):
    name: str


class CreateSubCategoryRequest(BaseModel):
    name: str


class SubCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category_id: str
    is_system: bool


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    is_system: bool
    sub_categories: list[SubCategoryResponse] = []


def _category_response(store: AccountingStore, category) -> CategoryResponse:
    response = CategoryResponse.model_validate(category)
    response.sub_categories = [
        SubCategoryResponse.model_validate(s) for s in store.get_sub_categories_for_category(category.id)
    ]
    return response


# === Endpoints ===

@router.get("/", response_model=list[CategoryResponse])
def list_categories(
    category_type: str | None = None,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Catégories de l'organisation avec leurs sous-catégories"""
    if category_type == CATEGORY_TYPE_EXPENSE:
        categories = store.expense_categories
    elif category_type == CATEGORY_TYPE_INCOME:
        categories = store.income_categories
    elif category_type is None:
        categories = store.categories
    else:
        raise HTTPException(
            status_code=400,
            detail=f"category_type invalide : {category_type}. Utilisez expense ou income"
        )
    return [_category_response(store, c) for c in categories]


@router.post("/", response_model=CategoryResponse)
def create_category(
    req: CreateCategoryRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Créer une catégorie"""
    category = store.create_category(req.name, req.category_type)
    return _category_response(store, category)


@router.patch("/{category_id}", response_model=CategoryResponse)
def rename_category(
    category_id: str,
    req: RenameRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Renommer une catégorie (hors catégories système)"""
    category = store.update_category(category_id, req.name)
    return _category_response(store, category)


@router.get("/{category_id}/sub-categories", response_model=list[SubCategoryResponse])
def list_sub_categories(
    category_id: str,
    store: AccountingStore = Depends(get_accounting_store),
):
    return [SubCategoryResponse.model_validate(s) for s in store.get_sub_categories_for_category(category_id)]


@router.post("/{category_id}/sub-categories", response_model=SubCategoryResponse)
def create_sub_category(
    category_id: str,
    req: CreateSubCategoryRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Créer une sous-catégorie"""
    return SubCategoryResponse.model_validate(store.create_sub_category(req.name, category_id))


@router.patch("/sub-categories/{sub_category_id}", response_model=SubCategoryResponse)
def rename_sub_category(
    sub_category_id: str,
    req: RenameRequest,
    store: AccountingStore = Depends(get_accounting_store),
):
    """Renommer une sous-catégorie"""
    return SubCategoryResponse.model_validate(store.update_sub_category(sub_category_id, req.name))
