# storefront/routers/categories.py
"""
Categories and subcategories.

- Public: GET /api/categories → categories by `sort_order`, each with its
  subcategories by `display_order` (`?flat=true` leaves them out);
  GET /api/categories/{id}, GET /api/categories/{id}/subcategories
- Admin : /admin/categories → create / update / delete categories and their
  subcategories. Deleting a category deletes its subcategories; products keep
  their (now dangling) `category_id`.
"""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.core.errors import StoreError, UniqueViolation
from storefront.core.security import get_current_admin
from storefront.repositories.catalog import CategoryRepository, SubcategoryRepository
from storefront.schemas.category import (
    CategoryCreate,
    CategoryOut,
    CategoryTreeOut,
    CategoryUpdate,
    SubcategoryCreate,
    SubcategoryOut,
    SubcategoryUpdate,
)

logger = logging.getLogger("storefront.catalog")

# ---------- Public ----------
router = APIRouter(prefix="/api/categories", tags=["Categories"])

# ---------- Admin ----------
admin_router = APIRouter(
    prefix="/admin/categories",
    tags=["Admin: Categories"],
    dependencies=[Depends(get_current_admin)],
)

SLUG_TAKEN = "This slug is already in use"


def get_category_repo() -> CategoryRepository:
    return CategoryRepository()


def get_subcategory_repo() -> SubcategoryRepository:
    return SubcategoryRepository()


def _not_found(what: str = "Category") -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _store_failure(action: str, exc: StoreError) -> HTTPException:
    logger.error("%s failed: %s", action, exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}")


@router.get("", response_model=List[CategoryTreeOut], summary="List categories")
def list_categories(
    flat: bool = False,
    categories: CategoryRepository = Depends(get_category_repo),
    subcategories: SubcategoryRepository = Depends(get_subcategory_repo),
):
    try:
        rows = categories.list()
        children: Dict[str, List[dict]] = {}
        if not flat:
            for sub in subcategories.list():
                children.setdefault(sub.get("category_id"), []).append(sub)
    except StoreError as exc:
        raise _store_failure("list categories", exc)
    return [{**row, "subcategories": children.get(row["id"], [])} for row in rows]


@router.get("/{category_id}", response_model=CategoryOut, summary="Get category")
def get_category(category_id: str, categories: CategoryRepository = Depends(get_category_repo)):
    try:
        row = categories.get(category_id)
    except StoreError as exc:
        raise _store_failure("load category", exc)
    if row is None:
        raise _not_found()
    return row


@router.get("/{category_id}/subcategories", response_model=List[SubcategoryOut], summary="List subcategories")
def list_subcategories(category_id: str, subcategories: SubcategoryRepository = Depends(get_subcategory_repo)):
    try:
        return subcategories.list(category_id)
    except StoreError as exc:
        raise _store_failure("list subcategories", exc)


@admin_router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, summary="Create category")
def create_category(payload: CategoryCreate, categories: CategoryRepository = Depends(get_category_repo)):
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    try:
        return categories.create(data)
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("create category", exc)


@admin_router.patch("/{category_id}", response_model=CategoryOut, summary="Update category")
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    categories: CategoryRepository = Depends(get_category_repo),
):
    data = payload.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    try:
        row = categories.update(category_id, data)
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("update category", exc)
    if row is None:
        raise _not_found()
    return row


@admin_router.delete("/{category_id}", summary="Delete category")
def delete_category(category_id: str, categories: CategoryRepository = Depends(get_category_repo)):
    try:
        found = categories.delete(category_id)
    except StoreError as exc:
        raise _store_failure("delete category", exc)
    if not found:
        raise _not_found()
    logger.info("category %s deleted", category_id)
    return {"success": True}


# ---------- Admin: subcategories ----------
@admin_router.post(
    "/{category_id}/subcategories",
    response_model=SubcategoryOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create subcategory",
)
def create_subcategory(
    category_id: str,
    payload: SubcategoryCreate,
    categories: CategoryRepository = Depends(get_category_repo),
    subcategories: SubcategoryRepository = Depends(get_subcategory_repo),
):
    try:
        if categories.get(category_id) is None:
            raise _not_found()
        return subcategories.create({**payload.model_dump(), "category_id": category_id})
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("create subcategory", exc)


@admin_router.patch("/subcategories/{subcategory_id}", response_model=SubcategoryOut, summary="Update subcategory")
def update_subcategory(
    subcategory_id: str,
    payload: SubcategoryUpdate,
    categories: CategoryRepository = Depends(get_category_repo),
    subcategories: SubcategoryRepository = Depends(get_subcategory_repo),
):
    data = payload.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    try:
        if "category_id" in data and categories.get(data["category_id"]) is None:
            raise _not_found()
        row = subcategories.update(subcategory_id, data)
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("update subcategory", exc)
    if row is None:
        raise _not_found("Subcategory")
    return row


@admin_router.delete("/subcategories/{subcategory_id}", summary="Delete subcategory")
def delete_subcategory(subcategory_id: str, subcategories: SubcategoryRepository = Depends(get_subcategory_repo)):
    try:
        found = subcategories.delete(subcategory_id)
    except StoreError as exc:
        raise _store_failure("delete subcategory", exc)
    if not found:
        raise _not_found("Subcategory")
    return {"success": True}
