"""
# `storefront/routers/products.py` - product catalog

## Public (`/api/products`)
Only `published` products are visible here.

| method | path | notes |
|---|---|---|
| GET | /api/products | newest first; optional `category_id`, `subcategory_id` |
| GET | /api/products/slug/{slug} | product page lookup |
| GET | /api/products/{product_id} | 404 unless published |

## Admin (`/admin/products`, admin role)
| method | path | notes |
|---|---|---|
| GET | /admin/products | every status, optional `status` filter |
| GET | /admin/products/{product_id} | any status |
| POST | /admin/products | 201; slug taken → 409 |
| PATCH | /admin/products/{product_id} | partial update; 404 / 409 |
| DELETE | /admin/products/{product_id} | hard delete; 404 if missing |

Store failures answer 500. Cart rows keep their own snapshot of name, price
and image, so editing or deleting a product never touches carts.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.core.errors import StoreError, UniqueViolation
from storefront.core.security import get_current_admin
from storefront.repositories.catalog import ProductRepository
from storefront.schemas.product import ProductCreate, ProductOut, ProductStatus, ProductUpdate

logger = logging.getLogger("storefront.catalog")

router = APIRouter(prefix="/api/products", tags=["Products"])
admin_router = APIRouter(prefix="/admin/products", tags=["Admin: Products"],
                         dependencies=[Depends(get_current_admin)])

SLUG_TAKEN = "A product with this slug already exists"


def get_product_repo() -> ProductRepository:
    return ProductRepository()


def _store_failure(action: str, exc: StoreError) -> HTTPException:
    logger.error("%s failed: %s", action, exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}")


# ---------- public ----------
@router.get("", response_model=List[ProductOut], summary="List published products")
def list_products(
    category_id: Optional[str] = Query(None, description="Category id (optional)"),
    subcategory_id: Optional[str] = Query(None, description="Subcategory id (optional)"),
    repo: ProductRepository = Depends(get_product_repo),
):
    try:
        return repo.list(status="published", category_id=category_id, subcategory_id=subcategory_id)
    except StoreError as exc:
        raise _store_failure("list products", exc)


@router.get("/slug/{slug}", response_model=ProductOut, summary="Get product by slug")
def get_product_by_slug(slug: str, repo: ProductRepository = Depends(get_product_repo)):
    try:
        product = repo.get_by_slug(slug)
    except StoreError as exc:
        raise _store_failure("load product", exc)
    if product is None or product.get("status") != "published":
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("/{product_id}", response_model=ProductOut, summary="Get product")
def get_product(product_id: str, repo: ProductRepository = Depends(get_product_repo)):
    try:
        product = repo.get(product_id)
    except StoreError as exc:
        raise _store_failure("load product", exc)
    if product is None or product.get("status") != "published":
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


# ---------- admin ----------
@admin_router.get("", response_model=List[ProductOut], summary="List all products")
def admin_list_products(
    status_filter: Optional[ProductStatus] = Query(None, alias="status"),
    repo: ProductRepository = Depends(get_product_repo),
):
    try:
        return repo.list(status=status_filter)
    except StoreError as exc:
        raise _store_failure("list products", exc)


@admin_router.get("/{product_id}", response_model=ProductOut, summary="Get product (any status)")
def admin_get_product(product_id: str, repo: ProductRepository = Depends(get_product_repo)):
    try:
        product = repo.get(product_id)
    except StoreError as exc:
        raise _store_failure("load product", exc)
    if product is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@admin_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED, summary="Create product")
def create_product(payload: ProductCreate, repo: ProductRepository = Depends(get_product_repo)):
    try:
        product = repo.create(payload.model_dump())
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("create product", exc)
    logger.info("product %s created (%s)", product["id"], product["slug"])
    return product


@admin_router.patch("/{product_id}", response_model=ProductOut, summary="Update product")
def update_product(product_id: str, payload: ProductUpdate, repo: ProductRepository = Depends(get_product_repo)):
    data = payload.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    try:
        product = repo.update(product_id, data)
    except UniqueViolation:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)
    except StoreError as exc:
        raise _store_failure("update product", exc)
    if product is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@admin_router.delete("/{product_id}", summary="Delete product")
def delete_product(product_id: str, repo: ProductRepository = Depends(get_product_repo)):
    try:
        found = repo.delete(product_id)
    except StoreError as exc:
        raise _store_failure("delete product", exc)
    if not found:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Product not found")
    logger.info("product %s deleted", product_id)
    return {"success": True}
