"""
storefront/routers/carts.py
Cart endpoints used by the storefront UI.

Behavior
- Every response is an envelope: {"success": bool, "error"?: str, ...payload}.
  Failures keep that body and use 401 / 422 / 409 / 500 as the status.
- GET returns one line per (product_id, variant). Duplicate rows left behind by
  racing writes are merged in the response (quantities summed) and deleted in a
  background task after the response is sent.
- POST /items adds to an existing line instead of creating a second one.
- PATCH / DELETE on an id that belongs to someone else changes nothing and
  reports `updated: 0` / success, same as a missing id.
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from storefront.config import settings
from storefront.core.responses import envelope_response
from storefront.core.security import get_optional_principal
from storefront.repositories.cart_items import CartItemRepository
from storefront.schemas.cart import AddCartItemIn, UpdateQuantityIn
from storefront.schemas.principal import Principal
from storefront.services.cart_actions import CartActions

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def get_cart_actions() -> CartActions:
    return CartActions(CartItemRepository(), max_attempts=settings.cart_add_max_attempts)


@router.get("")
def list_cart(
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: CartActions = Depends(get_cart_actions),
):
    """Cart lines for the signed-in user, duplicates merged."""
    return envelope_response(actions.list_cart(principal, schedule=background_tasks.add_task))


@router.post("/items")
def add_item(
    payload: AddCartItemIn,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: CartActions = Depends(get_cart_actions),
):
    """Add a product/variant; adds to the quantity when the line already exists."""
    return envelope_response(actions.add_item(principal, payload.model_dump()))


@router.patch("/items/{item_id}")
def update_item(
    item_id: str,
    payload: UpdateQuantityIn,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: CartActions = Depends(get_cart_actions),
):
    """Set the quantity of one line (>= 1)."""
    return envelope_response(actions.update_item(principal, item_id, payload.quantity))


@router.delete("/items/{item_id}")
def remove_item(
    item_id: str,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: CartActions = Depends(get_cart_actions),
):
    return envelope_response(actions.remove_item(principal, item_id))


@router.delete("")
def clear_cart(
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: CartActions = Depends(get_cart_actions),
):
    """Empty the cart (also called when checkout completes)."""
    return envelope_response(actions.clear_cart(principal))
