# storefront/routers/wishlist.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.core.responses import envelope_response
from storefront.core.security import get_optional_principal
from storefront.repositories.wishlist_items import WishlistRepository
from storefront.schemas.principal import Principal
from storefront.services.wishlist_actions import WishlistActions

router = APIRouter(prefix="/api/wishlist", tags=["Wishlist"])


class WishlistAddIn(BaseModel):
    product_id: str = Field(..., description="Product id")


class WishlistSyncIn(BaseModel):
    product_ids: List[str] = Field(default_factory=list, description="Ids saved before sign-in")


def get_wishlist_actions() -> WishlistActions:
    return WishlistActions(WishlistRepository())


@router.get("")
def list_wishlist(
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: WishlistActions = Depends(get_wishlist_actions),
):
    return envelope_response(actions.list_items(principal))


@router.post("")
def add_to_wishlist(
    payload: WishlistAddIn,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: WishlistActions = Depends(get_wishlist_actions),
):
    return envelope_response(actions.add(principal, payload.product_id))


@router.delete("/{product_id}")
def remove_from_wishlist(
    product_id: str,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: WishlistActions = Depends(get_wishlist_actions),
):
    return envelope_response(actions.remove(principal, product_id))


@router.post("/sync")
def sync_wishlist(
    payload: WishlistSyncIn,
    principal: Optional[Principal] = Depends(get_optional_principal),
    actions: WishlistActions = Depends(get_wishlist_actions),
):
    """Merge the ids a visitor saved before signing in."""
    return envelope_response(actions.sync(principal, payload.product_ids))
