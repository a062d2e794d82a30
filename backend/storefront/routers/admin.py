# storefront/routers/admin.py
"""
Admin area.

`GET /admin` is the admin login page (the gate lets anonymous visitors see it,
signed-in non-admins are sent to `/`). Everything else requires the `admin` role
in the `users/{uid}` profile.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.core.auth import role_cache
from storefront.core.errors import StoreError
from storefront.core.security import get_current_admin, get_request_context
from storefront.repositories.cart_items import CartItemRepository
from storefront.repositories.catalog import ProductRepository
from storefront.repositories.newsletter import SubscriberRepository
from storefront.repositories.profiles import ProfileRepository
from storefront.repositories.wishlist_items import WishlistRepository
from storefront.routers.auth import get_profiles
from storefront.routers.newsletter import get_subscriber_repo
from storefront.routers.products import get_product_repo
from storefront.schemas.principal import Principal, RequestContext
from storefront.schemas.user import RoleUpdate

logger = logging.getLogger("storefront.admin")

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_cart_repo() -> CartItemRepository:
    return CartItemRepository()


def get_wishlist_repo() -> WishlistRepository:
    return WishlistRepository()


@router.get("", summary="Admin login page context")
def admin_login_page(ctx: RequestContext = Depends(get_request_context)):
    return {"path": ctx.path, "user": ctx.principal}


@router.get("/dashboard", summary="Admin dashboard counters")
def dashboard(
    admin: Principal = Depends(get_current_admin),
    profiles: ProfileRepository = Depends(get_profiles),
    carts: CartItemRepository = Depends(get_cart_repo),
    wishlist: WishlistRepository = Depends(get_wishlist_repo),
    products: ProductRepository = Depends(get_product_repo),
    subscribers: SubscriberRepository = Depends(get_subscriber_repo),
):
    try:
        return {
            "total_users": profiles.count(),
            "total_products": products.count(),
            "cart_items": carts.count(),
            "wishlist_items": wishlist.count(),
            "newsletter_subscribers": subscribers.count_active(),
        }
    except StoreError as exc:
        logger.error("dashboard counters failed: %s", exc)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load dashboard")


@router.put("/users/{uid}/role", summary="Change a user's role")
def set_user_role(
    uid: str,
    payload: RoleUpdate,
    admin: Principal = Depends(get_current_admin),
    profiles: ProfileRepository = Depends(get_profiles),
):
    try:
        found = profiles.set_role(uid, payload.role)
    except StoreError as exc:
        logger.error("role update failed for %s: %s", uid, exc)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update role")
    if not found:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="User not found")
    role_cache.invalidate(uid)
    logger.info("role of %s set to %s by %s", uid, payload.role, admin.uid)
    return {"success": True, "uid": uid, "role": payload.role}
