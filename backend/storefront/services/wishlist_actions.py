# storefront/services/wishlist_actions.py
import logging
from typing import List, Optional

from storefront.core.errors import StoreError
from storefront.schemas.principal import Principal
from storefront.services.cart_actions import NOT_AUTHENTICATED, Envelope, fail, ok

logger = logging.getLogger("storefront.wishlist")


class WishlistActions:
    def __init__(self, repo):
        self.repo = repo

    def list_items(self, principal: Optional[Principal]) -> Envelope:
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        try:
            return ok(items=self.repo.list_for_user(principal.uid))
        except StoreError as exc:
            logger.error("list wishlist %s failed: %s", principal.uid, exc)
            return fail(str(exc) or "Failed to fetch wishlist", "store")

    def add(self, principal: Optional[Principal], product_id: str) -> Envelope:
        """Adding a product that is already listed still succeeds."""
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        product_id = (product_id or "").strip()
        if not product_id:
            return fail("product_id cannot be empty", "validation")
        try:
            created = self.repo.add(principal.uid, product_id)
        except StoreError as exc:
            logger.error("add to wishlist %s (%s) failed: %s", principal.uid, product_id, exc)
            return fail(str(exc) or "Failed to add to wishlist", "store")
        return ok(created=created)

    def remove(self, principal: Optional[Principal], product_id: str) -> Envelope:
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        try:
            self.repo.remove(principal.uid, product_id)
        except StoreError as exc:
            logger.error("remove from wishlist %s (%s) failed: %s", principal.uid, product_id, exc)
            return fail(str(exc) or "Failed to remove from wishlist", "store")
        return ok()

    def sync(self, principal: Optional[Principal], product_ids: List[str]) -> Envelope:
        """Merge a wishlist kept client-side before sign-in."""
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        product_ids = [p.strip() for p in product_ids or [] if p and p.strip()]
        if not product_ids:
            return ok(synced=0)
        try:
            synced = self.repo.add_many(principal.uid, product_ids)
        except StoreError as exc:
            logger.error("sync wishlist %s failed: %s", principal.uid, exc)
            return fail(str(exc) or "Failed to sync wishlist", "store")
        return ok(synced=synced)
