"""
storefront/services/cart_actions.py
Cart operations consumed by the storefront UI.

Every operation returns an envelope `{"success": bool, "error"?: str, ...payload}`
and never raises for expected failures (not authenticated, validation, store
errors). `error_kind` tells the router which HTTP status to use and is stripped
before the body is sent.
"""
import logging
from typing import Any, Callable, Dict, Optional

from storefront.core.errors import StoreError, UniqueViolation
from storefront.schemas.principal import Principal
from storefront.services.cart_reconciler import apply_repair, merge_rows

logger = logging.getLogger("storefront.cart")

NOT_AUTHENTICATED = "Not authenticated"
QUANTITY_TOO_LOW = "Quantity must be at least 1"
ADD_GAVE_UP = "Could not add item to cart, please try again"

Envelope = Dict[str, Any]


def ok(**payload) -> Envelope:
    return {"success": True, **payload}


def fail(error: str, kind: str) -> Envelope:
    return {"success": False, "error": error, "error_kind": kind}


class CartActions:
    """
    Cart use cases for one repository.

    `max_attempts` bounds the insert / update-fallback loop in `add_item`.
    """

    def __init__(self, repo, max_attempts: int = 3):
        self.repo = repo
        self.max_attempts = max(1, int(max_attempts))

    # ---------- list ----------
    def list_cart(self, principal: Optional[Principal],
                  schedule: Optional[Callable[..., Any]] = None) -> Envelope:
        """
        Duplicate-free view of the cart. Duplicate rows found on the way are
        repaired after the result is built: through `schedule(fn, *args)` when
        given (FastAPI BackgroundTasks.add_task), inline otherwise. The result
        never depends on the repair.
        """
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        try:
            rows = self.repo.list_for_user(principal.uid)
        except StoreError as exc:
            logger.error("list cart %s failed: %s", principal.uid, exc)
            return fail(str(exc) or "Failed to fetch cart items", "store")

        items, plan = merge_rows(principal.uid, rows)
        result = ok(items=items)
        if plan:
            if schedule is not None:
                schedule(apply_repair, self.repo, plan)
            else:
                apply_repair(self.repo, plan)
        return result

    # ---------- add ----------
    def add_item(self, principal: Optional[Principal], data: Dict[str, Any]) -> Envelope:
        """
        Insert first; on a uniqueness conflict add to the existing row
        (existing + requested). If the conflicting row disappears before it can
        be updated, insert again. Gives up after `max_attempts` rounds.
        """
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        product_id = (data.get("product_id") or "").strip()
        if not product_id:
            return fail("product_id cannot be empty", "validation")
        requested = data.get("quantity")
        try:
            quantity = 1 if requested is None else int(requested)
        except (TypeError, ValueError):
            return fail(QUANTITY_TOO_LOW, "validation")
        if quantity < 1:
            return fail(QUANTITY_TOO_LOW, "validation")

        uid = principal.uid
        variant = (data.get("variant") or "").strip()
        fields = {
            "product_id": product_id,
            "variant": variant,
            "quantity": quantity,
            "product_name": data.get("product_name") or "",
            "product_price": data.get("product_price") or 0,
            "product_image": data.get("product_image") or None,
        }
        refresh = {"product_price": float(fields["product_price"])}
        if fields["product_image"]:
            refresh["product_image"] = fields["product_image"]

        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    item = self.repo.insert(uid, fields)
                    logger.debug("cart %s: new row %s qty=%d", uid, item["id"], item["quantity"])
                    return ok(item=item)
                except UniqueViolation:
                    logger.info("cart %s: %s/%s exists, updating instead (attempt %d)",
                                uid, product_id, variant, attempt)

                existing = self.repo.find_by_key(uid, product_id, variant)
                if existing is None:
                    continue
                item = self.repo.add_quantity(existing["id"], uid, quantity, refresh)
                if item is not None:
                    return ok(item=item)
        except StoreError as exc:
            logger.error("add to cart %s (%s/%s) failed: %s", uid, product_id, variant, exc)
            return fail(str(exc) or "Failed to add cart item", "store")

        logger.warning("cart %s: gave up adding %s/%s after %d attempts",
                       uid, product_id, variant, self.max_attempts)
        return fail(ADD_GAVE_UP, "conflict")

    # ---------- update / remove / clear ----------
    def update_item(self, principal: Optional[Principal], item_id: str, quantity: int) -> Envelope:
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        if quantity is None or int(quantity) < 1:
            return fail(QUANTITY_TOO_LOW, "validation")
        try:
            updated = self.repo.set_quantity(item_id, principal.uid, int(quantity))
        except StoreError as exc:
            logger.error("update cart item %s for %s failed: %s", item_id, principal.uid, exc)
            return fail(str(exc) or "Failed to update cart item", "store")
        return ok(updated=updated)

    def remove_item(self, principal: Optional[Principal], item_id: str) -> Envelope:
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        try:
            self.repo.delete(item_id, principal.uid)
        except StoreError as exc:
            logger.error("remove cart item %s for %s failed: %s", item_id, principal.uid, exc)
            return fail(str(exc) or "Failed to remove cart item", "store")
        return ok()

    def clear_cart(self, principal: Optional[Principal]) -> Envelope:
        if principal is None:
            return fail(NOT_AUTHENTICATED, "auth")
        try:
            removed = self.repo.delete_for_user(principal.uid)
        except StoreError as exc:
            logger.error("clear cart %s failed: %s", principal.uid, exc)
            return fail(str(exc) or "Failed to clear cart", "store")
        return ok(removed=removed)
