"""
# `storefront/routers/newsletter.py` - newsletter subscribers

| method | path | notes |
|---|---|---|
| POST | /api/newsletter/subscribe | `{email, name?}`; re-subscribing an active address is a success |
| POST | /api/newsletter/unsubscribe | `{email}`; unknown addresses succeed too |
| GET | /admin/newsletter/subscribers | admin; active subscribers, newest first |

Public answers use the `{success, error?}` envelope; a store failure is a 500.
Welcome mails and newsletter sends are not part of this service.
"""
import logging

from fastapi import APIRouter, Depends

from storefront.core.errors import StoreError
from storefront.core.responses import envelope_response
from storefront.core.security import get_current_admin
from storefront.repositories.newsletter import SubscriberRepository
from storefront.schemas.newsletter import SubscribeIn, SubscriberOut, UnsubscribeIn
from storefront.services.cart_actions import fail, ok

logger = logging.getLogger("storefront.newsletter")

router = APIRouter(prefix="/api/newsletter", tags=["Newsletter"])
admin_router = APIRouter(prefix="/admin/newsletter", tags=["Admin: Newsletter"],
                         dependencies=[Depends(get_current_admin)])


def get_subscriber_repo() -> SubscriberRepository:
    return SubscriberRepository()


@router.post("/subscribe", summary="Subscribe to the newsletter")
def subscribe(payload: SubscribeIn, repo: SubscriberRepository = Depends(get_subscriber_repo)):
    try:
        outcome = repo.subscribe(payload.email, payload.name)
    except StoreError as exc:
        logger.error("subscribe %s failed: %s", payload.email, exc)
        return envelope_response(fail("Failed to subscribe", "store"))
    if outcome != "exists":
        logger.info("newsletter subscriber %s (%s)", payload.email, outcome)
    return envelope_response(ok())


@router.post("/unsubscribe", summary="Unsubscribe from the newsletter")
def unsubscribe(payload: UnsubscribeIn, repo: SubscriberRepository = Depends(get_subscriber_repo)):
    try:
        repo.unsubscribe(payload.email)
    except StoreError as exc:
        logger.error("unsubscribe %s failed: %s", payload.email, exc)
        return envelope_response(fail("Failed to unsubscribe", "store"))
    return envelope_response(ok())


@admin_router.get("/subscribers", summary="Active subscribers")
def list_subscribers(repo: SubscriberRepository = Depends(get_subscriber_repo)):
    try:
        rows = repo.list_active()
    except StoreError as exc:
        logger.error("subscriber list failed: %s", exc)
        return envelope_response(fail("Failed to fetch subscribers", "store"))
    return envelope_response(ok(data=[SubscriberOut(**row) for row in rows]))
