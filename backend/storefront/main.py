"""
# `storefront/main.py` - application entry point

* FastAPI app (`redirect_slashes=False`, routes are declared without trailing slashes).
* CORS from `settings.allowed_origins` (comma separated, empty → `*`).
* `SessionGateMiddleware` resolves the caller once per request and applies the
  `/admin`, `/account` and `/login` redirect rules before any router runs.
* Routers: auth, account, admin, cart, wishlist, products, categories, newsletter.

## Background scheduler
APScheduler `AsyncIOScheduler`; the `cart-sweep` job repairs duplicate cart rows
across all users every `CART_SWEEP_MINUTES` minutes. `0` (default) disables it;
carts are still repaired whenever they are read.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.core.auth import SessionResolver
from storefront.core.errors import StoreError
from storefront.core.gate import SessionGateMiddleware
from storefront.repositories.cart_items import CartItemRepository
from storefront.routers import account, admin, auth, carts, categories, newsletter, products, wishlist
from storefront.services.cart_reconciler import reconcile_all_carts_once

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("storefront")

scheduler = AsyncIOScheduler()


def sweep_carts() -> None:
    try:
        repaired = reconcile_all_carts_once(CartItemRepository())
    except StoreError as exc:
        logger.error("cart sweep aborted: %s", exc)
        return
    if repaired:
        logger.info("cart sweep repaired %d cart(s)", repaired)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="Session gate, cart, wishlist and catalog backend for the storefront.",
        version="1.0.0",
        debug=settings.debug,
        redirect_slashes=False,
    )

    # Middleware added last runs first: CORS wraps the gate so preflights never hit it.
    app.add_middleware(SessionGateMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Pathname"],
    )
    app.state.session_resolver = SessionResolver()

    app.include_router(auth.router)
    app.include_router(account.router)
    app.include_router(admin.router)
    app.include_router(carts.router)
    app.include_router(wishlist.router)
    app.include_router(products.router)
    app.include_router(products.admin_router)
    app.include_router(categories.router)
    app.include_router(categories.admin_router)
    app.include_router(newsletter.router)
    app.include_router(newsletter.admin_router)

    @app.on_event("startup")
    async def _startup_scheduler():
        if settings.cart_sweep_minutes <= 0:
            return
        scheduler.add_job(
            sweep_carts,
            "interval",
            minutes=settings.cart_sweep_minutes,
            id="cart-sweep",
            replace_existing=True,
        )
        if not scheduler.running:
            scheduler.start()

    @app.on_event("shutdown")
    async def _shutdown_scheduler():
        if scheduler.running:
            scheduler.shutdown(wait=False)

    return app


app = create_app()


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
