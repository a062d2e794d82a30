"""
# `storefront/routers/auth.py` - sign-in / sign-out

## GET /login
Login page context: `path`, the (sanitised) `return_url` and the current user.
The session gate sends signed-in customers on to `/account` before this runs;
admins can still reach it.

## POST /login
Form: `email`, `password`, optional `return_url`.
1. Password check through the Identity Toolkit REST API.
2. The ID token is exchanged for a Firebase session cookie.
3. Session + refresh cookies are set (httpOnly).
4. Responds with `is_admin` and `redirect_to` (admin dashboard, the return URL,
   or `/account`). Wrong credentials → 401 with a readable message.

## POST /logout
Revokes the user's refresh tokens, drops the cached role and clears cookies.

## POST /auth/reset-password
Always answers with the same message (no user enumeration).

## GET /auth/me, GET /auth/admin-status
Current user / admin flag from the request context.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Response, status
from firebase_admin import exceptions as fb_exceptions
from pydantic import EmailStr
from starlette.concurrency import run_in_threadpool

from storefront.config import settings
from storefront.core.auth import FirebaseSessionVerifier, clear_session_cookies, role_cache, set_session_cookies
from storefront.core.errors import StoreError
from storefront.core.responses import envelope_response
from storefront.core.security import get_optional_principal, get_request_context
from storefront.integrations.firebase_users import FirebaseUserAdmin
from storefront.integrations.identity_toolkit import IdentityError, IdentityToolkit
from storefront.repositories.profiles import ProfileRepository
from storefront.schemas.principal import Principal, RequestContext
from storefront.services.cart_actions import NOT_AUTHENTICATED, fail, ok

logger = logging.getLogger("storefront.auth")

router = APIRouter(tags=["Auth"])

BAD_CREDENTIALS = "Invalid email or password. Please check your credentials and try again."
FRIENDLY_ERRORS = {
    "INVALID_LOGIN_CREDENTIALS": BAD_CREDENTIALS,
    "INVALID_PASSWORD": BAD_CREDENTIALS,
    "EMAIL_NOT_FOUND": BAD_CREDENTIALS,
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many sign-in attempts. Please try again later.",
}
RESET_MESSAGE = "If this e-mail is registered, a password reset link has been sent."


def get_identity_toolkit() -> IdentityToolkit:
    return IdentityToolkit()


def get_session_verifier() -> FirebaseSessionVerifier:
    return FirebaseSessionVerifier()


def get_profiles() -> ProfileRepository:
    return ProfileRepository()


def get_user_admin() -> FirebaseUserAdmin:
    return FirebaseUserAdmin()


def friendly_message(code: str) -> str:
    # Firebase appends detail after " : " (e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access ...")
    return FRIENDLY_ERRORS.get(code.split(" ", 1)[0], code)


def safe_return_url(value: Optional[str]) -> Optional[str]:
    """Only same-site relative paths are honoured."""
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return None
    return value


async def start_session(response: Response, email: str, password: str,
                        toolkit: IdentityToolkit, verifier: FirebaseSessionVerifier) -> str:
    """Sign in and set the session cookies. Returns the uid."""
    try:
        data = await toolkit.sign_in(email, password)
    except IdentityError as exc:
        if exc.code == "SERVICE_UNAVAILABLE":
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail="Sign-in service unavailable")
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail=friendly_message(exc.code))
    try:
        cookie, _ = await run_in_threadpool(verifier.mint, data["idToken"])
    except (fb_exceptions.FirebaseError, ValueError) as exc:
        logger.error("session cookie creation failed for %s: %s", data.get("localId"), exc)
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail="Failed to sign in")
    set_session_cookies(response, cookie, data.get("refreshToken"))
    role_cache.invalidate(data["localId"])
    return data["localId"]


@router.get("/login", summary="Login page context")
def login_page(
    return_url: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
):
    return {
        "path": ctx.path,
        "return_url": safe_return_url(return_url),
        "user": ctx.principal,
    }


@router.post("/login", summary="Sign in with e-mail + password")
async def login(
    response: Response,
    email: EmailStr = Form(..., description="E-mail"),
    password: str = Form(..., min_length=6, description="Password"),
    return_url: Optional[str] = Form(None, description="Where to go after sign-in"),
    toolkit: IdentityToolkit = Depends(get_identity_toolkit),
    verifier: FirebaseSessionVerifier = Depends(get_session_verifier),
    profiles: ProfileRepository = Depends(get_profiles),
):
    uid = await start_session(response, email, password, toolkit, verifier)
    try:
        role = await run_in_threadpool(profiles.get_role, uid)
    except StoreError as exc:
        logger.warning("role lookup after sign-in failed for %s: %s", uid, exc)
        role = "customer"
    is_admin = role == "admin"
    if is_admin:
        redirect_to = f"{settings.admin_root}/dashboard"
    else:
        redirect_to = safe_return_url(return_url) or settings.account_root
    return {"success": True, "is_admin": is_admin, "redirect_to": redirect_to}


@router.post("/logout", summary="Sign out (revokes refresh tokens)")
def logout(
    response: Response,
    principal: Optional[Principal] = Depends(get_optional_principal),
    users: FirebaseUserAdmin = Depends(get_user_admin),
):
    if principal is not None:
        users.revoke_sessions(principal.uid)
        role_cache.invalidate(principal.uid)
    clear_session_cookies(response)
    return {"success": True}


@router.post("/auth/reset-password", summary="Request password reset")
async def request_password_reset(
    email: EmailStr = Form(..., description="User e-mail"),
    toolkit: IdentityToolkit = Depends(get_identity_toolkit),
):
    try:
        await toolkit.send_password_reset(email, continue_url=f"{settings.site_url.rstrip('/')}{settings.login_path}")
    except IdentityError as exc:
        if exc.code == "SERVICE_UNAVAILABLE":
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail="Password reset service error")
        # EMAIL_NOT_FOUND and friends: same answer as success
    return {"success": True, "message": RESET_MESSAGE}


@router.get("/auth/me", summary="Current user")
def current_user(principal: Optional[Principal] = Depends(get_optional_principal)):
    return {"success": True, "user": principal}


@router.get("/auth/admin-status", summary="Is the current user an admin?")
def admin_status(principal: Optional[Principal] = Depends(get_optional_principal)):
    if principal is None:
        return envelope_response({**fail(NOT_AUTHENTICATED, "auth"), "is_admin": False})
    return envelope_response(ok(is_admin=principal.is_admin))
