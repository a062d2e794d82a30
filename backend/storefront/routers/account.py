"""
# `storefront/routers/account.py` - customer account area

Everything under `/account` is behind the session gate except the register
page; anonymous visitors are redirected to `/login?return_url=...` before these
handlers run, so `get_current_principal` only guards direct API use.

| method | path | notes |
|---|---|---|
| POST | /account/register | Firebase user + `users/{uid}` profile (role `customer`), then signs in |
| GET | /account | profile page context |
| PATCH | /account | first / last name |
| PUT | /account/password | new password, revokes other sessions |
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from starlette.concurrency import run_in_threadpool

from storefront.core.auth import FirebaseSessionVerifier, role_cache
from storefront.core.errors import StoreError
from storefront.core.security import get_current_principal, get_request_context
from storefront.integrations.firebase_users import EmailTaken, FirebaseUserAdmin, UserAdminError
from storefront.integrations.identity_toolkit import IdentityToolkit
from storefront.repositories.profiles import ProfileRepository
from storefront.routers.auth import (
    get_identity_toolkit,
    get_profiles,
    get_session_verifier,
    get_user_admin,
    start_session,
)
from storefront.schemas.principal import Principal, RequestContext
from storefront.schemas.user import PasswordUpdate, ProfileOut, ProfileUpdate, SignUpForm

logger = logging.getLogger("storefront.auth")

router = APIRouter(prefix="/account", tags=["Account"])


def _profile_out(principal: Principal, profile) -> ProfileOut:
    profile = profile or {}
    return ProfileOut(
        id=principal.uid,
        email=profile.get("email") or principal.email,
        display_name=profile.get("display_name") or principal.display_name,
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
        role=principal.role,
        created_at=profile.get("created_at"),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Create an account")
async def register(
    response: Response,
    form: SignUpForm = Depends(SignUpForm.as_form),
    users: FirebaseUserAdmin = Depends(get_user_admin),
    profiles: ProfileRepository = Depends(get_profiles),
    toolkit: IdentityToolkit = Depends(get_identity_toolkit),
    verifier: FirebaseSessionVerifier = Depends(get_session_verifier),
):
    try:
        uid = await run_in_threadpool(users.create_user, form.email, form.password, form.display_name)
    except EmailTaken:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="An account with this e-mail already exists")
    except UserAdminError as exc:
        logger.error("user creation failed for %s: %s", form.email, exc)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Could not create the account")

    try:
        await run_in_threadpool(profiles.upsert, uid, {
            "email": form.email,
            "display_name": form.display_name,
            "first_name": form.first_name,
            "last_name": form.last_name,
            "role": "customer",
        })
    except StoreError as exc:
        # the Firebase user exists; the profile is recreated on the next PATCH /account
        logger.error("profile write failed for new user %s: %s", uid, exc)

    await start_session(response, form.email, form.password, toolkit, verifier)
    return {"success": True, "uid": uid, "redirect_to": router.prefix}


@router.get("", summary="Account page context")
def account_page(
    ctx: RequestContext = Depends(get_request_context),
    principal: Principal = Depends(get_current_principal),
    profiles: ProfileRepository = Depends(get_profiles),
):
    try:
        profile = profiles.get(principal.uid)
    except StoreError as exc:
        logger.warning("profile read failed for %s: %s", principal.uid, exc)
        profile = None
    return {"path": ctx.path, "user": _profile_out(principal, profile)}


@router.patch("", response_model=ProfileOut, summary="Update name")
def update_account(
    payload: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    profiles: ProfileRepository = Depends(get_profiles),
    users: FirebaseUserAdmin = Depends(get_user_admin),
):
    data = payload.model_dump(exclude_none=True)
    try:
        current = profiles.get(principal.uid) or {}
        merged = {**current, **data}
        if merged.get("first_name") and merged.get("last_name"):
            data["display_name"] = f"{merged['first_name']} {merged['last_name']}"
        if principal.email and not current.get("email"):
            data["email"] = principal.email
        profiles.upsert(principal.uid, data)
        profile = profiles.get(principal.uid)
    except StoreError as exc:
        logger.error("profile update failed for %s: %s", principal.uid, exc)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not update the profile")

    if "display_name" in data:
        try:
            users.update_display_name(principal.uid, data["display_name"])
        except UserAdminError as exc:
            logger.warning("auth display name not updated for %s: %s", principal.uid, exc)
    return _profile_out(principal, profile)


@router.put("/password", summary="Change password")
def change_password(
    payload: PasswordUpdate,
    principal: Principal = Depends(get_current_principal),
    users: FirebaseUserAdmin = Depends(get_user_admin),
):
    try:
        users.update_password(principal.uid, payload.password)
    except UserAdminError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))
    users.revoke_sessions(principal.uid)
    role_cache.invalidate(principal.uid)
    return {"success": True, "message": "Password updated, please sign in again"}
