# storefront/core/auth.py
"""
Session cookie -> Principal.

`SessionResolver.resolve()` is what the session gate calls on every
non-static request. It never raises for anything the client sent: a missing,
malformed, expired or revoked cookie simply resolves to anonymous.

When the session cookie is missing/invalid or about to expire and the client
also holds a refresh cookie, the refresh token is redeemed and a new session
cookie is minted. The new cookies travel back on the `Resolution` and the gate
writes them onto whatever response it ends up sending.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, Optional, Set, Tuple

from fastapi import Request, Response
from firebase_admin import auth as fb_auth
from firebase_admin import exceptions as fb_exceptions
from starlette.concurrency import run_in_threadpool

from storefront.config import get_firebase_app, settings
from storefront.core.errors import StoreError
from storefront.integrations.identity_toolkit import IdentityError, IdentityToolkit
from storefront.repositories.profiles import ProfileRepository
from storefront.schemas.principal import Principal

logger = logging.getLogger("storefront.auth")


class FirebaseSessionVerifier:
    """Thin wrapper over the Admin SDK session-cookie calls."""

    def verify(self, session_cookie: str) -> Optional[dict]:
        try:
            return fb_auth.verify_session_cookie(session_cookie, check_revoked=True, app=get_firebase_app())
        except (fb_exceptions.FirebaseError, ValueError) as exc:
            logger.debug("session cookie rejected: %s", exc)
            return None

    def mint(self, id_token: str) -> Tuple[str, dict]:
        """Exchange a fresh ID token for a session cookie. Returns (cookie, claims)."""
        app = get_firebase_app()
        claims = fb_auth.verify_id_token(id_token, app=app)
        cookie = fb_auth.create_session_cookie(
            id_token, expires_in=timedelta(seconds=settings.session_max_age_seconds), app=app,
        )
        claims = dict(claims)
        claims["exp"] = int(time.time()) + settings.session_max_age_seconds
        if isinstance(cookie, bytes):
            cookie = cookie.decode("ascii")
        return cookie, claims


class RoleCache:
    """
    uid -> role, time-boxed. An entry expires after `ttl` seconds or when the
    session it was read for expires, whichever comes first. Expired entries of
    users who never come back are swept out by `put`, at most once per `ttl`.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, uid: str) -> Optional[str]:
        if self.ttl <= 0:
            return None
        with self._lock:
            entry = self._entries.get(uid)
            if entry is None:
                return None
            role, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[uid]
                return None
            return role

    def put(self, uid: str, role: str, session_exp: Optional[float] = None) -> None:
        if self.ttl <= 0:
            return
        now = self._clock()
        expires_at = now + self.ttl
        if session_exp is not None:
            expires_at = min(expires_at, float(session_exp))
        with self._lock:
            self._entries[uid] = (role, expires_at)
            if now >= self._next_sweep:
                self._sweep(now)

    def _sweep(self, now: float) -> None:
        for key in [k for k, (_, exp) in self._entries.items() if now >= exp]:
            del self._entries[key]
        self._next_sweep = now + self.ttl

    def invalidate(self, uid: str) -> None:
        with self._lock:
            self._entries.pop(uid, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


role_cache = RoleCache(settings.role_cache_ttl_seconds)


@dataclass
class Resolution:
    principal: Optional[Principal] = None
    # name -> (value, max_age)
    set_cookies: Dict[str, Tuple[str, int]] = field(default_factory=dict)
    clear_cookies: bool = False

    def apply(self, response: Response) -> None:
        """Cookies the route already wrote (login, logout) are left as they are."""
        written = _cookie_names(response)
        if self.clear_cookies:
            for name in (settings.session_cookie_name, settings.refresh_cookie_name):
                if name not in written:
                    _delete_cookie(response, name)
        for name, (value, max_age) in self.set_cookies.items():
            if name not in written:
                _set_cookie(response, name, value, max_age)


def _cookie_names(response: Response) -> Set[str]:
    return {h.split("=", 1)[0].strip() for h in response.headers.getlist("set-cookie")}


def _set_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name, value, max_age=max_age, path="/",
        httponly=True, secure=settings.cookie_secure, samesite="lax",
    )


def set_session_cookies(response: Response, session_cookie: str, refresh_token: Optional[str]) -> None:
    _set_cookie(response, settings.session_cookie_name, session_cookie, settings.session_max_age_seconds)
    if refresh_token:
        _set_cookie(response, settings.refresh_cookie_name, refresh_token, settings.refresh_max_age_seconds)


def _delete_cookie(response: Response, name: str) -> None:
    response.delete_cookie(name, path="/", secure=settings.cookie_secure, httponly=True, samesite="lax")


def clear_session_cookies(response: Response) -> None:
    for name in (settings.session_cookie_name, settings.refresh_cookie_name):
        _delete_cookie(response, name)


def _claims_uid(claims: dict) -> Optional[str]:
    return claims.get("uid") or claims.get("user_id") or claims.get("sub")


def _token_to_principal(claims: dict, role: str) -> Principal:
    return Principal(uid=_claims_uid(claims), role=role, email=claims.get("email"), display_name=claims.get("name"))


class SessionResolver:
    def __init__(self, verifier=None, toolkit=None, profiles=None, cache: Optional[RoleCache] = None,
                 clock: Callable[[], float] = time.time):
        self.verifier = verifier or FirebaseSessionVerifier()
        self.toolkit = toolkit or IdentityToolkit()
        self.profiles = profiles or ProfileRepository()
        self.cache = cache if cache is not None else role_cache
        self._clock = clock

    def _needs_refresh(self, claims: Optional[dict]) -> bool:
        if claims is None:
            return True
        exp = claims.get("exp")
        if exp is None:
            return False
        return float(exp) - self._clock() < settings.session_refresh_window_seconds

    async def _refresh(self, refresh_token: str) -> Optional[Tuple[dict, str, str]]:
        """None if the refresh token was refused. Raises IdentityError if the service is unreachable."""
        try:
            data = await self.toolkit.refresh(refresh_token)
            cookie, claims = await run_in_threadpool(self.verifier.mint, data["id_token"])
        except IdentityError as exc:
            if exc.code == "SERVICE_UNAVAILABLE":
                raise
            logger.info("session refresh refused: %s", exc)
            return None
        except (fb_exceptions.FirebaseError, ValueError, KeyError) as exc:
            logger.info("session refresh failed: %s", exc)
            return None
        return claims, cookie, data.get("refresh_token") or refresh_token

    def role_for(self, uid: str, session_exp: Optional[float] = None) -> str:
        role = self.cache.get(uid)
        if role is not None:
            return role
        try:
            role = self.profiles.get_role(uid)
        except StoreError as exc:
            # least privilege; not cached so the next request asks again
            logger.warning("role lookup for %s failed: %s", uid, exc)
            return "customer"
        self.cache.put(uid, role, session_exp)
        return role

    async def resolve(self, request: Request) -> Resolution:
        resolution = Resolution()
        cookie = request.cookies.get(settings.session_cookie_name)
        refresh_token = request.cookies.get(settings.refresh_cookie_name)

        claims = await run_in_threadpool(self.verifier.verify, cookie) if cookie else None

        if refresh_token and self._needs_refresh(claims):
            try:
                refreshed = await self._refresh(refresh_token)
            except IdentityError:
                # outage: keep the cookies so the next request can retry
                refreshed = False
            if refreshed:
                claims, new_cookie, new_refresh = refreshed
                resolution.set_cookies[settings.session_cookie_name] = (new_cookie, settings.session_max_age_seconds)
                resolution.set_cookies[settings.refresh_cookie_name] = (new_refresh, settings.refresh_max_age_seconds)
            elif refreshed is None and claims is None:
                resolution.clear_cookies = True
        elif cookie and claims is None:
            resolution.clear_cookies = True

        if claims is None:
            return resolution
        uid = _claims_uid(claims)
        if not uid:
            return resolution
        role = await run_in_threadpool(self.role_for, uid, claims.get("exp"))
        resolution.principal = _token_to_principal(claims, role)
        return resolution
