"""
# `storefront/integrations/identity_toolkit.py` - Firebase Auth REST client

The Admin SDK cannot check a password or redeem a refresh token, so these three
calls go to the public REST endpoints with the Web API key:

| method | endpoint |
|---|---|
| `sign_in` | `identitytoolkit.googleapis.com/v1/accounts:signInWithPassword` |
| `refresh` | `securetoken.googleapis.com/v1/token` (grant_type=refresh_token) |
| `send_password_reset` | `identitytoolkit.googleapis.com/v1/accounts:sendOobCode` |

Failures raise `IdentityError` carrying Firebase's error code
(`INVALID_LOGIN_CREDENTIALS`, `TOKEN_EXPIRED`, ...).
"""
import logging
from typing import Any, Dict, Optional

import httpx

from storefront.config import settings

logger = logging.getLogger("storefront.auth")

IDENTITY_BASE = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


class IdentityError(Exception):
    def __init__(self, code: str, status_code: Optional[int] = None):
        super().__init__(code)
        self.code = code
        self.status_code = status_code


def _error_code(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"HTTP_{resp.status_code}"
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        return str(err.get("message") or f"HTTP_{resp.status_code}")
    return str(err or f"HTTP_{resp.status_code}")


class IdentityToolkit:
    def __init__(self, api_key: Optional[str] = None, timeout: float = 10,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.firebase_web_api_key
        self.timeout = timeout
        self._transport = transport

    async def _post(self, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, params={"key": self.api_key}, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("identity toolkit unreachable: %s", exc)
            raise IdentityError("SERVICE_UNAVAILABLE") from exc
        if resp.status_code != 200:
            code = _error_code(resp)
            logger.info("identity toolkit %s -> %s %s", url.rsplit("/", 1)[-1], resp.status_code, code)
            raise IdentityError(code, resp.status_code)
        return resp.json()

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Returns idToken, refreshToken, expiresIn, localId."""
        return await self._post(
            f"{IDENTITY_BASE}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Returns id_token, refresh_token, expires_in, user_id."""
        return await self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )

    async def send_password_reset(self, email: str, continue_url: Optional[str] = None) -> None:
        payload = {"requestType": "PASSWORD_RESET", "email": email}
        if continue_url:
            payload["continueUrl"] = continue_url
        await self._post(f"{IDENTITY_BASE}/accounts:sendOobCode", json=payload)
