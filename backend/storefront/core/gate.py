"""
# `storefront/core/gate.py` - Session Gate

Runs before routing on every request.

| # | path | rule |
|---|------|------|
| 1 | static / internal (`/_next/…`, `/static/…`, `/favicon.ico`; `*.js`, `*.css`, images, fonts outside `/admin`, `/account` and `/api`) | pass through; no identity lookup |
| 2 | under `/admin`, except `/admin` itself | admin role required, else 307 → `/admin` |
| 3 | under `/account`, except `/account/register` | signed in, else 307 → `/login?return_url=<path?query>` |
| 4 | `/login` | signed-in non-admin → 307 → `/account` |
| 5 | anything else | pass through |

For every request past rule 1 the gate stores a `RequestContext` on
`request.state.context` (read it with `get_request_context`) and, on
pass-through, echoes the path in the `X-Pathname` response header. Cookies
refreshed while resolving the session are written on redirects as well, except
where the route already wrote that cookie itself (sign-in, sign-out).
"""
import logging
from typing import Optional
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from storefront.config import settings
from storefront.schemas.principal import Principal, RequestContext

logger = logging.getLogger("storefront.gate")

PATH_HEADER = "X-Pathname"
STATIC_PREFIXES = ("/_next/", "/static/", "/favicon.ico")
STATIC_EXTENSIONS = (
    ".js", ".mjs", ".css", ".map", ".ico", ".png", ".jpg", ".jpeg", ".gif", ".svg",
    ".webp", ".avif", ".woff", ".woff2", ".ttf", ".otf",
)
API_ROOT = "/api"


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def _under(path: str, root: str) -> bool:
    return path == root or path.startswith(root + "/")


def is_static(path: str) -> bool:
    if path.startswith(STATIC_PREFIXES):
        return True
    # a file-like name does not take a gated path out of the gate
    if any(_under(path, root) for root in (settings.admin_root, settings.account_root, API_ROOT)):
        return False
    return path.lower().endswith(STATIC_EXTENSIONS)


def login_redirect(path: str, query: str = "") -> str:
    target = f"{path}?{query}" if query else path
    return f"{settings.login_path}?{settings.return_url_param}={quote(target, safe='')}"


def redirect_target(path: str, query: str, principal: Optional[Principal]) -> Optional[str]:
    """Where to send this request instead, or None to let it through."""
    p = _normalize(path)

    if _under(p, settings.admin_root) and p != settings.admin_root:
        if principal is None or not principal.is_admin:
            return settings.admin_root
        return None

    if _under(p, settings.account_root) and not _under(p, settings.account_register_path):
        if principal is None:
            return login_redirect(path, query)
        return None

    if p == settings.login_path and principal is not None and not principal.is_admin:
        return settings.account_root

    return None


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Reads the resolver from `app.state.session_resolver` on each request so it
    can be swapped after the app is built.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_static(path):
            return await call_next(request)

        resolution = await request.app.state.session_resolver.resolve(request)
        query = request.url.query
        request.state.context = RequestContext(path=path, query=query, principal=resolution.principal)

        target = redirect_target(path, query, resolution.principal)
        if target is not None:
            logger.debug("gate: %s -> %s", path, target)
            response = RedirectResponse(target, status_code=307)
        else:
            response = await call_next(request)
            response.headers[PATH_HEADER] = path
        resolution.apply(response)
        return response
