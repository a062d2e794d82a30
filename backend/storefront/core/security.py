"""
# `storefront/core/security.py` - request identity dependencies

The session gate has already resolved the caller by the time a route runs;
these dependencies only read `request.state.context`.

* `get_request_context` - the `RequestContext` (path, query, principal).
* `get_optional_principal` - Principal or None.
* `get_current_principal` - Principal, else 401.
* `get_current_admin` - admin Principal, else 403.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from storefront.schemas.principal import Principal, RequestContext


def get_request_context(request: Request) -> RequestContext:
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        # gate not installed (or a static path): anonymous context
        ctx = RequestContext(path=request.url.path, query=request.url.query)
    return ctx


def get_optional_principal(ctx: RequestContext = Depends(get_request_context)) -> Optional[Principal]:
    return ctx.principal


def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return principal


def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Dependency to allow access only to admin users.
    """
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal
