"""
storefront/schemas/principal.py
Roles, the Principal model and the per-request context built by the session gate.
"""
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["customer", "admin"]
ROLES = ("customer", "admin")


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    role: Role = Field("customer", description="customer | admin")
    email: Optional[str] = Field(None, description="E-mail (if present)")
    display_name: Optional[str] = Field(None, description="Display name (if present)")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class RequestContext:
    """What the gate learned about a request, handed to route handlers."""

    path: str
    query: str = ""
    principal: Optional[Principal] = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None
