"""
# `storefront/schemas/user.py` - user / profile schemas

| model | use |
|---|---|
| `SignUpForm` | `POST /account/register` form fields |
| `ProfileOut` | `GET /account`, `GET /auth/me` |
| `ProfileUpdate` | `PATCH /account` |
| `PasswordUpdate` | `PUT /account/password` |
| `RoleUpdate` | `PUT /admin/users/{uid}/role` |
"""
from datetime import datetime
from typing import Annotated, Optional

from fastapi import Form
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, EmailStr, Field, StringConstraints, ValidationError

from storefront.schemas.principal import Role

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class SignUpForm(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: NameStr
    last_name: NameStr

    @classmethod
    def as_form(
        cls,
        email: str = Form(..., description="E-mail"),
        password: str = Form(..., description="Password (min 6 characters)"),
        first_name: str = Form(..., description="First name"),
        last_name: str = Form(..., description="Last name"),
    ):
        try:
            return cls(email=email, password=password, first_name=first_name, last_name=last_name)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ProfileOut(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = "customer"
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None


class PasswordUpdate(BaseModel):
    password: str = Field(..., min_length=6, description="New password (min 6 characters)")


class RoleUpdate(BaseModel):
    role: Role
