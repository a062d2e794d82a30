# storefront/schemas/newsletter.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class SubscribeIn(BaseModel):
    email: EmailStr = Field(..., description="Subscriber e-mail")
    name: Optional[str] = Field(None, max_length=100, description="Name (optional)")

    @field_validator("name")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None


class UnsubscribeIn(BaseModel):
    email: EmailStr


class SubscriberOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    is_active: bool = True
    subscribed_at: Optional[datetime] = None
