"""
storefront/schemas/cart.py - Pydantic models for cart line items.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CartItem(BaseModel):
    id: str = Field(..., description="Row id")
    user_id: str = Field(..., description="Owner UID")
    product_id: Optional[str] = Field(None, description="Catalog product id (null for orphaned rows)")
    variant: str = Field("", description="Size/color variant")
    quantity: int = Field(..., ge=1, description="Quantity (>=1)")
    product_name: str = Field("", description="Product name when added")
    product_price: float = Field(0.0, description="Unit price when added")
    product_image: Optional[str] = Field(None, description="Image URL when added")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AddCartItemIn(BaseModel):
    """Add to cart with a snapshot of the catalog entry."""
    product_id: str = Field(..., description="Product id")
    product_name: str = Field(..., description="Product name")
    product_price: float = Field(..., ge=0, description="Unit price")
    variant: str = Field("", description="Size/color variant")
    quantity: int = Field(1, description="Quantity (>=1)")
    product_image: Optional[str] = Field(None, description="Image URL (optional)")

    @field_validator("product_id")
    @classmethod
    def _clean_pid(cls, v: str) -> str:
        v = (v or "").strip()
        for ch in ("\u200b", "\u200c", "\u200d", "\ufeff", "\xa0"):
            v = v.replace(ch, "")
        return v

    @field_validator("variant")
    @classmethod
    def _clean_variant(cls, v: str) -> str:
        return (v or "").strip()


class UpdateQuantityIn(BaseModel):
    # range is checked by the action so a bad value still gets the envelope
    quantity: int = Field(..., description="New quantity (>=1)")
