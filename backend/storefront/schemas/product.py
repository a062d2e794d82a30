"""
# `storefront/schemas/product.py` - catalog products

## Input
### `ProductCreate`
| field | type | required | notes |
|---|---|---|---|
| sku | `str` | ✔ | stock keeping unit |
| name | `str` | ✔ | display name |
| slug | `str` | ✔ | unique, URL-safe (`a-z0-9-`) |
| description / short_description | `str` | ✖ | |
| price | `float` | ✔ | ≥ 0 |
| compare_price | `float` | ✖ | "was" price shown struck through |
| category_id / subcategory_id | `str` | ✖ | |
| inventory_count | `int` | ✖ | ≥ 0, default 0 |
| status | `draft` / `published` / `archived` | ✖ | default `draft`; only `published` is public |

### `ProductUpdate`
Every field optional; only the ones sent are written.

## Output
### `ProductOut`
The stored document plus `id`, `created_at`, `updated_at`.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProductStatus = Literal["draft", "published", "archived"]
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ProductBase(BaseModel):
    description: Optional[str] = Field(None, description="Long description")
    short_description: Optional[str] = Field(None, description="One-line teaser")
    compare_price: Optional[float] = Field(None, ge=0, description="Price before discount")
    category_id: Optional[str] = Field(None, description="Category id")
    subcategory_id: Optional[str] = Field(None, description="Subcategory id")
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = Field(default_factory=list)
    weight_grams: Optional[int] = Field(None, ge=0)
    dimensions: Optional[str] = None


class ProductCreate(ProductBase):
    sku: str = Field(..., min_length=1, description="Stock keeping unit")
    name: str = Field(..., min_length=1, description="Product name")
    slug: str = Field(..., pattern=SLUG_PATTERN, description="Unique URL slug")
    price: float = Field(..., ge=0, description="Unit price")
    inventory_count: int = Field(0, ge=0, description="Units in stock")
    status: ProductStatus = Field("draft", description="Publication status")

    @field_validator("sku", "name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ProductUpdate(BaseModel):
    """Admin edit; `None` means "leave as is"."""
    sku: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    compare_price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    inventory_count: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None
    weight_grams: Optional[int] = Field(None, ge=0)
    dimensions: Optional[str] = None


class ProductOut(ProductBase):
    id: str
    sku: str = ""
    name: str = ""
    slug: str = ""
    price: float = 0.0
    inventory_count: int = 0
    status: ProductStatus = "draft"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
