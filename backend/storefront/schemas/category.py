# storefront/schemas/category.py
from typing import List, Optional

from pydantic import BaseModel, Field

from storefront.schemas.product import SLUG_PATTERN


class CategoryBase(BaseModel):
    """Fields shared by categories and subcategories."""
    name: str = Field(..., min_length=1, description="Category name")
    slug: str = Field(..., pattern=SLUG_PATTERN, description="Unique URL slug")
    description: Optional[str] = Field(None, description="Description (optional)")
    image_url: Optional[str] = Field(None, description="Cover image URL")


# ---------- input ----------
class CategoryCreate(CategoryBase):
    sort_order: int = Field(0, description="Position in menus, ascending")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image_url: Optional[str] = None
    sort_order: Optional[int] = None


class SubcategoryCreate(CategoryBase):
    display_order: int = Field(0, description="Position under the parent, ascending")


class SubcategoryUpdate(BaseModel):
    category_id: Optional[str] = Field(None, description="Move under another category")
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = None


# ---------- output ----------
class SubcategoryOut(BaseModel):
    id: str
    category_id: Optional[str] = None
    name: str = ""
    slug: str = ""
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: int = 0


class CategoryOut(BaseModel):
    id: str
    name: str = ""
    slug: str = ""
    description: Optional[str] = None
    image_url: Optional[str] = None
    sort_order: int = 0


class CategoryTreeOut(CategoryOut):
    """Category with its subcategories, for the shop menu."""
    subcategories: List[SubcategoryOut] = Field(default_factory=list)
