# coursehub/schemas/category.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Category Schemas ====================


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100, examples=["Web Development"])
    slug: Optional[str] = Field(
        None, max_length=120, description="Derived from the name when omitted"
    )
    parent_id: Optional[int] = Field(None, description="Top-level category ID")


class CategoryUpdate(BaseModel):
    # Unset fields are left alone; an explicit null parent_id moves to top level
    name: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    parent_id: Optional[int] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None


class CategoryWithParent(CategoryResponse):
    parent_name: Optional[str] = None


class CategoryNode(CategoryResponse):
    """A top-level category with its children, for menus and filters."""

    children: List[CategoryResponse] = []


class TopCategory(BaseModel):
    id: int
    name: str
    enroll_count: int
