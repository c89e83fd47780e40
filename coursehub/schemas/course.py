# coursehub/schemas/course.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Course Schemas ====================


class CourseCreate(BaseModel):
    cat_id: int = Field(..., description="Leaf category ID", examples=[3])
    title: str = Field(..., max_length=255, examples=["Python for Web Developers"])
    short_desc: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    cover_url: Optional[str] = None
    price: Decimal = Field(..., max_digits=10, decimal_places=2, examples=[49.99])
    promo_price: Optional[Decimal] = Field(
        None, max_digits=10, decimal_places=2, examples=[19.99]
    )


class CourseUpdate(BaseModel):
    # All fields are optional for PATCH requests
    cat_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    short_desc: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    cover_url: Optional[str] = None
    price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    promo_price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cat_id: int
    instructor_id: int
    title: str
    short_desc: Optional[str] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    price: Decimal
    promo_price: Optional[Decimal] = None
    is_removed: bool
    is_completed: bool
    view_count: int = 0
    created_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None


# ==================== Listing rows ====================


class CourseCard(BaseModel):
    """Learner-facing listing row with aggregates computed by the query."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    short_desc: Optional[str] = None
    cover_url: Optional[str] = None
    cat_id: int
    category_name: Optional[str] = None
    instructor_name: Optional[str] = None
    price: Decimal
    promo_price: Optional[Decimal] = None
    effective_price: Decimal
    rating_avg: float = 0.0
    rating_count: int = 0
    students_count: int = 0
    view_count: int = 0
    is_completed: bool = False
    created_at: Optional[datetime] = None


class CourseDetail(CourseCard):
    description: Optional[str] = None
    instructor_id: int
    instructor_bio: Optional[str] = None
    is_removed: bool = False
    last_updated_at: Optional[datetime] = None


class AdminCourseFilter(BaseModel):
    keyword: Optional[str] = None
    category_id: Optional[int] = None
    instructor_id: Optional[int] = None
    include_removed: bool = True


class AdminCourseRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Decimal
    promo_price: Optional[Decimal] = None
    is_completed: bool
    is_removed: bool
    view_count: int = 0
    last_updated_at: Optional[datetime] = None
    category_name: Optional[str] = None
    instructor_name: Optional[str] = None


class AdminCourseListResponse(BaseModel):
    courses: List[AdminCourseRow]
    total: int
    offset: int
    limit: int


class InstructorCourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int
    offset: int
    limit: int
