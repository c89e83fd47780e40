# coursehub/schemas/enrollment.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Enrollment Schemas ====================


class EnrollmentResponse(BaseModel):
    """Schema for the enroll call; ``created`` is False when already enrolled"""

    user_id: int
    course_id: int
    enrolled: bool = True
    created: bool


# ==================== Progress Schemas ====================


class ProgressUpdate(BaseModel):
    watched_sec: int = Field(0, ge=0, description="Seconds watched so far")
    is_done: bool = False


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    lesson_id: int
    watched_sec: int
    is_done: bool
    updated_at: Optional[datetime] = None


class CourseProgressResponse(BaseModel):
    user_id: int
    course_id: int
    progress_percent: int = Field(..., ge=0, le=100)


class MyCourseRow(BaseModel):
    """One enrolled course with the learner's completion percentage"""

    course_id: int
    title: str
    short_desc: Optional[str] = None
    cover_url: Optional[str] = None
    price: Decimal
    promo_price: Optional[Decimal] = None
    is_removed: bool = False
    instructor_name: Optional[str] = None
    purchased_at: Optional[datetime] = None
    total_lessons: int = 0
    done_lessons: int = 0
    progress_percent: int = 0


class MyCoursesResponse(BaseModel):
    courses: List[MyCourseRow]
