# coursehub/schemas/content.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Section Schemas ====================


class SectionCreate(BaseModel):
    title: str = Field(..., max_length=255, examples=["Getting started"])
    order_no: int = Field(..., description="Free order slot inside the course")


class SectionUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    order_no: Optional[int] = None


class SectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    order_no: int


# ==================== Lesson Schemas ====================


class LessonCreate(BaseModel):
    title: str = Field(..., max_length=255)
    video_url: Optional[str] = None
    duration_sec: int = 0
    is_preview: bool = False
    order_no: int = Field(..., description="Free order slot inside the section")


class LessonUpdate(BaseModel):
    section_id: Optional[int] = Field(
        None, description="Move to another section of the same course"
    )
    title: Optional[str] = Field(None, max_length=255)
    video_url: Optional[str] = None
    duration_sec: Optional[int] = None
    is_preview: Optional[bool] = None
    order_no: Optional[int] = None


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    section_id: int
    title: str
    video_url: Optional[str] = None
    duration_sec: int
    is_preview: bool
    order_no: int


# ==================== Outline ====================


class SectionOutline(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    order_no: int
    lessons: List[LessonResponse] = []


class CourseOutlineResponse(BaseModel):
    course_id: int
    preview_only: bool
    sections: List[SectionOutline]
