# coursehub/routers/content.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from coursehub.core.database import get_db
from coursehub.core.dependencies import get_actor, get_optional_actor
from coursehub.core.exceptions import NotFoundError
from coursehub.core.guards import ensure_deleted
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.common import NOT_FOUND
from coursehub.schemas.content import (
    CourseOutlineResponse,
    LessonCreate,
    LessonResponse,
    LessonUpdate,
    SectionCreate,
    SectionResponse,
    SectionUpdate,
)
from coursehub.services.content import ContentService
from coursehub.services.course import CourseService
from coursehub.services.enrollment import EnrollmentService

router = APIRouter(
    tags=["Content"],
    responses={404: {"description": "Not found"}},
)


def _sees_full_outline(db: Session, actor: Optional[ActorContext], course) -> bool:
    if actor is None:
        return False
    if actor.is_admin or actor.instructor_id == course.instructor_id:
        return True
    return EnrollmentService(db).is_enrolled(actor.user_id, course.id)


@router.get("/courses/{course_id}/outline", response_model=CourseOutlineResponse)
def get_course_outline(
    course_id: int,
    db: Session = Depends(get_db),
    actor: Optional[ActorContext] = Depends(get_optional_actor),
):
    """
    Sections and lessons of a course.
    Visitors who are not enrolled only see the preview lessons.
    """
    course = CourseService(db).get_visible(course_id, actor)
    preview_only = not _sees_full_outline(db, actor, course)
    sections = ContentService(db).outline(course_id, preview_only=preview_only)
    return {"course_id": course_id, "preview_only": preview_only, "sections": sections}


# ==================== Section Endpoints ====================


@router.post(
    "/courses/{course_id}/sections", response_model=SectionResponse, status_code=201
)
def create_section(
    course_id: int,
    section_in: SectionCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return ContentService(db).add_section(actor, course_id, section_in)


@router.patch("/sections/{section_id}", response_model=SectionResponse)
def update_section(
    section_id: int,
    section_in: SectionUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Rename or reorder a section.
    """
    return ContentService(db).update_section(actor, section_id, section_in)


@router.delete("/sections/{section_id}", status_code=204)
def delete_section(
    section_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Delete an empty section.
    """
    result = ContentService(db).safe_delete_section(actor, section_id)
    if result.reason == NOT_FOUND:
        # Same answer as the other owner-only section routes
        raise NotFoundError("Section not found", status_code=403)
    ensure_deleted(result, "Section")
    return None


# ==================== Lesson Endpoints ====================


@router.post(
    "/sections/{section_id}/lessons", response_model=LessonResponse, status_code=201
)
def create_lesson(
    section_id: int,
    lesson_in: LessonCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return ContentService(db).add_lesson(actor, section_id, lesson_in)


@router.patch("/lessons/{lesson_id}", response_model=LessonResponse)
def update_lesson(
    lesson_id: int,
    lesson_in: LessonUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Patch a lesson or move it to another slot or section of the same course.
    """
    return ContentService(db).update_lesson(actor, lesson_id, lesson_in)


@router.delete("/lessons/{lesson_id}", status_code=204)
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    ContentService(db).delete_lesson(actor, lesson_id)
    return None
