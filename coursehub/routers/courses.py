# coursehub/routers/courses.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursehub.core.database import get_db
from coursehub.core.dependencies import get_actor, get_optional_actor, page_params
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.course import (
    AdminCourseFilter,
    AdminCourseListResponse,
    CourseCard,
    CourseCreate,
    CourseDetail,
    CourseResponse,
    CourseUpdate,
    InstructorCourseListResponse,
)
from coursehub.services.course import CourseService

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


# ==================== Listings ====================


@router.get("/admin", response_model=AdminCourseListResponse)
def list_courses_admin(
    keyword: Optional[str] = Query(None, description="Search in titles"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
    instructor_id: Optional[int] = Query(None, description="Filter by instructor"),
    include_removed: bool = Query(True, description="Include soft-deleted courses"),
    window: tuple = Depends(page_params),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Back-office course list.
    Only admins can list every course.
    """
    offset, limit = window
    filters = AdminCourseFilter(
        keyword=keyword,
        category_id=category_id,
        instructor_id=instructor_id,
        include_removed=include_removed,
    )
    courses, total = CourseService(db).list_admin(actor, offset, limit, filters)
    return {"courses": courses, "total": total, "offset": offset, "limit": limit}


@router.get("/mine", response_model=InstructorCourseListResponse)
def list_my_courses(
    include_removed: bool = Query(True, description="Include soft-deleted courses"),
    window: tuple = Depends(page_params),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Courses taught by the current instructor, drafts included.
    """
    offset, limit = window
    courses, total = CourseService(db).list_by_instructor(
        actor, offset, limit, include_removed
    )
    return {"courses": courses, "total": total, "offset": offset, "limit": limit}


# ==================== Course Endpoints ====================


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Create a draft course.
    Only instructors can create courses.
    """
    return CourseService(db).create(actor, course_in)


@router.get("/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    actor: Optional[ActorContext] = Depends(get_optional_actor),
):
    """
    Course page with rating and student counts.
    Available to all users (authenticated or not).
    """
    return CourseService(db).get_detail(course_id, actor)


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: int,
    course_in: CourseUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return CourseService(db).update(actor, course_id, course_in)


@router.post("/{course_id}/complete", response_model=CourseResponse)
def complete_course(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Mark a course as completed once it has content.
    """
    return CourseService(db).mark_completed(actor, course_id)


@router.post("/{course_id}/remove", response_model=CourseResponse)
def remove_course(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Hide a course from the catalog (soft delete).
    """
    return CourseService(db).set_removed(actor, course_id, True)


@router.post("/{course_id}/restore", response_model=CourseResponse)
def restore_course(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return CourseService(db).set_removed(actor, course_id, False)


@router.get("/{course_id}/related", response_model=List[CourseCard])
def get_related_courses(
    course_id: int,
    limit: int = Query(5, ge=1, le=20),
    db: Session = Depends(get_db),
    actor: Optional[ActorContext] = Depends(get_optional_actor),
):
    """
    Best-selling courses from the same category.
    """
    return CourseService(db).related(course_id, limit, actor)
