# coursehub/routers/enrollments.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursehub.core.database import get_db
from coursehub.core.dependencies import get_actor, get_optional_actor
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.enrollment import (
    CourseProgressResponse,
    EnrollmentResponse,
    MyCoursesResponse,
    ProgressResponse,
    ProgressUpdate,
)
from coursehub.schemas.review import (
    CourseReviewsResponse,
    ReviewCreate,
    ReviewResponse,
    WatchlistResponse,
)
from coursehub.services.course import CourseService
from coursehub.services.enrollment import EnrollmentService
from coursehub.services.review import ReviewService
from coursehub.services.watchlist import WatchlistService

router = APIRouter(
    tags=["Enrollments"],
    responses={404: {"description": "Not found"}},
)


# ==================== Enrollment Endpoints ====================


@router.post("/courses/{course_id}/enroll", response_model=EnrollmentResponse)
def enroll(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Enroll the current user. Enrolling twice is harmless.
    """
    created = EnrollmentService(db).enroll(actor, course_id)
    return {"user_id": actor.user_id, "course_id": course_id, "created": created}


@router.delete("/courses/{course_id}/enroll", status_code=204)
def unenroll(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    EnrollmentService(db).unenroll(actor, course_id)
    return None


@router.get("/courses/{course_id}/progress", response_model=CourseProgressResponse)
def get_course_progress(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Share of the course's lessons the current user has finished.
    """
    CourseService(db).get_or_404(course_id)
    percent = EnrollmentService(db).course_progress_percent(actor.user_id, course_id)
    return {
        "user_id": actor.user_id,
        "course_id": course_id,
        "progress_percent": percent,
    }


@router.put("/lessons/{lesson_id}/progress", response_model=ProgressResponse)
def record_progress(
    lesson_id: int,
    progress_in: ProgressUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return EnrollmentService(db).record_progress(
        actor, lesson_id, progress_in.watched_sec, progress_in.is_done
    )


@router.get("/me/courses", response_model=MyCoursesResponse)
def my_courses(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Courses the current user is enrolled in, with their progress.
    """
    return {"courses": EnrollmentService(db).my_courses_with_progress(actor)}


# ==================== Review Endpoints ====================


@router.post(
    "/courses/{course_id}/reviews", response_model=ReviewResponse, status_code=201
)
def create_review(
    course_id: int,
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Rate a course. Only enrolled learners can review, once each.
    """
    return ReviewService(db).add(actor, course_id, review_in)


@router.get("/courses/{course_id}/reviews", response_model=CourseReviewsResponse)
def list_reviews(
    course_id: int,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Optional[ActorContext] = Depends(get_optional_actor),
):
    CourseService(db).get_visible(course_id, actor)
    service = ReviewService(db)
    return {
        "stats": service.stats(course_id),
        "reviews": service.list_for_course(course_id, limit),
    }


# ==================== Watchlist Endpoints ====================


@router.get("/me/watchlist", response_model=WatchlistResponse)
def my_watchlist(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return {"courses": WatchlistService(db).list_for_user(actor)}


@router.put("/me/watchlist/{course_id}", status_code=204)
def save_to_watchlist(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    WatchlistService(db).add(actor, course_id)
    return None


@router.delete("/me/watchlist/{course_id}", status_code=204)
def remove_from_watchlist(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    WatchlistService(db).remove(actor, course_id)
    return None
