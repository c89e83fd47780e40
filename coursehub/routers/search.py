# coursehub/routers/search.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from coursehub.core.config import settings
from coursehub.core.database import get_db
from coursehub.core.limiter import limiter
from coursehub.schemas.course import CourseCard
from coursehub.schemas.search import CoursePage
from coursehub.services.search import SearchService

router = APIRouter(tags=["Search"])


@router.get("/search", response_model=CoursePage)
@limiter.limit(settings.search_rate_limit)
def search_courses(
    request: Request,
    q: Optional[str] = Query(None, max_length=200, description="Search keywords"),
    sort: Optional[str] = Query(None, description="rating, price, newest or bestseller"),
    page: Optional[str] = Query(None, description="Page number"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page"),
    db: Session = Depends(get_db),
):
    """
    Full-text course search. A course matches when it contains any of the
    keywords. Available to all users (authenticated or not).
    """
    return SearchService(db).search_page(q, sort=sort, page=page, limit=limit)


# ==================== Home page feeds ====================


@router.get("/feeds/newest", response_model=List[CourseCard])
def newest_courses(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return SearchService(db).newest(limit)


@router.get("/feeds/popular", response_model=List[CourseCard])
def popular_courses(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """
    Most viewed courses.
    """
    return SearchService(db).most_popular(limit)


@router.get("/feeds/featured", response_model=List[CourseCard])
def featured_courses(
    limit: int = Query(4, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """
    Courses with the most enrollments this week.
    """
    return SearchService(db).featured_this_week(limit)
