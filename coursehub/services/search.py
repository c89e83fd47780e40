# coursehub/services/search.py
import logging
import math
import re
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import false, func, or_, select
from sqlalchemy.orm import Session

from coursehub.core.config import settings
from coursehub.models.course import Course, search_document, search_vector
from coursehub.models.enrollment import Enrollment
from coursehub.schemas.course import CourseCard
from coursehub.schemas.search import CoursePage, PageLink, Pagination, SortOption
from coursehub.services.category import CategoryService, week_start
from coursehub.services.course import (
    card_query,
    effective_price_expr,
    rating_avg_expr,
    students_count_expr,
)

logger = logging.getLogger(__name__)

_TERM_RE = re.compile(r"\w+", re.UNICODE)


def search_terms(keyword: Optional[str]) -> List[str]:
    """Split a keyword into lowercase word terms, dropping punctuation."""
    return _TERM_RE.findall((keyword or "").lower())


class SearchService:
    """
    Learner-facing listings: keyword search, category browsing and the
    home page feeds. Removed courses never appear here; drafts do.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def paginate(
        page, total_count: int, limit: int, window: Optional[int] = None
    ) -> Pagination:
        """
        Clamp ``page`` into range and compute the offset and page links.
        Missing or non-numeric pages count as page 1.
        """
        window = settings.pagination_window if window is None else window
        limit = max(1, int(limit))
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1

        total_pages = max(1, math.ceil(max(total_count, 0) / limit))
        page = min(max(page, 1), total_pages)

        first = max(1, page - window)
        last = min(total_pages, page + window)
        return Pagination(
            page=page,
            limit=limit,
            offset=(page - 1) * limit,
            total_pages=total_pages,
            has_prev=page > 1,
            has_next=page < total_pages,
            prev_page=max(1, page - 1),
            next_page=min(total_pages, page + 1),
            pages=[PageLink(num=num, active=num == page) for num in range(first, last + 1)],
        )

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------
    def _keyword_condition(self, keyword: Optional[str]):
        """
        Return ``(condition, rank)`` for a keyword; both are None when the
        keyword is blank. A course matches when it contains any term.
        """
        if not keyword or not keyword.strip():
            return None, None

        terms = search_terms(keyword)
        if not terms:
            return false(), None

        if self.db.get_bind().dialect.name == "postgresql":
            ts_query = func.to_tsquery(settings.search_language, " | ".join(terms))
            return (
                search_vector().op("@@")(ts_query),
                func.ts_rank(search_vector(), ts_query),
            )

        document = search_document()
        return or_(*[document.icontains(term, autoescape=True) for term in terms]), None

    def _conditions(
        self, keyword: Optional[str] = None, category_ids: Optional[List[int]] = None
    ):
        conditions = [Course.is_removed.is_(False)]
        condition, rank = self._keyword_condition(keyword)
        if condition is not None:
            conditions.append(condition)
        if category_ids is not None:
            conditions.append(Course.cat_id.in_(category_ids))
        return conditions, rank

    @staticmethod
    def _ordering(sort: SortOption, rank=None) -> list:
        if sort == SortOption.PRICE:
            ordering = [effective_price_expr().asc()]
        elif sort == SortOption.NEWEST:
            ordering = [Course.created_at.desc()]
        elif sort == SortOption.BESTSELLER:
            ordering = [students_count_expr().desc()]
        else:
            ordering = [rating_avg_expr().desc()]

        if rank is not None:
            ordering.append(rank.desc())
        ordering.append(Course.id.desc() if sort == SortOption.NEWEST else Course.id.asc())
        return ordering

    def _count(self, conditions) -> int:
        return self.db.query(func.count(Course.id)).filter(*conditions).scalar() or 0

    def _fetch(
        self, conditions, rank, sort: SortOption, limit: int, offset: int
    ) -> List[CourseCard]:
        rows = (
            card_query(self.db)
            .filter(*conditions)
            .order_by(*self._ordering(sort, rank))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [CourseCard.model_validate(row) for row in rows]

    def _page_size(self, limit: Optional[int], default: int) -> int:
        if not limit or limit < 1:
            return default
        return min(limit, settings.max_page_size)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def search(
        self,
        keyword: Optional[str],
        sort=SortOption.RATING,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[CourseCard], int]:
        """One window of keyword results plus the total match count."""
        sort = sort if isinstance(sort, SortOption) else SortOption.parse(sort)
        conditions, rank = self._conditions(keyword)
        total = self._count(conditions)
        return self._fetch(conditions, rank, sort, limit, max(offset, 0)), total

    def search_page(
        self, keyword: Optional[str], sort=None, page=1, limit: Optional[int] = None
    ) -> CoursePage:
        sort = sort if isinstance(sort, SortOption) else SortOption.parse(sort)
        limit = self._page_size(limit, settings.search_page_size)

        conditions, rank = self._conditions(keyword)
        total = self._count(conditions)
        pagination = self.paginate(page, total, limit)
        courses = self._fetch(conditions, rank, sort, limit, pagination.offset)

        logger.debug(
            f"Search '{keyword}' sort={sort.value} page={pagination.page}: {total} matches"
        )
        return CoursePage(
            courses=courses,
            total=total,
            sort=sort,
            keyword=(keyword or "").strip() or None,
            pagination=pagination,
        )

    def list_by_category(
        self, category_id: int, sort=None, page=1, limit: Optional[int] = None
    ) -> CoursePage:
        """Browse a category; a parent lists the courses of all its children."""
        sort = sort if isinstance(sort, SortOption) else SortOption.parse(sort)
        limit = self._page_size(limit, settings.category_page_size)

        category_ids = CategoryService(self.db).leaf_ids(category_id)
        conditions, rank = self._conditions(category_ids=category_ids)
        total = self._count(conditions)
        pagination = self.paginate(page, total, limit)
        courses = self._fetch(conditions, rank, sort, limit, pagination.offset)

        return CoursePage(
            courses=courses,
            total=total,
            sort=sort,
            category_id=category_id,
            pagination=pagination,
        )

    # ------------------------------------------------------------------
    # Home page feeds
    # ------------------------------------------------------------------
    def newest(self, limit: int = 10) -> List[CourseCard]:
        conditions, _ = self._conditions()
        return self._fetch(conditions, None, SortOption.NEWEST, limit, 0)

    def most_popular(self, limit: int = 10) -> List[CourseCard]:
        """Most viewed courses"""
        rows = (
            card_query(self.db)
            .filter(Course.is_removed.is_(False))
            .order_by(Course.view_count.desc(), Course.id.asc())
            .limit(limit)
            .all()
        )
        return [CourseCard.model_validate(row) for row in rows]

    def featured_this_week(
        self, limit: int = 4, now: Optional[datetime] = None
    ) -> List[CourseCard]:
        """Courses with the most enrollments since Monday"""
        weekly = (
            select(func.count(Enrollment.user_id))
            .where(
                Enrollment.course_id == Course.id,
                Enrollment.purchased_at >= week_start(now),
            )
            .correlate(Course)
            .scalar_subquery()
        )
        rows = (
            card_query(self.db)
            .filter(Course.is_removed.is_(False), weekly > 0)
            .order_by(weekly.desc(), Course.id.asc())
            .limit(limit)
            .all()
        )
        return [CourseCard.model_validate(row) for row in rows]
