# coursehub/services/course.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Query, Session

from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursehub.core.guards import (
    require_admin,
    require_instructor,
    require_price,
    require_text,
)
from coursehub.models.category import Category
from coursehub.models.course import Course
from coursehub.models.enrollment import Enrollment
from coursehub.models.review import Review
from coursehub.models.user import Instructor, User
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.course import (
    AdminCourseFilter,
    AdminCourseRow,
    CourseCard,
    CourseCreate,
    CourseDetail,
    CourseUpdate,
)
from coursehub.services.category import CategoryService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Aggregates, computed per row by correlated subqueries
# ---------------------------------------------------------------------------
def students_count_expr():
    return (
        select(func.count(Enrollment.user_id))
        .where(Enrollment.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


def rating_avg_expr():
    return (
        select(func.coalesce(func.round(func.avg(Review.rating), 1), 0))
        .where(Review.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


def rating_count_expr():
    return (
        select(func.count(Review.id))
        .where(Review.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


def effective_price_expr():
    return func.coalesce(Course.promo_price, Course.price)


def card_query(db: Session, *extra_columns) -> Query:
    """
    Base query for learner-facing course rows: course columns, category and
    instructor names, and the rating/student aggregates.
    """
    return (
        db.query(
            Course.id,
            Course.title,
            Course.short_desc,
            Course.cover_url,
            Course.cat_id,
            Category.name.label("category_name"),
            User.name.label("instructor_name"),
            Course.price,
            Course.promo_price,
            effective_price_expr().label("effective_price"),
            rating_avg_expr().label("rating_avg"),
            rating_count_expr().label("rating_count"),
            students_count_expr().label("students_count"),
            Course.view_count,
            Course.is_completed,
            Course.created_at,
            *extra_columns,
        )
        .join(Category, Category.id == Course.cat_id)
        .join(Instructor, Instructor.id == Course.instructor_id)
        .join(User, User.id == Instructor.user_id)
    )


class CourseService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, course_id: int) -> Optional[Course]:
        """Get a course by ID"""
        return self.db.query(Course).filter(Course.id == course_id).first()

    def get_or_404(self, course_id: int) -> Course:
        course = self.get(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def require_owned(self, actor: ActorContext, course_id: int) -> Course:
        """
        Return the course when ``actor`` is its instructor.
        A missing course is reported as forbidden so ids cannot be probed.
        """
        instructor_id = require_instructor(actor)
        course = self.get(course_id)
        if not course:
            raise NotFoundError("Course not found", status_code=403)
        if course.instructor_id != instructor_id:
            raise PermissionDeniedError(
                "You do not own this course", code="NOT_OWNER"
            )
        return course

    def _require_leaf_category(self, cat_id: int):
        categories = CategoryService(self.db)
        if not categories.get(cat_id):
            raise ValidationError(
                "Category does not exist", code="CATEGORY_NOT_FOUND", field="cat_id"
            )
        if not categories.is_leaf(cat_id):
            raise ValidationError(
                "Courses can only be placed in a leaf category",
                code="NOT_A_LEAF",
                field="cat_id",
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @db_exception()
    def create(self, actor: ActorContext, course_in: CourseCreate) -> Course:
        """Create a draft course owned by the acting instructor"""
        instructor_id = require_instructor(actor)

        title = require_text(course_in.title, "title")
        require_price(course_in.price, course_in.promo_price)
        self._require_leaf_category(course_in.cat_id)

        course = Course(
            cat_id=course_in.cat_id,
            instructor_id=instructor_id,
            title=title,
            short_desc=course_in.short_desc,
            description=course_in.description,
            cover_url=course_in.cover_url,
            price=course_in.price,
            promo_price=course_in.promo_price,
            is_removed=False,
            is_completed=False,
            view_count=0,
        )
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        logger.info(
            f"Course created: id={course.id} instructor={instructor_id} cat={course.cat_id}"
        )
        return course

    @db_exception()
    def update(
        self, actor: ActorContext, course_id: int, course_in: CourseUpdate
    ) -> Course:
        """
        Patch a course. Unset fields stay as they are; title, price and
        cat_id ignore explicit nulls, an explicit null promo_price ends the
        promotion.
        """
        course = self.require_owned(actor, course_id)
        update_data = course_in.model_dump(exclude_unset=True)

        for field in ("title", "price", "cat_id"):
            if update_data.get(field, "") is None:
                update_data.pop(field)

        if "title" in update_data:
            update_data["title"] = require_text(update_data["title"], "title")

        price = update_data.get("price", course.price)
        promo_price = update_data.get("promo_price", course.promo_price)
        require_price(price, promo_price)

        if "cat_id" in update_data and update_data["cat_id"] != course.cat_id:
            self._require_leaf_category(update_data["cat_id"])

        for field, value in update_data.items():
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)

        logger.info(
            f"Course updated: id={course.id} fields={sorted(update_data)}"
        )
        return course

    @db_exception()
    def set_removed(self, actor: ActorContext, course_id: int, removed: bool) -> Course:
        """Soft delete or restore a course (admin or owner)"""
        if actor.is_admin:
            course = self.get_or_404(course_id)
        else:
            course = self.require_owned(actor, course_id)

        course.is_removed = removed
        self.db.commit()
        self.db.refresh(course)

        logger.info(
            f"Course {'removed' if removed else 'restored'}: id={course.id} "
            f"by user={actor.user_id}"
        )
        return course

    @db_exception()
    def mark_completed(self, actor: ActorContext, course_id: int) -> Course:
        from coursehub.services.content import ContentService

        course = self.require_owned(actor, course_id)
        if course.is_removed:
            raise ValidationError(
                "A removed course cannot be published", code="COURSE_REMOVED"
            )
        if not ContentService(self.db).can_publish(course_id):
            raise ValidationError(
                "Add at least one section with one lesson before publishing",
                code="COURSE_HAS_NO_CONTENT",
            )

        course.is_completed = True
        self.db.commit()
        self.db.refresh(course)

        logger.info(f"Course marked completed: id={course.id}")
        return course

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def list_admin(
        self,
        actor: ActorContext,
        offset: int = 0,
        limit: int = 10,
        filters: Optional[AdminCourseFilter] = None,
    ) -> Tuple[List[AdminCourseRow], int]:
        """Back-office listing with category and instructor names"""
        require_admin(actor)
        filters = filters or AdminCourseFilter()

        query = (
            self.db.query(
                Course.id,
                Course.title,
                Course.price,
                Course.promo_price,
                Course.is_completed,
                Course.is_removed,
                Course.view_count,
                Course.last_updated_at,
                Category.name.label("category_name"),
                User.name.label("instructor_name"),
            )
            .join(Category, Category.id == Course.cat_id)
            .join(Instructor, Instructor.id == Course.instructor_id)
            .join(User, User.id == Instructor.user_id)
        )

        keyword = (filters.keyword or "").strip()
        if keyword:
            query = query.filter(Course.title.icontains(keyword, autoescape=True))
        if filters.category_id is not None:
            leaf_ids = CategoryService(self.db).leaf_ids(filters.category_id)
            query = query.filter(Course.cat_id.in_(leaf_ids))
        if filters.instructor_id is not None:
            query = query.filter(Course.instructor_id == filters.instructor_id)
        if not filters.include_removed:
            query = query.filter(Course.is_removed.is_(False))

        total = query.count()
        rows = (
            query.order_by(Course.last_updated_at.desc(), Course.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [AdminCourseRow.model_validate(row) for row in rows], total

    def list_by_instructor(
        self,
        actor: ActorContext,
        offset: int = 0,
        limit: int = 10,
        include_removed: bool = True,
    ) -> Tuple[List[Course], int]:
        """The acting instructor's own courses, drafts included"""
        instructor_id = require_instructor(actor)

        query = self.db.query(Course).filter(Course.instructor_id == instructor_id)
        if not include_removed:
            query = query.filter(Course.is_removed.is_(False))

        total = query.count()
        courses = (
            query.order_by(Course.last_updated_at.desc(), Course.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return courses, total

    def get_detail(
        self, course_id: int, actor: Optional[ActorContext] = None
    ) -> CourseDetail:
        """
        Learner-facing course page. Every call counts as one view.
        Removed courses stay visible to admins, the owner and learners who
        already bought them.
        """
        row = (
            card_query(
                self.db,
                Course.description,
                Course.instructor_id,
                Instructor.bio.label("instructor_bio"),
                Course.is_removed,
                Course.last_updated_at,
            )
            .filter(Course.id == course_id)
            .first()
        )
        if not row:
            raise NotFoundError("Course not found")
        if row.is_removed and not self._can_see_removed(actor, row):
            raise NotFoundError("Course not found")

        self.db.query(Course).filter(Course.id == course_id).update(
            {
                Course.view_count: Course.view_count + 1,
                Course.last_updated_at: Course.last_updated_at,
            },
            synchronize_session=False,
        )
        self.db.commit()

        detail = CourseDetail.model_validate(row)
        detail.view_count += 1
        return detail

    def get_visible(
        self, course_id: int, actor: Optional[ActorContext] = None
    ) -> Course:
        """Like get_or_404, but a removed course only shows to those who may see it"""
        course = self.get_or_404(course_id)
        if course.is_removed and not self._can_see_removed(actor, course):
            raise NotFoundError("Course not found")
        return course

    def _can_see_removed(self, actor: Optional[ActorContext], row) -> bool:
        if actor is None:
            return False
        if actor.is_admin or actor.instructor_id == row.instructor_id:
            return True
        return self.db.query(
            self.db.query(Enrollment)
            .filter(
                Enrollment.user_id == actor.user_id,
                Enrollment.course_id == row.id,
            )
            .exists()
        ).scalar()

    def related(
        self, course_id: int, limit: int = 5, actor: Optional[ActorContext] = None
    ) -> List[CourseCard]:
        """Best-selling courses from the same category"""
        course = self.get_visible(course_id, actor)
        students = students_count_expr()
        rows = (
            card_query(self.db)
            .filter(
                Course.cat_id == course.cat_id,
                Course.id != course.id,
                Course.is_removed.is_(False),
            )
            .order_by(students.desc(), Course.id.asc())
            .limit(limit)
            .all()
        )
        return [CourseCard.model_validate(row) for row in rows]
