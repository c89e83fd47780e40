# coursehub/services/review.py
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursehub.models.course import Course
from coursehub.models.review import Review
from coursehub.models.user import User
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.review import ReviewCreate, ReviewRow, ReviewStats
from coursehub.services.enrollment import EnrollmentService

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, db: Session):
        self.db = db

    @db_exception("You have already reviewed this course")
    def add(self, actor: ActorContext, course_id: int, review_in: ReviewCreate) -> Review:
        """Rate a course the actor is enrolled in; one review per learner"""
        if review_in.rating is None or not 1 <= review_in.rating <= 5:
            raise ValidationError(
                "Rating must be between 1 and 5", code="INVALID_RATING", field="rating"
            )
        if not self.db.query(Course.id).filter(Course.id == course_id).first():
            raise NotFoundError("Course not found")
        if not EnrollmentService(self.db).is_enrolled(actor.user_id, course_id):
            raise PermissionDeniedError(
                "Only enrolled learners can review a course", code="NOT_ENROLLED"
            )

        exists = (
            self.db.query(Review.id)
            .filter(Review.user_id == actor.user_id, Review.course_id == course_id)
            .first()
        )
        if exists:
            raise ConflictError(
                "You have already reviewed this course", code="DUPLICATE_REVIEW"
            )

        comment = (review_in.comment or "").strip() or None
        review = Review(
            user_id=actor.user_id,
            course_id=course_id,
            rating=review_in.rating,
            comment=comment,
        )
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)

        logger.info(
            f"Review added: course={course_id} user={actor.user_id} rating={review.rating}"
        )
        return review

    def list_for_course(self, course_id: int, limit: int = 10) -> List[ReviewRow]:
        rows = (
            self.db.query(
                Review.id,
                Review.rating,
                Review.comment,
                Review.created_at,
                User.name.label("user_name"),
            )
            .join(User, User.id == Review.user_id)
            .filter(Review.course_id == course_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
            .all()
        )
        return [ReviewRow(**row._asdict()) for row in rows]

    def stats(self, course_id: int) -> ReviewStats:
        count, avg = (
            self.db.query(func.count(Review.id), func.avg(Review.rating))
            .filter(Review.course_id == course_id)
            .one()
        )
        if not count:
            return ReviewStats()
        return ReviewStats(count=count, avg=round(float(avg), 1))
