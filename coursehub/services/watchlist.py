# coursehub/services/watchlist.py
import logging
from typing import List

from sqlalchemy.orm import Session

from coursehub.core.database import upsert
from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import NotFoundError
from coursehub.models.course import Course
from coursehub.models.review import WatchlistItem
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.review import WatchlistRow
from coursehub.services.course import rating_avg_expr, rating_count_expr

logger = logging.getLogger(__name__)


class WatchlistService:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, user_id: int, course_id: int) -> bool:
        return self.db.query(
            self.db.query(WatchlistItem)
            .filter(
                WatchlistItem.user_id == user_id, WatchlistItem.course_id == course_id
            )
            .exists()
        ).scalar()

    @db_exception()
    def add(self, actor: ActorContext, course_id: int) -> bool:
        """Save a course for later; saving it twice is a no-op"""
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course or course.is_removed:
            raise NotFoundError("Course not found")

        stmt = (
            upsert(self.db, WatchlistItem.__table__)
            .values(user_id=actor.user_id, course_id=course_id)
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount == 1

    @db_exception()
    def remove(self, actor: ActorContext, course_id: int) -> bool:
        deleted = (
            self.db.query(WatchlistItem)
            .filter(
                WatchlistItem.user_id == actor.user_id,
                WatchlistItem.course_id == course_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return bool(deleted)

    def list_for_user(self, actor: ActorContext) -> List[WatchlistRow]:
        rows = (
            self.db.query(
                Course.id.label("course_id"),
                Course.title,
                Course.cover_url,
                Course.price,
                Course.promo_price,
                rating_avg_expr().label("rating_avg"),
                rating_count_expr().label("rating_count"),
                WatchlistItem.created_at.label("added_at"),
            )
            .select_from(WatchlistItem)
            .join(Course, Course.id == WatchlistItem.course_id)
            .filter(
                WatchlistItem.user_id == actor.user_id,
                Course.is_removed.is_(False),
            )
            .order_by(WatchlistItem.created_at.desc(), Course.id.desc())
            .all()
        )
        return [WatchlistRow(**row._asdict()) for row in rows]
