# coursehub/services/enrollment.py
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import and_, case, distinct, func
from sqlalchemy.orm import Session

from coursehub.core.database import upsert
from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import NotFoundError
from coursehub.models.course import Course
from coursehub.models.enrollment import Enrollment, Progress
from coursehub.models.lesson import Lesson
from coursehub.models.section import Section
from coursehub.models.user import Instructor, User
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.enrollment import MyCourseRow

logger = logging.getLogger(__name__)


def progress_percent(done: int, total: int) -> int:
    """Completed over total lessons as a whole percentage, halves rounded up."""
    if total <= 0:
        return 0
    return min(100, (200 * done + total) // (2 * total))


class EnrollmentService:
    def __init__(self, db: Session):
        self.db = db

    def is_enrolled(self, user_id: int, course_id: int) -> bool:
        return self.db.query(
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .exists()
        ).scalar()

    @db_exception()
    def enroll(self, actor: ActorContext, course_id: int) -> bool:
        """
        Enroll the acting user. Returns True when a new enrollment was
        written and False when the user was already enrolled.
        """
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course or course.is_removed:
            raise NotFoundError("Course not found")

        stmt = (
            upsert(self.db, Enrollment.__table__)
            .values(user_id=actor.user_id, course_id=course_id)
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        )
        result = self.db.execute(stmt)
        self.db.commit()

        created = result.rowcount == 1
        if created:
            logger.info(f"Enrollment created: user={actor.user_id} course={course_id}")
        return created

    @db_exception()
    def unenroll(self, actor: ActorContext, course_id: int) -> bool:
        deleted = (
            self.db.query(Enrollment)
            .filter(
                Enrollment.user_id == actor.user_id,
                Enrollment.course_id == course_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted:
            logger.info(f"Enrollment removed: user={actor.user_id} course={course_id}")
        return bool(deleted)

    @db_exception()
    def record_progress(
        self, actor: ActorContext, lesson_id: int, watched_sec: int, is_done: bool
    ) -> Progress:
        """
        Store the learner's position in a lesson. The last write wins: the
        watched time may go down and ``is_done`` is taken as given.
        """
        if not self.db.query(Lesson.id).filter(Lesson.id == lesson_id).first():
            raise NotFoundError("Lesson not found")

        now = datetime.now(timezone.utc)
        stmt = upsert(self.db, Progress.__table__).values(
            user_id=actor.user_id,
            lesson_id=lesson_id,
            watched_sec=watched_sec,
            is_done=is_done,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "lesson_id"],
            set_={
                "watched_sec": stmt.excluded.watched_sec,
                "is_done": stmt.excluded.is_done,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.db.execute(stmt)
        self.db.commit()

        logger.debug(
            f"Progress recorded: user={actor.user_id} lesson={lesson_id} "
            f"watched={watched_sec} done={is_done}"
        )
        return (
            self.db.query(Progress)
            .filter(Progress.user_id == actor.user_id, Progress.lesson_id == lesson_id)
            .one()
        )

    def course_progress_percent(self, user_id: int, course_id: int) -> int:
        total = (
            self.db.query(func.count(Lesson.id))
            .join(Section, Section.id == Lesson.section_id)
            .filter(Section.course_id == course_id)
            .scalar()
        )
        if not total:
            return 0

        done = (
            self.db.query(func.count(Progress.lesson_id))
            .join(Lesson, Lesson.id == Progress.lesson_id)
            .join(Section, Section.id == Lesson.section_id)
            .filter(
                Section.course_id == course_id,
                Progress.user_id == user_id,
                Progress.is_done.is_(True),
            )
            .scalar()
        )
        return progress_percent(done or 0, total)

    def my_courses_with_progress(self, actor: ActorContext) -> List[MyCourseRow]:
        """Every course the actor is enrolled in, newest purchase first"""
        total_lessons = func.count(distinct(Lesson.id)).label("total_lessons")
        done_lessons = func.count(
            distinct(case((Progress.is_done.is_(True), Progress.lesson_id)))
        ).label("done_lessons")

        rows = (
            self.db.query(
                Course.id.label("course_id"),
                Course.title,
                Course.short_desc,
                Course.cover_url,
                Course.price,
                Course.promo_price,
                Course.is_removed,
                User.name.label("instructor_name"),
                Enrollment.purchased_at,
                total_lessons,
                done_lessons,
            )
            .select_from(Enrollment)
            .join(Course, Course.id == Enrollment.course_id)
            .join(Instructor, Instructor.id == Course.instructor_id)
            .join(User, User.id == Instructor.user_id)
            .outerjoin(Section, Section.course_id == Course.id)
            .outerjoin(Lesson, Lesson.section_id == Section.id)
            .outerjoin(
                Progress,
                and_(
                    Progress.lesson_id == Lesson.id,
                    Progress.user_id == Enrollment.user_id,
                ),
            )
            .filter(Enrollment.user_id == actor.user_id)
            .group_by(
                Course.id,
                Course.title,
                Course.short_desc,
                Course.cover_url,
                Course.price,
                Course.promo_price,
                Course.is_removed,
                User.name,
                Enrollment.purchased_at,
            )
            .order_by(Enrollment.purchased_at.desc(), Course.id.desc())
            .all()
        )

        return [
            MyCourseRow(
                **row._asdict(),
                progress_percent=progress_percent(row.done_lessons, row.total_lessons),
            )
            for row in rows
        ]
