# coursehub/services/content.py
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from coursehub.core.guards import require_order_no, require_text
from coursehub.models.lesson import Lesson
from coursehub.models.section import Section
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.common import HAS_LESSON, NOT_FOUND, DeleteResult
from coursehub.schemas.content import (
    LessonCreate,
    LessonResponse,
    LessonUpdate,
    SectionCreate,
    SectionOutline,
    SectionUpdate,
)
from coursehub.services.course import CourseService

logger = logging.getLogger(__name__)

SLOT_TAKEN = "Order slot already taken"


class ContentService:
    """Sections and lessons of a course, kept in explicit order slots."""

    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_section(self, section_id: int) -> Optional[Section]:
        return self.db.query(Section).filter(Section.id == section_id).first()

    def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        return self.db.query(Lesson).filter(Lesson.id == lesson_id).first()

    def _owned_section(self, actor: ActorContext, section_id: int) -> Section:
        section = self.get_section(section_id)
        if not section:
            raise NotFoundError("Section not found", status_code=403)
        self.courses.require_owned(actor, section.course_id)
        return section

    def _owned_lesson(self, actor: ActorContext, lesson_id: int):
        lesson = self.get_lesson(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found", status_code=403)
        section = self._owned_section(actor, lesson.section_id)
        return lesson, section

    def _ensure_section_slot_free(
        self, course_id: int, order_no: int, exclude_id: Optional[int] = None
    ):
        query = self.db.query(Section.id).filter(
            Section.course_id == course_id, Section.order_no == order_no
        )
        if exclude_id is not None:
            query = query.filter(Section.id != exclude_id)
        if query.first():
            raise ConflictError(SLOT_TAKEN, code="ORDER_SLOT_TAKEN", field="order_no")

    def _ensure_lesson_slot_free(
        self, section_id: int, order_no: int, exclude_id: Optional[int] = None
    ):
        query = self.db.query(Lesson.id).filter(
            Lesson.section_id == section_id, Lesson.order_no == order_no
        )
        if exclude_id is not None:
            query = query.filter(Lesson.id != exclude_id)
        if query.first():
            raise ConflictError(SLOT_TAKEN, code="ORDER_SLOT_TAKEN", field="order_no")

    @staticmethod
    def _require_duration(value: Optional[int]) -> int:
        if value is None or value < 0:
            raise ValidationError(
                "Duration must be zero or positive",
                code="NEGATIVE_DURATION",
                field="duration_sec",
            )
        return value

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    @db_exception(SLOT_TAKEN)
    def add_section(
        self, actor: ActorContext, course_id: int, section_in: SectionCreate
    ) -> Section:
        """Append a section to a course the actor owns"""
        self.courses.require_owned(actor, course_id)
        title = require_text(section_in.title, "title")
        order_no = require_order_no(section_in.order_no)
        self._ensure_section_slot_free(course_id, order_no)

        section = Section(course_id=course_id, title=title, order_no=order_no)
        self.db.add(section)
        self.db.commit()
        self.db.refresh(section)

        logger.info(
            f"Section added: id={section.id} course={course_id} order_no={order_no}"
        )
        return section

    @db_exception(SLOT_TAKEN)
    def update_section(
        self, actor: ActorContext, section_id: int, section_in: SectionUpdate
    ) -> Section:
        section = self._owned_section(actor, section_id)
        update_data = section_in.model_dump(exclude_unset=True)

        if update_data.get("title") is not None:
            section.title = require_text(update_data["title"], "title")
        if update_data.get("order_no") is not None:
            order_no = require_order_no(update_data["order_no"])
            if order_no != section.order_no:
                self._ensure_section_slot_free(
                    section.course_id, order_no, exclude_id=section.id
                )
                section.order_no = order_no

        self.db.commit()
        self.db.refresh(section)

        logger.info(f"Section updated: id={section.id} order_no={section.order_no}")
        return section

    @db_exception()
    def safe_delete_section(self, actor: ActorContext, section_id: int) -> DeleteResult:
        """Delete a section only when no lesson references it"""
        section = (
            self.db.query(Section)
            .filter(Section.id == section_id)
            .with_for_update()
            .first()
        )
        if section is None:
            self.db.rollback()
            return DeleteResult.refused(NOT_FOUND)
        self.courses.require_owned(actor, section.course_id)

        has_lesson = self.db.query(
            self.db.query(Lesson.id).filter(Lesson.section_id == section_id).exists()
        ).scalar()
        if has_lesson:
            self.db.rollback()
            logger.info(f"Section delete refused: id={section_id} reason={HAS_LESSON}")
            return DeleteResult.refused(HAS_LESSON)

        try:
            self.db.query(Section).filter(Section.id == section_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Section delete hit a foreign key: id={section_id}")
            return DeleteResult.refused(HAS_LESSON)

        logger.info(f"Section deleted: id={section_id}")
        return DeleteResult.done()

    # ------------------------------------------------------------------
    # Lessons
    # ------------------------------------------------------------------
    @db_exception(SLOT_TAKEN)
    def add_lesson(
        self, actor: ActorContext, section_id: int, lesson_in: LessonCreate
    ) -> Lesson:
        self._owned_section(actor, section_id)
        title = require_text(lesson_in.title, "title")
        order_no = require_order_no(lesson_in.order_no)
        duration_sec = self._require_duration(lesson_in.duration_sec)
        self._ensure_lesson_slot_free(section_id, order_no)

        lesson = Lesson(
            section_id=section_id,
            title=title,
            video_url=lesson_in.video_url,
            duration_sec=duration_sec,
            is_preview=lesson_in.is_preview,
            order_no=order_no,
        )
        self.db.add(lesson)
        self.db.commit()
        self.db.refresh(lesson)

        logger.info(
            f"Lesson added: id={lesson.id} section={section_id} order_no={order_no}"
        )
        return lesson

    @db_exception(SLOT_TAKEN)
    def update_lesson(
        self, actor: ActorContext, lesson_id: int, lesson_in: LessonUpdate
    ) -> Lesson:
        """
        Patch or reorder a lesson. It may move to another section, but only
        within the same course, and never onto an occupied slot.
        """
        lesson, section = self._owned_lesson(actor, lesson_id)
        update_data = lesson_in.model_dump(exclude_unset=True)

        target_section_id = lesson.section_id
        new_section_id = update_data.get("section_id")
        if new_section_id is not None and new_section_id != lesson.section_id:
            target = self.get_section(new_section_id)
            if not target or target.course_id != section.course_id:
                raise ValidationError(
                    "Lessons can only move between sections of the same course",
                    code="SECTION_OTHER_COURSE",
                    field="section_id",
                )
            target_section_id = target.id

        order_no = lesson.order_no
        if update_data.get("order_no") is not None:
            order_no = require_order_no(update_data["order_no"])

        if target_section_id != lesson.section_id or order_no != lesson.order_no:
            self._ensure_lesson_slot_free(
                target_section_id, order_no, exclude_id=lesson.id
            )

        if update_data.get("title") is not None:
            lesson.title = require_text(update_data["title"], "title")
        if update_data.get("duration_sec") is not None:
            lesson.duration_sec = self._require_duration(update_data["duration_sec"])
        if "video_url" in update_data:
            lesson.video_url = update_data["video_url"]
        if update_data.get("is_preview") is not None:
            lesson.is_preview = update_data["is_preview"]
        lesson.section_id = target_section_id
        lesson.order_no = order_no

        self.db.commit()
        self.db.refresh(lesson)

        logger.info(
            f"Lesson updated: id={lesson.id} section={lesson.section_id} "
            f"order_no={lesson.order_no}"
        )
        return lesson

    @db_exception()
    def delete_lesson(self, actor: ActorContext, lesson_id: int) -> None:
        """Delete a lesson; learner progress on it goes with it"""
        self._owned_lesson(actor, lesson_id)
        self.db.query(Lesson).filter(Lesson.id == lesson_id).delete(
            synchronize_session=False
        )
        self.db.commit()
        logger.info(f"Lesson deleted: id={lesson_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def outline(self, course_id: int, preview_only: bool = False) -> List[SectionOutline]:
        """
        Sections with their lessons, both ordered by (order_no, id).
        With ``preview_only`` only preview lessons are listed, but every
        section is kept so learners still see the course's shape.
        """
        self.courses.get_or_404(course_id)

        sections = (
            self.db.query(Section)
            .filter(Section.course_id == course_id)
            .order_by(Section.order_no.asc(), Section.id.asc())
            .all()
        )
        outline = [SectionOutline.model_validate(section) for section in sections]
        if not outline:
            return outline

        by_id = {item.id: item for item in outline}
        lessons = self.db.query(Lesson).filter(Lesson.section_id.in_(list(by_id)))
        if preview_only:
            lessons = lessons.filter(Lesson.is_preview.is_(True))
        for lesson in lessons.order_by(Lesson.order_no.asc(), Lesson.id.asc()):
            by_id[lesson.section_id].lessons.append(LessonResponse.model_validate(lesson))
        return outline

    def can_publish(self, course_id: int) -> bool:
        """A course is publishable once it has a section holding a lesson"""
        has_section = self.db.query(
            self.db.query(Section.id).filter(Section.course_id == course_id).exists()
        ).scalar()
        if not has_section:
            return False
        return self.db.query(
            self.db.query(Lesson.id)
            .join(Section, Section.id == Lesson.section_id)
            .filter(Section.course_id == course_id)
            .exists()
        ).scalar()
