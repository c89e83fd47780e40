# coursehub/models/enrollment.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer
from sqlalchemy.sql import func

from coursehub.core.database import Base


class Enrollment(Base):
    """
    Learner membership in a course.
    The composite key makes enrolling twice a conflict the service ignores.
    """

    __tablename__ = "enrollments"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    course_id = Column(
        Integer, ForeignKey("courses.id"), primary_key=True, index=True
    )

    purchased_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<Enrollment(user_id={self.user_id}, course_id={self.course_id})>"


class Progress(Base):
    """One row per (learner, lesson); written only through an upsert."""

    __tablename__ = "progress"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    watched_sec = Column(Integer, default=0, nullable=False)
    is_done = Column(Boolean, default=False, nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Progress(user_id={self.user_id}, lesson_id={self.lesson_id}, done={self.is_done})>"
