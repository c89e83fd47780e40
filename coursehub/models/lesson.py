from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from coursehub.core.database import Base


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (
        UniqueConstraint("section_id", "order_no", name="uq_lessons_section_order"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # A section with lessons cannot be dropped
    section_id = Column(
        Integer,
        ForeignKey("sections.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)
    video_url = Column(Text, nullable=True)
    duration_sec = Column(Integer, default=0, nullable=False)

    # Visible to learners who are not enrolled
    is_preview = Column(Boolean, default=False, nullable=False)

    order_no = Column(Integer, nullable=False)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return (
            f"<Lesson(id={self.id}, section_id={self.section_id}, order_no={self.order_no})>"
        )
