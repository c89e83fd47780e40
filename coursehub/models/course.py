# coursehub/models/course.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func

from coursehub.core.config import settings
from coursehub.core.database import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
        CheckConstraint(
            "promo_price IS NULL OR promo_price <= price",
            name="ck_courses_promo_not_above_price",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Ownership / placement
    cat_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    instructor_id = Column(
        Integer, ForeignKey("instructors.id"), nullable=False, index=True
    )

    # Basic Info
    title = Column(String(255), nullable=False)
    short_desc = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    cover_url = Column(Text, nullable=True)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, default=0)
    promo_price = Column(Numeric(10, 2), nullable=True)

    # Lifecycle flags
    is_removed = Column(Boolean, default=False, nullable=False)  # soft delete
    is_completed = Column(Boolean, default=False, nullable=False)  # publish-ready

    # Counters (students / ratings are aggregated from their own tables)
    view_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', price={self.price})>"


def search_document():
    """Text indexed for full-text search: title, short and long description."""
    return (
        Course.title
        + " "
        + func.coalesce(Course.short_desc, "")
        + " "
        + func.coalesce(Course.description, "")
    )


def search_vector():
    return func.to_tsvector(settings.search_language, search_document())


# GIN expression index; queries must use search_vector() for the planner to pick it
Index(
    "ix_courses_fts",
    search_vector(),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
