# coursehub/models/category.py
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.sql import func

from coursehub.core.database import Base


class Category(Base):
    """
    Two-level category. ``parent_id`` is NULL for top-level groups; a child
    may never become a parent itself (checked by CategoryService, not the
    schema). Parents and courses are protected by RESTRICT foreign keys.
    """

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("name", "parent_id", name="uq_categories_name_parent"),
        # NULL parents never collide in the constraint above
        Index(
            "uq_categories_top_level_name",
            "name",
            unique=True,
            sqlite_where=text("parent_id IS NULL"),
            postgresql_where=text("parent_id IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Basic Info
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)

    # Hierarchy
    parent_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Category(id={self.id}, slug='{self.slug}', parent_id={self.parent_id})>"
