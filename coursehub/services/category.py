# coursehub/services/category.py
import logging
import re
import unicodedata
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from coursehub.core.decorator import db_exception
from coursehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from coursehub.core.guards import require_admin, require_text
from coursehub.models.category import Category
from coursehub.models.course import Course
from coursehub.models.enrollment import Enrollment
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.category import (
    CategoryCreate,
    CategoryNode,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithParent,
    TopCategory,
)
from coursehub.schemas.common import (
    HAS_CHILDREN,
    HAS_COURSES,
    NOT_FOUND,
    DeleteResult,
)

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    """Lowercase-hyphenated ASCII: accents folded, other symbols collapsed."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode()
    value = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return value.strip("-")


def week_start(now: Optional[datetime] = None) -> datetime:
    """Monday 00:00 UTC of the week containing ``now``."""
    now = now or datetime.now(timezone.utc)
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, category_id: int) -> Optional[Category]:
        """Get a category by ID"""
        return self.db.query(Category).filter(Category.id == category_id).first()

    def get_or_404(self, category_id: int) -> Category:
        category = self.get(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def has_children(self, category_id: int) -> bool:
        return self.db.query(
            self.db.query(Category.id).filter(Category.parent_id == category_id).exists()
        ).scalar()

    def has_courses(self, category_id: int) -> bool:
        # Soft-deleted courses still reference the category
        return self.db.query(
            self.db.query(Course.id).filter(Course.cat_id == category_id).exists()
        ).scalar()

    def is_leaf(self, category_id: int) -> bool:
        return not self.has_children(category_id)

    def leaf_ids(self, category_id: int) -> List[int]:
        """
        Categories whose courses make up a listing of ``category_id``.
        A parent stands for the union of its children; a leaf for itself.
        Resolved on every call since membership can change between requests.
        """
        self.get_or_404(category_id)
        child_ids = [
            row.id
            for row in self.db.query(Category.id)
            .filter(Category.parent_id == category_id)
            .order_by(Category.id.asc())
        ]
        return child_ids or [category_id]

    def build_tree(self) -> List[CategoryNode]:
        """Top-level categories by id, each with its children by id."""
        parents = (
            self.db.query(Category)
            .filter(Category.parent_id.is_(None))
            .order_by(Category.id.asc())
            .all()
        )
        children = (
            self.db.query(Category)
            .filter(Category.parent_id.isnot(None))
            .order_by(Category.parent_id.asc(), Category.id.asc())
            .all()
        )

        tree = [CategoryNode.model_validate(parent) for parent in parents]
        by_id = {node.id: node for node in tree}
        for child in children:
            node = by_id.get(child.parent_id)
            if node is not None:
                node.children.append(CategoryResponse.model_validate(child))
        return tree

    def list_with_parent(self) -> List[CategoryWithParent]:
        """Flat admin listing: each parent followed by its children."""
        parent = aliased(Category)
        rows = (
            self.db.query(
                Category.id,
                Category.name,
                Category.slug,
                Category.parent_id,
                Category.created_at,
                parent.name.label("parent_name"),
            )
            .outerjoin(parent, parent.id == Category.parent_id)
            .order_by(
                func.coalesce(Category.parent_id, Category.id).asc(),
                Category.parent_id.isnot(None).asc(),
                Category.id.asc(),
            )
            .all()
        )
        return [CategoryWithParent.model_validate(row) for row in rows]

    def top_categories(
        self, limit: int = 5, now: Optional[datetime] = None
    ) -> List[TopCategory]:
        """Categories ranked by enrollments purchased in the current week."""
        enroll_count = func.count(Enrollment.course_id).label("enroll_count")
        rows = (
            self.db.query(Category.id, Category.name, enroll_count)
            .join(Course, Course.cat_id == Category.id)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .filter(Enrollment.purchased_at >= week_start(now))
            .group_by(Category.id, Category.name)
            .order_by(enroll_count.desc(), Category.id.asc())
            .limit(limit)
            .all()
        )
        return [
            TopCategory(id=row.id, name=row.name, enroll_count=int(row.enroll_count))
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    @staticmethod
    def _resolve_slug(slug: Optional[str], name: str) -> str:
        resolved = slugify(slug.strip() if slug and slug.strip() else name)
        if not resolved:
            raise ValidationError(
                "Slug must contain at least one letter or digit",
                code="INVALID_SLUG",
                field="slug",
            )
        return resolved

    def _validate_parent(self, parent_id: int, category_id: Optional[int] = None):
        if category_id is not None and parent_id == category_id:
            raise ValidationError(
                "A category cannot be its own parent",
                code="SELF_PARENT",
                field="parent_id",
            )

        parent = self.get(parent_id)
        if not parent:
            raise ValidationError(
                "Parent category does not exist",
                code="PARENT_NOT_FOUND",
                field="parent_id",
            )
        if parent.parent_id is not None:
            raise ValidationError(
                "Only top-level categories can have children",
                code="DEPTH_EXCEEDED",
                field="parent_id",
            )
        if self.has_courses(parent_id):
            raise ValidationError(
                "Parent category already holds courses",
                code="PARENT_HAS_COURSES",
                field="parent_id",
            )

    def _ensure_unique(
        self,
        name: str,
        slug: str,
        parent_id: Optional[int],
        exclude_id: Optional[int] = None,
    ):
        slug_query = self.db.query(Category.id).filter(Category.slug == slug)
        if exclude_id is not None:
            slug_query = slug_query.filter(Category.id != exclude_id)
        if slug_query.first():
            raise ConflictError(
                "Category slug already exists", code="DUPLICATE_SLUG", field="slug"
            )

        name_query = self.db.query(Category.id).filter(Category.name == name)
        if parent_id is None:
            name_query = name_query.filter(Category.parent_id.is_(None))
        else:
            name_query = name_query.filter(Category.parent_id == parent_id)
        if exclude_id is not None:
            name_query = name_query.filter(Category.id != exclude_id)
        if name_query.first():
            raise ConflictError(
                "Category with this name already exists under the same parent",
                code="DUPLICATE_NAME",
                field="name",
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @db_exception("Category with this name or slug already exists")
    def create(self, actor: ActorContext, category_in: CategoryCreate) -> Category:
        """Create a new category (admin only)"""
        require_admin(actor)

        name = require_text(category_in.name, "name")
        slug = self._resolve_slug(category_in.slug, name)
        if category_in.parent_id is not None:
            self._validate_parent(category_in.parent_id)
        self._ensure_unique(name, slug, category_in.parent_id)

        category = Category(name=name, slug=slug, parent_id=category_in.parent_id)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)

        logger.info(
            f"Category created: id={category.id} slug={category.slug} "
            f"parent={category.parent_id} by user={actor.user_id}"
        )
        return category

    @db_exception("Category with this name or slug already exists")
    def update(
        self, actor: ActorContext, category_id: int, category_in: CategoryUpdate
    ) -> Category:
        """Update a category (admin only)"""
        require_admin(actor)
        category = self.get_or_404(category_id)
        update_data = category_in.model_dump(exclude_unset=True)

        name = category.name
        if update_data.get("name") is not None:
            name = require_text(update_data["name"], "name")

        slug = category.slug
        if update_data.get("slug") is not None:
            slug = self._resolve_slug(update_data["slug"], name)

        parent_id = update_data.get("parent_id", category.parent_id)
        if parent_id is not None and parent_id != category.parent_id:
            self._validate_parent(parent_id, category_id)
            if self.has_children(category_id):
                raise ValidationError(
                    "A category with children cannot be placed under another category",
                    code="DEPTH_EXCEEDED",
                    field="parent_id",
                )

        self._ensure_unique(name, slug, parent_id, exclude_id=category_id)

        category.name = name
        category.slug = slug
        category.parent_id = parent_id
        self.db.commit()
        self.db.refresh(category)

        logger.info(f"Category updated: id={category.id} by user={actor.user_id}")
        return category

    @db_exception()
    def safe_delete(self, actor: ActorContext, category_id: int) -> DeleteResult:
        """
        Delete a category only when nothing depends on it.

        The row lock, the dependency checks and the delete share one
        transaction so a concurrent insert of a child or a course cannot
        slip in between. The RESTRICT foreign keys refuse anything that
        still gets through.
        """
        require_admin(actor)

        category = (
            self.db.query(Category)
            .filter(Category.id == category_id)
            .with_for_update()
            .first()
        )
        reason = None
        if category is None:
            reason = NOT_FOUND
        elif self.has_children(category_id):
            reason = HAS_CHILDREN
        elif self.has_courses(category_id):
            reason = HAS_COURSES

        if reason is not None:
            self.db.rollback()
            logger.info(f"Category delete refused: id={category_id} reason={reason}")
            return DeleteResult.refused(reason)

        try:
            self.db.query(Category).filter(Category.id == category_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            reason = HAS_CHILDREN if self.has_children(category_id) else HAS_COURSES
            logger.warning(
                f"Category delete hit a foreign key: id={category_id} reason={reason}"
            )
            return DeleteResult.refused(reason)

        logger.info(f"Category deleted: id={category_id} by user={actor.user_id}")
        return DeleteResult.done()
