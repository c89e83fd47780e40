# coursehub/routers/categories.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursehub.core.database import get_db
from coursehub.core.dependencies import get_actor
from coursehub.core.guards import ensure_deleted
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.category import (
    CategoryCreate,
    CategoryNode,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithParent,
    TopCategory,
)
from coursehub.schemas.search import CoursePage
from coursehub.services.category import CategoryService
from coursehub.services.search import SearchService

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
    responses={404: {"description": "Not found"}},
)


@router.get("/tree", response_model=List[CategoryNode])
def read_category_tree(db: Session = Depends(get_db)):
    """
    Top-level categories with their children, for menus and filters.
    """
    return CategoryService(db).build_tree()


@router.get("/top", response_model=List[TopCategory])
def read_top_categories(
    limit: int = Query(5, ge=1, le=20, description="Number of categories"),
    db: Session = Depends(get_db),
):
    """
    Categories with the most enrollments this week.
    """
    return CategoryService(db).top_categories(limit=limit)


@router.get("", response_model=List[CategoryWithParent])
def read_categories(db: Session = Depends(get_db)):
    """
    Flat list of every category with its parent's name.
    """
    return CategoryService(db).list_with_parent()


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Create a new category.
    Only admins can create categories.
    """
    return CategoryService(db).create(actor, category_in)


@router.get("/{category_id}", response_model=CategoryResponse)
def read_category(category_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).get_or_404(category_id)


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_in: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Rename, re-slug or move a category.
    Only admins can update categories.
    """
    return CategoryService(db).update(actor, category_id, category_in)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    """
    Delete a category that has neither children nor courses.
    """
    result = CategoryService(db).safe_delete(actor, category_id)
    ensure_deleted(result, "Category")
    return None


@router.get("/{category_id}/courses", response_model=CoursePage)
def read_category_courses(
    category_id: int,
    sort: Optional[str] = Query(None, description="rating, price, newest or bestseller"),
    page: Optional[str] = Query(None, description="Page number"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page"),
    db: Session = Depends(get_db),
):
    """
    Browse a category. A top-level category lists its children's courses.
    """
    return SearchService(db).list_by_category(
        category_id, sort=sort, page=page, limit=limit
    )
