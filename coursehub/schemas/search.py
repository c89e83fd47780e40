# coursehub/schemas/search.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from .course import CourseCard


class SortOption(str, Enum):
    RATING = "rating"
    PRICE = "price"
    NEWEST = "newest"
    BESTSELLER = "bestseller"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortOption":
        """Unknown or missing values fall back to rating."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RATING


class PageLink(BaseModel):
    num: int
    active: bool


class Pagination(BaseModel):
    page: int
    limit: int
    offset: int
    total_pages: int
    has_prev: bool
    has_next: bool
    prev_page: int
    next_page: int
    pages: List[PageLink]


class CoursePage(BaseModel):
    courses: List[CourseCard]
    total: int
    sort: SortOption
    keyword: Optional[str] = None
    category_id: Optional[int] = None
    pagination: Pagination
