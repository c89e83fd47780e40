# coursehub/schemas/review.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

# ==================== Review Schemas ====================


class ReviewCreate(BaseModel):
    rating: int
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class ReviewRow(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user_name: Optional[str] = None


class ReviewStats(BaseModel):
    count: int = 0
    avg: float = 0.0


class CourseReviewsResponse(BaseModel):
    stats: ReviewStats
    reviews: List[ReviewRow]


# ==================== Watchlist Schemas ====================


class WatchlistRow(BaseModel):
    course_id: int
    title: str
    cover_url: Optional[str] = None
    price: Decimal
    promo_price: Optional[Decimal] = None
    rating_avg: float = 0.0
    rating_count: int = 0
    added_at: Optional[datetime] = None


class WatchlistResponse(BaseModel):
    courses: List[WatchlistRow]
