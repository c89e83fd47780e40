"""
Models package initialization
Import all models so that Base.metadata knows every table
"""

from .category import Category
from .course import Course
from .enrollment import Enrollment, Progress
from .lesson import Lesson
from .review import Review, WatchlistItem
from .section import Section
from .user import Instructor, User

# Make models available at package level
__all__ = [
    "Category",
    "Course",
    "Enrollment",
    "Instructor",
    "Lesson",
    "Progress",
    "Review",
    "Section",
    "User",
    "WatchlistItem",
]
