from .categories import router as categories_router
from .content import router as content_router
from .courses import router as courses_router
from .enrollments import router as enrollments_router
from .search import router as search_router

routes = [
    categories_router,
    courses_router,
    content_router,
    enrollments_router,
    search_router,
]
