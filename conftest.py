import os

# Point the app at a throwaway in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_FILE", "logs/test.log")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coursehub.core.database import Base, SessionLocal, engine  # noqa: E402
from coursehub.core.security import jwt_manager  # noqa: E402
from coursehub.models import Instructor, User  # noqa: E402
from coursehub.schemas.actor import ActorContext  # noqa: E402
from coursehub.schemas.category import CategoryCreate  # noqa: E402
from coursehub.schemas.content import LessonCreate, SectionCreate  # noqa: E402
from coursehub.schemas.course import CourseCreate  # noqa: E402
from coursehub.services.category import CategoryService  # noqa: E402
from coursehub.services.content import ContentService  # noqa: E402
from coursehub.services.course import CourseService  # noqa: E402


def drop_schema():
    # categories.parent_id restricts deletes on itself, so DROP TABLE would
    # fail while a child row is left behind
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()


@pytest.fixture(autouse=True)
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_schema()


@pytest.fixture
def client():
    # No context manager: the lifespan would create tables on its own
    from main import app

    return TestClient(app)


def auth(actor: ActorContext) -> dict:
    return {"Authorization": f"Bearer {jwt_manager.create_access_token(actor)}"}


class CatalogFactory:
    """Builds catalog rows through the services, the way real callers do."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, name: str = None, role: str = "student") -> User:
        n = self._next()
        user = User(name=name or f"User {n}", email=f"user{n}@example.com", role=role)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def admin(self) -> ActorContext:
        return ActorContext(user_id=self.user(role="admin").id, role="admin")

    def student(self, name: str = None) -> ActorContext:
        return ActorContext(user_id=self.user(name=name).id, role="student")

    def instructor(self, name: str = None) -> ActorContext:
        user = self.user(name=name, role="instructor")
        instructor = Instructor(user_id=user.id, bio=f"{user.name} teaches")
        self.db.add(instructor)
        self.db.commit()
        return ActorContext(
            user_id=user.id, role="instructor", instructor_id=instructor.id
        )

    def category(self, name: str, parent=None, actor: ActorContext = None):
        actor = actor or self.admin()
        return CategoryService(self.db).create(
            actor,
            CategoryCreate(name=name, parent_id=parent.id if parent else None),
        )

    def course(
        self,
        owner: ActorContext,
        category,
        title: str = "Course",
        price="10.00",
        promo_price=None,
        **fields,
    ):
        return CourseService(self.db).create(
            owner,
            CourseCreate(
                cat_id=category.id,
                title=title,
                price=Decimal(price),
                promo_price=Decimal(promo_price) if promo_price is not None else None,
                **fields,
            ),
        )

    def section(self, owner: ActorContext, course, order_no: int = 1, title=None):
        return ContentService(self.db).add_section(
            owner,
            course.id,
            SectionCreate(title=title or f"Section {order_no}", order_no=order_no),
        )

    def lesson(
        self,
        owner: ActorContext,
        section,
        order_no: int = 1,
        is_preview: bool = False,
        duration_sec: int = 60,
    ):
        return ContentService(self.db).add_lesson(
            owner,
            section.id,
            LessonCreate(
                title=f"Lesson {order_no}",
                order_no=order_no,
                is_preview=is_preview,
                duration_sec=duration_sec,
            ),
        )


@pytest.fixture
def factory(db):
    return CatalogFactory(db)


@pytest.fixture
def admin(factory):
    return factory.admin()


@pytest.fixture
def instructor(factory):
    return factory.instructor(name="Ada Lovelace")


@pytest.fixture
def learner(factory):
    return factory.student(name="Grace Hopper")
