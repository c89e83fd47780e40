from decimal import Decimal

import pytest

from coursehub.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursehub.schemas.course import AdminCourseFilter, CourseCreate, CourseUpdate
from coursehub.services.course import CourseService
from coursehub.services.enrollment import EnrollmentService


@pytest.fixture
def web(factory):
    programming = factory.category("Programming")
    return factory.category("Web Dev", parent=programming)


def test_create_course_as_draft(db, factory, instructor, web):
    course = factory.course(instructor, web, title="  Django in depth ", price="49.99")

    assert course.title == "Django in depth"
    assert course.instructor_id == instructor.instructor_id
    assert course.price == Decimal("49.99")
    assert course.is_completed is False
    assert course.is_removed is False


def test_create_requires_instructor(db, learner, web):
    with pytest.raises(PermissionDeniedError) as exc:
        CourseService(db).create(
            learner, CourseCreate(cat_id=web.id, title="Nope", price=Decimal("1"))
        )
    assert exc.value.code == "INSTRUCTOR_REQUIRED"


@pytest.mark.parametrize(
    "payload, field, code",
    [
        ({"title": " ", "price": "5"}, "title", "BLANK_FIELD"),
        ({"title": "A", "price": "-1"}, "price", "NEGATIVE_PRICE"),
        ({"title": "A", "price": "5", "promo_price": "6"}, "promo_price", "PROMO_ABOVE_PRICE"),
    ],
)
def test_create_validation(db, instructor, web, payload, field, code):
    with pytest.raises(ValidationError) as exc:
        CourseService(db).create(instructor, CourseCreate(cat_id=web.id, **payload))
    assert exc.value.field == field
    assert exc.value.code == code


def test_create_requires_leaf_category(db, factory, instructor, web):
    service = CourseService(db)
    with pytest.raises(ValidationError) as exc:
        service.create(
            instructor, CourseCreate(cat_id=web.parent_id, title="A", price=Decimal("1"))
        )
    assert exc.value.code == "NOT_A_LEAF"

    with pytest.raises(ValidationError) as exc:
        service.create(instructor, CourseCreate(cat_id=999, title="A", price=Decimal("1")))
    assert exc.value.code == "CATEGORY_NOT_FOUND"


def test_update_checks_promo_against_merged_price(db, factory, instructor, web):
    course = factory.course(instructor, web, price="20.00", promo_price="15.00")
    service = CourseService(db)

    with pytest.raises(ValidationError) as exc:
        service.update(instructor, course.id, CourseUpdate(price=Decimal("10.00")))
    assert exc.value.code == "PROMO_ABOVE_PRICE"

    updated = service.update(
        instructor, course.id, CourseUpdate(price=Decimal("30.00"), title="Renamed")
    )
    assert updated.price == Decimal("30.00")
    assert updated.promo_price == Decimal("15.00")
    assert updated.title == "Renamed"


def test_update_clears_promo_on_explicit_null(db, factory, instructor, web):
    course = factory.course(instructor, web, price="20.00", promo_price="15.00")
    updated = CourseService(db).update(
        instructor, course.id, CourseUpdate.model_validate({"promo_price": None})
    )
    assert updated.promo_price is None
    assert updated.price == Decimal("20.00")


def test_update_ownership(db, factory, instructor, web):
    course = factory.course(instructor, web)
    stranger = factory.instructor()
    service = CourseService(db)

    with pytest.raises(PermissionDeniedError) as exc:
        service.update(stranger, course.id, CourseUpdate(title="Mine now"))
    assert exc.value.code == "NOT_OWNER"

    with pytest.raises(NotFoundError) as exc:
        service.update(instructor, 999, CourseUpdate(title="Ghost"))
    assert exc.value.status_code == 403


def test_update_moves_only_to_leaf(db, factory, instructor, web):
    course = factory.course(instructor, web)
    design = factory.category("Design")
    service = CourseService(db)

    with pytest.raises(ValidationError):
        service.update(instructor, course.id, CourseUpdate(cat_id=web.parent_id))

    moved = service.update(instructor, course.id, CourseUpdate(cat_id=design.id))
    assert moved.cat_id == design.id


def test_mark_completed_requires_content(db, factory, instructor, web):
    course = factory.course(instructor, web)
    service = CourseService(db)

    with pytest.raises(ValidationError) as exc:
        service.mark_completed(instructor, course.id)
    assert exc.value.code == "COURSE_HAS_NO_CONTENT"

    section = factory.section(instructor, course)
    with pytest.raises(ValidationError):
        service.mark_completed(instructor, course.id)

    factory.lesson(instructor, section)
    assert service.mark_completed(instructor, course.id).is_completed is True


def test_mark_completed_refuses_removed_course(db, factory, instructor, web):
    course = factory.course(instructor, web)
    factory.lesson(instructor, factory.section(instructor, course))
    service = CourseService(db)
    service.set_removed(instructor, course.id, True)

    with pytest.raises(ValidationError) as exc:
        service.mark_completed(instructor, course.id)
    assert exc.value.code == "COURSE_REMOVED"


def test_set_removed_by_admin_or_owner(db, factory, admin, instructor, learner, web):
    course = factory.course(instructor, web)
    service = CourseService(db)

    assert service.set_removed(admin, course.id, True).is_removed is True
    assert service.set_removed(instructor, course.id, False).is_removed is False
    with pytest.raises(PermissionDeniedError):
        service.set_removed(learner, course.id, True)
    with pytest.raises(NotFoundError):
        service.set_removed(admin, 999, True)


def test_list_admin_filters(db, factory, admin, instructor, web):
    other = factory.instructor(name="Linus")
    design = factory.category("Design")
    python = factory.course(instructor, web, title="Python APIs")
    factory.course(other, web, title="Rust services")
    factory.course(instructor, design, title="Python for designers")
    CourseService(db).set_removed(admin, python.id, True)
    service = CourseService(db)

    rows, total = service.list_admin(admin, 0, 10)
    assert total == 3
    assert {row.instructor_name for row in rows} == {"Ada Lovelace", "Linus"}

    rows, total = service.list_admin(admin, 0, 10, AdminCourseFilter(keyword="PYTHON"))
    assert total == 2

    rows, total = service.list_admin(
        admin, 0, 10, AdminCourseFilter(keyword="python", include_removed=False)
    )
    assert [row.title for row in rows] == ["Python for designers"]

    rows, total = service.list_admin(
        admin, 0, 10, AdminCourseFilter(category_id=web.parent_id)
    )
    assert total == 2
    assert {row.category_name for row in rows} == {"Web Dev"}

    rows, total = service.list_admin(
        admin, 0, 10, AdminCourseFilter(instructor_id=other.instructor_id)
    )
    assert [row.title for row in rows] == ["Rust services"]

    rows, total = service.list_admin(admin, 0, 1)
    assert len(rows) == 1 and total == 3


def test_list_admin_requires_admin(db, instructor):
    with pytest.raises(PermissionDeniedError):
        CourseService(db).list_admin(instructor)


def test_list_by_instructor(db, factory, instructor, web):
    mine = factory.course(instructor, web, title="Mine")
    factory.course(factory.instructor(), web, title="Theirs")
    service = CourseService(db)
    service.set_removed(instructor, mine.id, True)

    courses, total = service.list_by_instructor(instructor)
    assert total == 1 and courses[0].title == "Mine"

    courses, total = service.list_by_instructor(instructor, include_removed=False)
    assert total == 0 and courses == []


def test_get_detail_counts_views_and_aggregates(db, factory, instructor, learner, web):
    course = factory.course(instructor, web, price="20.00", promo_price="12.50")
    EnrollmentService(db).enroll(learner, course.id)
    service = CourseService(db)

    first = service.get_detail(course.id)
    second = service.get_detail(course.id)

    assert first.view_count == 1
    assert second.view_count == 2
    assert second.students_count == 1
    assert second.effective_price == Decimal("12.50")
    assert second.category_name == "Web Dev"
    assert second.instructor_name == "Ada Lovelace"
    assert second.rating_count == 0


def test_removed_course_detail_visibility(db, factory, admin, instructor, learner, web):
    course = factory.course(instructor, web)
    EnrollmentService(db).enroll(learner, course.id)
    service = CourseService(db)
    service.set_removed(admin, course.id, True)

    with pytest.raises(NotFoundError):
        service.get_detail(course.id)
    with pytest.raises(NotFoundError):
        service.get_detail(course.id, factory.student())

    assert service.get_detail(course.id, admin).is_removed is True
    assert service.get_detail(course.id, instructor).is_removed is True
    assert service.get_detail(course.id, learner).is_removed is True


def test_related_courses_rank_by_students(db, factory, instructor, web):
    base = factory.course(instructor, web, title="Base")
    quiet = factory.course(instructor, web, title="Quiet")
    popular = factory.course(instructor, web, title="Popular")
    hidden = factory.course(instructor, web, title="Hidden")
    factory.course(instructor, factory.category("Design"), title="Elsewhere")
    CourseService(db).set_removed(instructor, hidden.id, True)
    EnrollmentService(db).enroll(factory.student(), popular.id)

    related = CourseService(db).related(base.id)
    assert [card.title for card in related] == ["Popular", "Quiet"]
    assert quiet.id in [card.id for card in related]


def test_get_visible_hides_removed_courses(db, factory, admin, instructor, learner, web):
    course = factory.course(instructor, web)
    service = CourseService(db)
    assert service.get_visible(course.id).id == course.id

    EnrollmentService(db).enroll(learner, course.id)
    service.set_removed(admin, course.id, True)

    with pytest.raises(NotFoundError):
        service.get_visible(course.id)
    with pytest.raises(NotFoundError):
        service.related(course.id, actor=factory.student())
    assert service.get_visible(course.id, learner).is_removed is True
    assert service.related(course.id, actor=instructor) == []
