import pytest

from coursehub.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursehub.models import Lesson, Progress
from coursehub.schemas.content import (
    LessonCreate,
    LessonUpdate,
    SectionCreate,
    SectionUpdate,
)
from coursehub.services.content import ContentService
from coursehub.services.enrollment import EnrollmentService


@pytest.fixture
def course(factory, instructor):
    web = factory.category("Web Dev")
    return factory.course(instructor, web, title="Flask from scratch")


def test_add_section_then_outline(db, instructor, course):
    service = ContentService(db)
    section = service.add_section(
        instructor, course.id, SectionCreate(title="Getting started", order_no=1)
    )

    outline = service.outline(course.id)
    assert len(outline) == 1
    assert outline[0].id == section.id
    assert outline[0].title == "Getting started"
    assert outline[0].order_no == 1
    assert outline[0].lessons == []


def test_occupied_section_slot_is_a_conflict(db, factory, instructor, course):
    factory.section(instructor, course, order_no=1)
    service = ContentService(db)

    with pytest.raises(ConflictError) as exc:
        service.add_section(instructor, course.id, SectionCreate(title="Dup", order_no=1))
    assert exc.value.code == "ORDER_SLOT_TAKEN"

    second = service.add_section(
        instructor, course.id, SectionCreate(title="Next", order_no=2)
    )
    assert second.order_no == 2


def test_add_section_validation(db, instructor, course):
    service = ContentService(db)
    with pytest.raises(ValidationError) as exc:
        service.add_section(instructor, course.id, SectionCreate(title=" ", order_no=1))
    assert exc.value.code == "BLANK_FIELD"

    with pytest.raises(ValidationError) as exc:
        service.add_section(instructor, course.id, SectionCreate(title="A", order_no=0))
    assert exc.value.code == "INVALID_ORDER_NO"


def test_only_the_owner_edits_content(db, factory, course):
    other = factory.instructor()
    learner = factory.student()
    service = ContentService(db)

    with pytest.raises(PermissionDeniedError):
        service.add_section(other, course.id, SectionCreate(title="A", order_no=1))
    with pytest.raises(PermissionDeniedError):
        service.add_section(learner, course.id, SectionCreate(title="A", order_no=1))


def test_missing_course_in_ownership_check_is_forbidden(db, instructor):
    with pytest.raises(NotFoundError) as exc:
        ContentService(db).add_section(instructor, 999, SectionCreate(title="A", order_no=1))
    assert exc.value.status_code == 403


def test_add_lesson_rules(db, factory, instructor, course):
    section = factory.section(instructor, course)
    service = ContentService(db)

    lesson = service.add_lesson(
        instructor, section.id, LessonCreate(title="Intro", order_no=1, duration_sec=90)
    )
    assert lesson.section_id == section.id

    with pytest.raises(ConflictError):
        service.add_lesson(instructor, section.id, LessonCreate(title="Dup", order_no=1))
    with pytest.raises(ValidationError) as exc:
        service.add_lesson(
            instructor, section.id, LessonCreate(title="Neg", order_no=2, duration_sec=-1)
        )
    assert exc.value.field == "duration_sec"


def test_update_section_reorders_without_collisions(db, factory, instructor, course):
    first = factory.section(instructor, course, order_no=1)
    factory.section(instructor, course, order_no=2)
    service = ContentService(db)

    with pytest.raises(ConflictError):
        service.update_section(instructor, first.id, SectionUpdate(order_no=2))

    moved = service.update_section(
        instructor, first.id, SectionUpdate(order_no=5, title="Wrap up")
    )
    assert moved.order_no == 5
    assert moved.title == "Wrap up"
    assert [s.order_no for s in service.outline(course.id)] == [2, 5]


def test_update_lesson_moves_within_the_course_only(db, factory, instructor, course):
    first = factory.section(instructor, course, order_no=1)
    second = factory.section(instructor, course, order_no=2)
    lesson = factory.lesson(instructor, first, order_no=1)
    factory.lesson(instructor, second, order_no=1)

    other_course = factory.course(instructor, factory.category("Design"), title="Other")
    foreign = factory.section(instructor, other_course, order_no=1)
    service = ContentService(db)

    with pytest.raises(ValidationError) as exc:
        service.update_lesson(instructor, lesson.id, LessonUpdate(section_id=foreign.id))
    assert exc.value.code == "SECTION_OTHER_COURSE"

    with pytest.raises(ConflictError):
        service.update_lesson(instructor, lesson.id, LessonUpdate(section_id=second.id))

    moved = service.update_lesson(
        instructor, lesson.id, LessonUpdate(section_id=second.id, order_no=2)
    )
    assert moved.section_id == second.id
    assert moved.order_no == 2


def test_safe_delete_section(db, factory, instructor, course):
    section = factory.section(instructor, course)
    section_id = section.id
    lesson = factory.lesson(instructor, section)
    service = ContentService(db)

    result = service.safe_delete_section(instructor, section_id)
    assert not result.ok and result.reason == "HAS_LESSON"

    service.delete_lesson(instructor, lesson.id)
    assert service.safe_delete_section(instructor, section_id).ok
    assert service.outline(course.id) == []

    assert service.safe_delete_section(instructor, section_id).reason == "NOT_FOUND"


def test_delete_lesson_drops_progress(db, factory, instructor, learner, course):
    section = factory.section(instructor, course)
    lesson = factory.lesson(instructor, section)
    EnrollmentService(db).record_progress(learner, lesson.id, 30, False)

    ContentService(db).delete_lesson(instructor, lesson.id)

    assert db.query(Lesson).count() == 0
    assert db.query(Progress).count() == 0


def test_preview_outline_keeps_empty_sections(db, factory, instructor, course):
    intro = factory.section(instructor, course, order_no=1)
    paid = factory.section(instructor, course, order_no=2)
    free = factory.lesson(instructor, intro, order_no=2, is_preview=True)
    factory.lesson(instructor, intro, order_no=1)
    factory.lesson(instructor, paid, order_no=1)

    outline = ContentService(db).outline(course.id, preview_only=True)

    assert [s.id for s in outline] == [intro.id, paid.id]
    assert [lesson.id for lesson in outline[0].lessons] == [free.id]
    assert outline[1].lessons == []


def test_full_outline_orders_lessons(db, factory, instructor, course):
    section = factory.section(instructor, course)
    third = factory.lesson(instructor, section, order_no=3)
    first = factory.lesson(instructor, section, order_no=1)
    second = factory.lesson(instructor, section, order_no=2)

    outline = ContentService(db).outline(course.id)
    assert [lesson.id for lesson in outline[0].lessons] == [first.id, second.id, third.id]


def test_can_publish(db, factory, instructor, course):
    service = ContentService(db)
    assert not service.can_publish(course.id)

    section = factory.section(instructor, course)
    assert not service.can_publish(course.id)

    factory.lesson(instructor, section)
    assert service.can_publish(course.id)
