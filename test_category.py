import pytest
from sqlalchemy.exc import IntegrityError

from conftest import drop_schema
from coursehub.core.database import Base, engine
from coursehub.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursehub.models import Category, Course
from coursehub.schemas.category import CategoryCreate, CategoryUpdate
from coursehub.services.category import CategoryService, slugify
from coursehub.services.course import CourseService


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Web Development", "web-development"),
        ("  C++ & C#  ", "c-c"),
        ("Lập trình Python", "lap-trinh-python"),
        ("Data---Science!!", "data-science"),
    ],
)
def test_slugify(value, expected):
    assert slugify(value) == expected


def test_create_top_level_and_child(db, admin):
    service = CategoryService(db)
    parent = service.create(admin, CategoryCreate(name="Programming"))
    child = service.create(admin, CategoryCreate(name="Web Dev", parent_id=parent.id))

    assert parent.parent_id is None
    assert parent.slug == "programming"
    assert child.parent_id == parent.id
    assert child.slug == "web-dev"


def test_depth_is_limited_to_two_levels(db, admin):
    service = CategoryService(db)
    parent = service.create(admin, CategoryCreate(name="Programming"))
    child = service.create(admin, CategoryCreate(name="Web Dev", parent_id=parent.id))

    with pytest.raises(ValidationError) as exc:
        service.create(admin, CategoryCreate(name="React", parent_id=child.id))
    assert exc.value.code == "DEPTH_EXCEEDED"
    assert exc.value.field == "parent_id"


def test_create_requires_admin(db, learner):
    with pytest.raises(PermissionDeniedError):
        CategoryService(db).create(learner, CategoryCreate(name="Design"))


def test_create_rejects_blank_name_and_empty_slug(db, admin):
    service = CategoryService(db)
    with pytest.raises(ValidationError) as exc:
        service.create(admin, CategoryCreate(name="   "))
    assert exc.value.field == "name"

    with pytest.raises(ValidationError) as exc:
        service.create(admin, CategoryCreate(name="Design", slug="!!!"))
    assert exc.value.code == "INVALID_SLUG"


def test_create_rejects_unknown_parent(db, admin):
    with pytest.raises(ValidationError) as exc:
        CategoryService(db).create(admin, CategoryCreate(name="Web", parent_id=999))
    assert exc.value.code == "PARENT_NOT_FOUND"


def test_duplicate_slug_and_sibling_name_conflict(db, admin):
    service = CategoryService(db)
    parent = service.create(admin, CategoryCreate(name="Programming"))
    service.create(admin, CategoryCreate(name="Web Dev", parent_id=parent.id))

    with pytest.raises(ConflictError) as exc:
        service.create(admin, CategoryCreate(name="Web Dev", parent_id=parent.id))
    assert exc.value.code == "DUPLICATE_SLUG"

    with pytest.raises(ConflictError) as exc:
        service.create(
            admin,
            CategoryCreate(name="Web Dev", slug="web-dev-2", parent_id=parent.id),
        )
    assert exc.value.code == "DUPLICATE_NAME"


def test_parent_holding_courses_cannot_get_children(db, factory, admin, instructor):
    leaf = factory.category("Design")
    factory.course(instructor, leaf, title="Figma basics")

    with pytest.raises(ValidationError) as exc:
        CategoryService(db).create(admin, CategoryCreate(name="UX", parent_id=leaf.id))
    assert exc.value.code == "PARENT_HAS_COURSES"


def test_update_rejects_self_parent_and_reparenting_a_parent(db, factory, admin):
    programming = factory.category("Programming")
    factory.category("Web Dev", parent=programming)
    design = factory.category("Design")
    service = CategoryService(db)

    with pytest.raises(ValidationError) as exc:
        service.update(admin, design.id, CategoryUpdate(parent_id=design.id))
    assert exc.value.code == "SELF_PARENT"

    with pytest.raises(ValidationError) as exc:
        service.update(admin, programming.id, CategoryUpdate(parent_id=design.id))
    assert exc.value.code == "DEPTH_EXCEEDED"


def test_update_keeps_slug_unless_given(db, factory, admin):
    design = factory.category("Design")
    service = CategoryService(db)

    renamed = service.update(admin, design.id, CategoryUpdate(name="Graphic Design"))
    assert renamed.name == "Graphic Design"
    assert renamed.slug == "design"

    reslugged = service.update(admin, design.id, CategoryUpdate(slug="Graphic Design"))
    assert reslugged.slug == "graphic-design"


def test_update_moves_between_levels(db, factory, admin):
    programming = factory.category("Programming")
    web = factory.category("Web Dev", parent=programming)
    design = factory.category("Design")
    service = CategoryService(db)

    moved = service.update(admin, design.id, CategoryUpdate(parent_id=programming.id))
    assert moved.parent_id == programming.id

    top = service.update(admin, web.id, CategoryUpdate(parent_id=None))
    assert top.parent_id is None


def test_update_missing_category(db, admin):
    with pytest.raises(NotFoundError):
        CategoryService(db).update(admin, 42, CategoryUpdate(name="Nope"))


def test_safe_delete_scenario(db, factory, admin, instructor):
    programming = factory.category("Programming")
    web = factory.category("Web Dev", parent=programming)
    course = factory.course(instructor, web, title="Course X")
    service = CategoryService(db)

    result = service.safe_delete(admin, programming.id)
    assert not result.ok and result.reason == "HAS_CHILDREN"

    result = service.safe_delete(admin, web.id)
    assert not result.ok and result.reason == "HAS_COURSES"

    db.query(Course).filter(Course.id == course.id).delete()
    db.commit()

    assert service.safe_delete(admin, web.id).ok
    assert service.safe_delete(admin, programming.id).ok
    assert db.query(Category).count() == 0


def test_safe_delete_counts_removed_courses(db, factory, admin, instructor):
    leaf = factory.category("Design")
    course = factory.course(instructor, leaf)
    CourseService(db).set_removed(instructor, course.id, True)

    result = CategoryService(db).safe_delete(admin, leaf.id)
    assert result.reason == "HAS_COURSES"


def test_safe_delete_missing_and_unauthorized(db, factory, admin, learner):
    service = CategoryService(db)
    assert service.safe_delete(admin, 999).reason == "NOT_FOUND"

    leaf = factory.category("Design")
    with pytest.raises(PermissionDeniedError):
        service.safe_delete(learner, leaf.id)


def test_build_tree_orders_parents_and_children_by_id(db, factory):
    design = factory.category("Design")
    programming = factory.category("Programming")
    mobile = factory.category("Mobile", parent=programming)
    web = factory.category("Web", parent=programming)
    ux = factory.category("UX", parent=design)

    tree = CategoryService(db).build_tree()

    assert [node.id for node in tree] == [design.id, programming.id]
    assert [child.id for child in tree[0].children] == [ux.id]
    assert [child.id for child in tree[1].children] == [mobile.id, web.id]


def test_leaf_ids_and_list_with_parent(db, factory):
    programming = factory.category("Programming")
    web = factory.category("Web", parent=programming)
    mobile = factory.category("Mobile", parent=programming)
    design = factory.category("Design")
    service = CategoryService(db)

    assert service.leaf_ids(programming.id) == [web.id, mobile.id]
    assert service.leaf_ids(design.id) == [design.id]
    with pytest.raises(NotFoundError):
        service.leaf_ids(999)

    rows = service.list_with_parent()
    assert [row.id for row in rows] == [programming.id, web.id, mobile.id, design.id]
    assert rows[1].parent_name == "Programming"
    assert rows[0].parent_name is None


def test_top_level_names_are_unique_in_storage(db):
    db.add_all(
        [
            Category(name="Design", slug="design"),
            Category(name="Design", slug="design-2"),
        ]
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    # Same name under different parents stays allowed
    first = Category(name="Tools", slug="tools")
    second = Category(name="Other", slug="other")
    db.add_all([first, second])
    db.commit()
    db.add_all(
        [
            Category(name="Basics", slug="tools-basics", parent_id=first.id),
            Category(name="Basics", slug="other-basics", parent_id=second.id),
        ]
    )
    db.commit()
    assert db.query(Category).filter(Category.name == "Basics").count() == 2


def test_schema_drops_with_nested_categories_left(db, factory):
    factory.category("Web", parent=factory.category("Programming"))
    db.close()

    drop_schema()
    Base.metadata.create_all(bind=engine)

    assert db.query(Category).count() == 0
