import uuid

import pytest

from assethub.errors import NotFound, ReferentialConflict, Unauthorized, ValidationFailed
from assethub.models.models import Category, Department
from assethub.services import lookups, reference_guard
from assethub.services.permissions import EntityKind


def test_category_in_use_reports_exact_count(db, make_asset, category, admin_actor):
    category_id = category.id
    make_asset()
    make_asset()
    make_asset()

    with pytest.raises(ReferentialConflict) as exc:
        reference_guard.delete_category(db, admin_actor, category_id)

    assert exc.value.count == 3
    assert "3 asset(s)" in exc.value.message
    assert db.get(Category, category_id) is not None


def test_unreferenced_category_is_deleted(db, admin_actor):
    spare = Category(name="Spare")
    db.add(spare)
    db.commit()

    reference_guard.delete_category(db, admin_actor, spare.id)

    assert db.query(Category).filter(Category.name == "Spare").count() == 0


def test_department_blocked_by_users_only(db, make_user, admin_actor):
    dept = Department(name="Finance")
    db.add(dept)
    db.commit()
    make_user(department_id=dept.id)
    make_user(department_id=dept.id)

    with pytest.raises(ReferentialConflict) as exc:
        reference_guard.delete_department(db, admin_actor, dept.id)

    assert exc.value.count == 2


def test_department_counts_assets_and_users(db, make_asset, make_user, department, admin_actor):
    make_asset()
    make_user(department_id=department.id)

    with pytest.raises(ReferentialConflict) as exc:
        reference_guard.delete_department(db, admin_actor, department.id)
    assert exc.value.count == 2


def test_delete_missing_lookup(db, admin_actor):
    with pytest.raises(NotFound):
        reference_guard.delete_category(db, admin_actor, uuid.uuid4())
    with pytest.raises(NotFound):
        reference_guard.delete_department(db, admin_actor, uuid.uuid4())


def test_employee_cannot_delete_lookups(db, category, employee_actor):
    with pytest.raises(Unauthorized):
        reference_guard.delete_category(db, employee_actor, category.id)


def test_lookup_create_rename_and_duplicates(db, admin_actor, employee_actor):
    created = lookups.create_lookup(db, admin_actor, EntityKind.category, "  Monitors ")
    assert created.name == "Monitors"

    with pytest.raises(ValidationFailed):
        lookups.create_lookup(db, admin_actor, EntityKind.category, "monitors")

    renamed = lookups.rename_lookup(db, admin_actor, EntityKind.category, created.id, "Displays")
    assert renamed.name == "Displays"

    assert [c.name for c in lookups.list_lookups(db, employee_actor, EntityKind.category)] == ["Displays"]
    with pytest.raises(Unauthorized):
        lookups.create_lookup(db, employee_actor, EntityKind.department, "Sales")
