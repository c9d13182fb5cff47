from datetime import timedelta

import pytest

from assethub.errors import InvalidTransition, NotFound, Unauthorized
from assethub.schemas.maintenance import MaintenanceAlert, MaintenanceCreate, MaintenanceStatus, MaintenanceUpdate
from assethub.services import maintenance as maintenance_service


def test_schedule_defaults(db, make_asset, admin_actor, today):
    asset = make_asset()
    record = maintenance_service.schedule_maintenance(
        db,
        admin_actor,
        MaintenanceCreate(asset_id=asset.id, maintenance_type="inspection", scheduled_date=today + timedelta(days=5)),
    )
    assert record.status == "pending"
    assert float(record.cost) == 0


def test_schedule_for_missing_asset(db, admin_actor, today):
    import uuid

    with pytest.raises(NotFound):
        maintenance_service.schedule_maintenance(
            db, admin_actor, MaintenanceCreate(asset_id=uuid.uuid4(), maintenance_type="repair", scheduled_date=today)
        )


def test_employee_has_no_access(db, make_asset, make_maintenance, employee_actor, today):
    asset = make_asset()
    record = make_maintenance(asset, today)
    with pytest.raises(Unauthorized):
        maintenance_service.list_maintenance(db, employee_actor)
    with pytest.raises(Unauthorized):
        maintenance_service.start_maintenance(db, employee_actor, record.id)


def test_start_and_complete(db, make_asset, make_maintenance, admin_actor, today, sink):
    asset = make_asset()
    record = make_maintenance(asset, today - timedelta(days=2))

    assert maintenance_service.start_maintenance(db, admin_actor, record.id).status == "in_progress"
    done = maintenance_service.complete_maintenance(db, admin_actor, record.id, cost=150, notes="fan replaced", today=today)

    assert done.status == "completed"
    assert done.completed_date == today
    assert float(done.cost) == 150
    assert done.notes == "fan replaced"
    assert sink.names == ["MaintenanceCompleted"]


def test_completed_is_terminal(db, make_asset, make_maintenance, admin_actor, today):
    asset = make_asset()
    record = make_maintenance(asset, today, status="completed")

    with pytest.raises(InvalidTransition):
        maintenance_service.complete_maintenance(db, admin_actor, record.id)
    with pytest.raises(InvalidTransition):
        maintenance_service.start_maintenance(db, admin_actor, record.id)
    with pytest.raises(InvalidTransition):
        maintenance_service.update_maintenance(db, admin_actor, record.id, MaintenanceUpdate(notes="late"))


def test_legacy_overdue_behaves_as_pending(db, make_asset, make_maintenance, admin_actor, today):
    asset = make_asset()
    record = make_maintenance(asset, today - timedelta(days=4), status="overdue")

    [item] = maintenance_service.annotate([record], today)
    assert item.status == MaintenanceStatus.pending
    assert item.alert == MaintenanceAlert.overdue
    assert item.days_until == -4

    assert maintenance_service.start_maintenance(db, admin_actor, record.id).status == "in_progress"


def test_update_reschedules(db, make_asset, make_maintenance, admin_actor, today):
    asset = make_asset()
    record = make_maintenance(asset, today)
    updated = maintenance_service.update_maintenance(
        db, admin_actor, record.id, MaintenanceUpdate(scheduled_date=today + timedelta(days=40), maintenance_type="repair")
    )
    assert updated.scheduled_date == today + timedelta(days=40)
    assert updated.maintenance_type == "repair"
    assert maintenance_service.annotate([updated], today)[0].alert == MaintenanceAlert.scheduled


def test_status_filter_uses_derived_overdue(db, make_asset, make_maintenance, admin_actor, today):
    asset = make_asset()
    late = make_maintenance(asset, today - timedelta(days=1))
    future = make_maintenance(asset, today + timedelta(days=3))
    make_maintenance(asset, today - timedelta(days=9), status="completed")

    overdue = maintenance_service.list_maintenance(db, admin_actor, "overdue", today=today)
    assert [r.id for r in overdue] == [late.id]
    pending = maintenance_service.list_maintenance(db, admin_actor, "pending", today=today)
    assert [r.id for r in pending] == [late.id, future.id]
    assert len(maintenance_service.list_maintenance(db, admin_actor, asset_id=asset.id)) == 3


def test_delete_is_allowed_even_when_completed(db, make_asset, make_maintenance, admin_actor, today):
    asset = make_asset()
    record = make_maintenance(asset, today, status="completed")
    record_id = record.id
    maintenance_service.delete_maintenance(db, admin_actor, record_id)
    with pytest.raises(NotFound):
        maintenance_service.get_maintenance(db, admin_actor, record_id)


def test_annotate_uses_caller_window(db, make_asset, make_maintenance, today):
    asset = make_asset()
    record = make_maintenance(asset, today + timedelta(days=45))

    assert maintenance_service.annotate([record], today)[0].alert == MaintenanceAlert.scheduled
    assert maintenance_service.annotate([record], today, window_days=60)[0].alert == MaintenanceAlert.due_soon
