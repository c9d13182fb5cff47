from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from assethub.errors import Unauthorized, ValidationFailed
from assethub.schemas.assets import AlertState
from assethub.schemas.maintenance import MaintenanceAlert
from assethub.services import alerts


TODAY = date(2025, 6, 15)


def _record(status, offset_days):
    return SimpleNamespace(status=status, scheduled_date=TODAY + timedelta(days=offset_days))


@pytest.mark.parametrize(
    "offset, expected",
    [
        (-1, AlertState.expired),
        (0, AlertState.due_soon),
        (10, AlertState.due_soon),
        (30, AlertState.due_soon),
        (31, AlertState.none),
        (40, AlertState.none),
    ],
)
def test_warranty_alert_boundaries(offset, expected):
    asset = SimpleNamespace(warranty_expiry=TODAY + timedelta(days=offset), insurance_expiry=None)
    assert alerts.warranty_alert(asset, TODAY, 30) == expected


def test_missing_dates_never_alert():
    asset = SimpleNamespace(warranty_expiry=None, insurance_expiry=None)
    assert alerts.warranty_alert(asset, TODAY) == AlertState.none
    assert alerts.insurance_alert(asset, TODAY) == AlertState.none


def test_insurance_uses_the_same_rule():
    asset = SimpleNamespace(warranty_expiry=None, insurance_expiry=TODAY - timedelta(days=3))
    assert alerts.insurance_alert(asset, TODAY) == AlertState.expired


def test_negative_window_is_rejected():
    with pytest.raises(ValidationFailed):
        alerts.expiry_alert(TODAY, TODAY, -1)


def test_maintenance_alert_derivation():
    assert alerts.maintenance_alert(_record("completed", -100), TODAY) == MaintenanceAlert.completed
    assert alerts.maintenance_alert(_record("pending", -1), TODAY) == MaintenanceAlert.overdue
    # A legacy persisted "overdue" is judged by its date like pending
    assert alerts.maintenance_alert(_record("overdue", -1), TODAY) == MaintenanceAlert.overdue
    assert alerts.maintenance_alert(_record("overdue", 5), TODAY) == MaintenanceAlert.due_soon
    assert alerts.maintenance_alert(_record("in_progress", -10), TODAY) == MaintenanceAlert.in_progress
    assert alerts.maintenance_alert(_record("pending", 0), TODAY) == MaintenanceAlert.due_soon
    assert alerts.maintenance_alert(_record("pending", 30), TODAY) == MaintenanceAlert.due_soon
    assert alerts.maintenance_alert(_record("pending", 31), TODAY) == MaintenanceAlert.scheduled


def test_days_until():
    assert alerts.days_until(TODAY + timedelta(days=3), TODAY) == 3
    assert alerts.days_until(TODAY - timedelta(days=2), TODAY) == -2
    assert alerts.days_until(None, TODAY) is None


def test_warranty_expiring_assets_sorted_and_scoped(db, make_asset, admin_actor, employee, employee_actor):
    late = make_asset(name="late", warranty_expiry=TODAY + timedelta(days=20))
    lapsed = make_asset(name="lapsed", warranty_expiry=TODAY - timedelta(days=5))
    make_asset(name="far", warranty_expiry=TODAY + timedelta(days=90))
    make_asset(name="retired", status="retired", warranty_expiry=TODAY + timedelta(days=1))
    mine = make_asset(
        name="mine",
        status="assigned",
        assigned_to=employee.id,
        warranty_expiry=TODAY + timedelta(days=2),
    )

    rows = alerts.warranty_expiring_assets(db, admin_actor, today=TODAY)
    assert [a.name for a in rows] == ["lapsed", "mine", "late"]

    own = alerts.warranty_expiring_assets(db, employee_actor, today=TODAY)
    assert [a.id for a in own] == [mine.id]
    assert lapsed.id not in {a.id for a in own}
    assert late.id not in {a.id for a in own}


def test_insurance_window_is_caller_supplied(db, make_asset, admin_actor):
    make_asset(name="soon", insurance_expiry=TODAY + timedelta(days=5))
    make_asset(name="later", insurance_expiry=TODAY + timedelta(days=50))

    assert [a.name for a in alerts.insurance_expiring_assets(db, admin_actor, 7, TODAY)] == ["soon"]
    assert [a.name for a in alerts.insurance_expiring_assets(db, admin_actor, 60, TODAY)] == ["soon", "later"]


def test_upcoming_maintenance(db, make_asset, make_maintenance, admin_actor, employee_actor):
    asset = make_asset()
    overdue = make_maintenance(asset, TODAY - timedelta(days=3))
    legacy = make_maintenance(asset, TODAY - timedelta(days=1), status="overdue")
    soon = make_maintenance(asset, TODAY + timedelta(days=10))
    make_maintenance(asset, TODAY + timedelta(days=60))
    make_maintenance(asset, TODAY + timedelta(days=2), status="in_progress")
    make_maintenance(asset, TODAY - timedelta(days=8), status="completed")

    rows = alerts.upcoming_maintenance(db, admin_actor, today=TODAY)
    assert [r.id for r in rows] == [overdue.id, legacy.id, soon.id]

    assert [r.id for r in alerts.overdue_maintenance(db, admin_actor, TODAY)] == [overdue.id, legacy.id]

    with pytest.raises(Unauthorized):
        alerts.upcoming_maintenance(db, employee_actor, today=TODAY)
