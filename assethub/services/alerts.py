"""
Expiry and maintenance alert computation.

Alerts are derived from stored dates on every read; nothing here is persisted.
The same functions drive display (per-row badges) and filtering (aggregate
lists), so the two can never disagree.
"""
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ValidationFailed
from ..models.models import Asset, Maintenance, utcnow
from ..schemas.assets import AlertState, AssetResponse, AssetStatus
from ..schemas.maintenance import MaintenanceAlert, MaintenanceStatus
from .permissions import ActorContext, EntityKind, require_view, scope_query


# Statuses that still count as "not started" for overdue purposes
OPEN_MAINTENANCE_STATUSES = (MaintenanceStatus.pending.value, MaintenanceStatus.overdue.value)


def current_date() -> date:
    return utcnow().date()


def resolve_window(window_days: Optional[int]) -> int:
    window = settings.alert_window_days if window_days is None else window_days
    if window < 0:
        raise ValidationFailed("window_days must be zero or positive")
    return window


def days_until(target: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if target is None:
        return None
    return (target - (today or current_date())).days


def expiry_alert(expiry: Optional[date], today: Optional[date] = None, window_days: Optional[int] = None) -> AlertState:
    if expiry is None:
        return AlertState.none
    today = today or current_date()
    if expiry < today:
        return AlertState.expired
    if expiry <= today + timedelta(days=resolve_window(window_days)):
        return AlertState.due_soon
    return AlertState.none


def warranty_alert(asset, today: Optional[date] = None, window_days: Optional[int] = None) -> AlertState:
    return expiry_alert(asset.warranty_expiry, today, window_days)


def insurance_alert(asset, today: Optional[date] = None, window_days: Optional[int] = None) -> AlertState:
    return expiry_alert(asset.insurance_expiry, today, window_days)


def asset_response(asset, today: Optional[date] = None, window_days: Optional[int] = None) -> AssetResponse:
    """Serialize an asset with its derived warranty and insurance badges."""
    item = AssetResponse.model_validate(asset)
    item.warranty_alert = warranty_alert(asset, today, window_days)
    item.insurance_alert = insurance_alert(asset, today, window_days)
    return item


def maintenance_alert(record, today: Optional[date] = None, window_days: Optional[int] = None) -> MaintenanceAlert:
    today = today or current_date()
    status = getattr(record.status, "value", record.status)
    if status == MaintenanceStatus.completed.value:
        return MaintenanceAlert.completed
    if status in OPEN_MAINTENANCE_STATUSES and record.scheduled_date < today:
        return MaintenanceAlert.overdue
    if status == MaintenanceStatus.in_progress.value:
        return MaintenanceAlert.in_progress
    if (record.scheduled_date - today).days <= resolve_window(window_days):
        return MaintenanceAlert.due_soon
    return MaintenanceAlert.scheduled


def _expiring_assets(db: Session, actor: ActorContext, column, window_days: Optional[int], today: Optional[date]) -> List[Asset]:
    horizon = (today or current_date()) + timedelta(days=resolve_window(window_days))
    query = db.query(Asset).filter(
        column.isnot(None),
        column <= horizon,
        Asset.status != AssetStatus.retired.value,
    )
    query = scope_query(actor, EntityKind.asset, query)
    return query.order_by(column.asc()).all()


def warranty_expiring_assets(
    db: Session, actor: ActorContext, window_days: Optional[int] = None, today: Optional[date] = None
) -> List[Asset]:
    """Non-retired assets whose warranty has lapsed or lapses within the window, soonest first."""
    return _expiring_assets(db, actor, Asset.warranty_expiry, window_days, today)


def insurance_expiring_assets(
    db: Session, actor: ActorContext, window_days: Optional[int] = None, today: Optional[date] = None
) -> List[Asset]:
    return _expiring_assets(db, actor, Asset.insurance_expiry, window_days, today)


def upcoming_maintenance(
    db: Session, actor: ActorContext, window_days: Optional[int] = None, today: Optional[date] = None
) -> List[Maintenance]:
    """Not-yet-started maintenance that is overdue or due within the window, oldest first."""
    require_view(actor, EntityKind.maintenance)
    horizon = (today or current_date()) + timedelta(days=resolve_window(window_days))
    return (
        db.query(Maintenance)
        .filter(
            Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES),
            Maintenance.scheduled_date <= horizon,
        )
        .order_by(Maintenance.scheduled_date.asc())
        .all()
    )


def overdue_maintenance(db: Session, actor: ActorContext, today: Optional[date] = None) -> List[Maintenance]:
    require_view(actor, EntityKind.maintenance)
    return (
        db.query(Maintenance)
        .filter(
            Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES),
            Maintenance.scheduled_date < (today or current_date()),
        )
        .order_by(Maintenance.scheduled_date.asc())
        .all()
    )
