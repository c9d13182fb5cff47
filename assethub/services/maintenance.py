"""
Maintenance scheduling (admin only).

Persisted statuses are pending, in_progress and completed. Overdue is never
written: it is derived from scheduled_date by alerts.maintenance_alert, and a
legacy row still carrying "overdue" is treated as pending.
"""
import uuid
from datetime import date
from typing import Iterable, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import InvalidTransition, NotFound, ValidationFailed
from ..models.models import Asset, Maintenance, utcnow
from ..schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceStatus,
    MaintenanceUpdate,
)
from . import events
from .alerts import OPEN_MAINTENANCE_STATUSES, current_date, days_until, maintenance_alert
from .permissions import ActorContext, EntityKind, Operation, require_mutate, require_view
from .transitions import transition


logger = structlog.get_logger(__name__)

KIND = EntityKind.maintenance


def _load(db: Session, maintenance_id: uuid.UUID) -> Maintenance:
    record = db.get(Maintenance, maintenance_id)
    if record is None:
        raise NotFound(KIND.value, maintenance_id)
    return record


def annotate(
    records: Iterable[Maintenance],
    today: Optional[date] = None,
    window_days: Optional[int] = None,
) -> List[MaintenanceResponse]:
    """Attach the derived alert and days-until to each record, using the same window the caller filtered with."""
    today = today or current_date()
    out = []
    for record in records:
        item = MaintenanceResponse.model_validate(record)
        if item.status == MaintenanceStatus.overdue:
            item.status = MaintenanceStatus.pending
        item.alert = maintenance_alert(record, today, window_days)
        item.days_until = days_until(record.scheduled_date, today)
        out.append(item)
    return out


def list_maintenance(
    db: Session,
    actor: ActorContext,
    status: Optional[MaintenanceStatus] = None,
    asset_id: Optional[uuid.UUID] = None,
    today: Optional[date] = None,
) -> List[Maintenance]:
    require_view(actor, KIND)
    query = db.query(Maintenance)
    if asset_id:
        query = query.filter(Maintenance.asset_id == asset_id)
    if status:
        status = MaintenanceStatus(status)
        if status == MaintenanceStatus.overdue:
            query = query.filter(
                Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES),
                Maintenance.scheduled_date < (today or current_date()),
            )
        elif status == MaintenanceStatus.pending:
            query = query.filter(Maintenance.status.in_(OPEN_MAINTENANCE_STATUSES))
        else:
            query = query.filter(Maintenance.status == status.value)
    return query.order_by(Maintenance.scheduled_date.asc()).all()


def get_maintenance(db: Session, actor: ActorContext, maintenance_id: uuid.UUID) -> Maintenance:
    record = _load(db, maintenance_id)
    require_view(actor, KIND, record)
    return record


def schedule_maintenance(db: Session, actor: ActorContext, data: MaintenanceCreate) -> Maintenance:
    require_mutate(actor, KIND, None, Operation.create)
    if db.get(Asset, data.asset_id) is None:
        raise NotFound("asset", data.asset_id)

    record = Maintenance(
        asset_id=data.asset_id,
        maintenance_type=data.maintenance_type.value,
        description=data.description,
        cost=data.cost,
        scheduled_date=data.scheduled_date,
        notes=data.notes,
        status=MaintenanceStatus.pending.value,
    )
    db.add(record)
    commit_or_raise(db, "schedule_maintenance", actor.user_id, data.asset_id)
    db.refresh(record)
    logger.info(
        "maintenance_scheduled",
        actor_id=str(actor.user_id),
        entity_id=str(record.id),
        asset_id=str(record.asset_id),
        scheduled_date=record.scheduled_date.isoformat(),
    )
    return record


def update_maintenance(
    db: Session, actor: ActorContext, maintenance_id: uuid.UUID, data: MaintenanceUpdate
) -> Maintenance:
    record = _load(db, maintenance_id)
    require_mutate(actor, KIND, record, Operation.update)
    if record.status == MaintenanceStatus.completed.value:
        raise InvalidTransition(KIND.value, record.status, Operation.update.value)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("cost") is not None and update_data["cost"] < 0:
        raise ValidationFailed("cost must be >= 0")
    for key in ("maintenance_type", "scheduled_date", "cost"):
        if key in update_data and update_data[key] is None:
            raise ValidationFailed(f"{key} cannot be cleared")
    if "maintenance_type" in update_data:
        update_data["maintenance_type"] = update_data["maintenance_type"].value

    # Guarded on status so a concurrent completion wins
    update_data["updated_at"] = utcnow()
    record = transition(
        db, Maintenance, maintenance_id,
        entity_kind=KIND.value,
        action=Operation.update.value,
        allowed_from=[MaintenanceStatus.pending, MaintenanceStatus.in_progress, MaintenanceStatus.overdue],
        values=update_data,
    )
    commit_or_raise(db, "update_maintenance", actor.user_id, maintenance_id)
    return record


def start_maintenance(db: Session, actor: ActorContext, maintenance_id: uuid.UUID) -> Maintenance:
    record = _load(db, maintenance_id)
    require_mutate(actor, KIND, record, Operation.start)
    record = transition(
        db, Maintenance, maintenance_id,
        entity_kind=KIND.value,
        action=Operation.start.value,
        allowed_from=OPEN_MAINTENANCE_STATUSES,
        values={"status": MaintenanceStatus.in_progress.value, "updated_at": utcnow()},
    )
    commit_or_raise(db, "start_maintenance", actor.user_id, maintenance_id)
    logger.info("maintenance_started", actor_id=str(actor.user_id), entity_id=str(maintenance_id))
    return record


def complete_maintenance(
    db: Session,
    actor: ActorContext,
    maintenance_id: uuid.UUID,
    cost: Optional[float] = None,
    notes: Optional[str] = None,
    today: Optional[date] = None,
) -> Maintenance:
    """Complete a record; completion is terminal."""
    record = _load(db, maintenance_id)
    require_mutate(actor, KIND, record, Operation.complete)
    if cost is not None and cost < 0:
        raise ValidationFailed("cost must be >= 0")

    values = {
        "status": MaintenanceStatus.completed.value,
        "completed_date": today or current_date(),
        "updated_at": utcnow(),
    }
    if cost is not None:
        values["cost"] = cost
    if notes is not None:
        values["notes"] = notes
    record = transition(
        db, Maintenance, maintenance_id,
        entity_kind=KIND.value,
        action=Operation.complete.value,
        allowed_from=[MaintenanceStatus.pending, MaintenanceStatus.in_progress, MaintenanceStatus.overdue],
        values=values,
    )
    commit_or_raise(db, "complete_maintenance", actor.user_id, maintenance_id)

    logger.info("maintenance_completed", actor_id=str(actor.user_id), entity_id=str(maintenance_id))
    events.publish(
        "MaintenanceCompleted", KIND.value, maintenance_id, actor.user_id,
        asset_id=record.asset_id, cost=float(record.cost or 0),
    )
    return record


def delete_maintenance(db: Session, actor: ActorContext, maintenance_id: uuid.UUID) -> None:
    record = _load(db, maintenance_id)
    require_mutate(actor, KIND, record, Operation.delete)
    db.delete(record)
    commit_or_raise(db, "delete_maintenance", actor.user_id, maintenance_id)
    logger.info("maintenance_deleted", actor_id=str(actor.user_id), entity_id=str(maintenance_id))
