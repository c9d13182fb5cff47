"""
Asset lifecycle state machine.

    available --assign--> assigned --return--> available
    assigned --transfer--> assigned (new assignee)
    available --send_to_repair--> in_repair --restore_from_repair--> available
    any non-retired --retire--> retired (terminal)

Every transition is one conditional write plus one ledger row, committed
together. Invariant: status == assigned <=> assigned_to is set.
"""
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import NotFound, ReferentialConflict, ValidationFailed
from ..models.models import (
    Asset,
    AssetAssignment,
    AssetDocument,
    Category,
    Department,
    IssueReport,
    User,
    utcnow,
)
from ..schemas.assets import (
    AssetCreate,
    AssetDocumentCreate,
    AssetFilters,
    AssetStatus,
    AssetUpdate,
    AssignmentAction,
)
from . import events
from .alerts import current_date, resolve_window
from .permissions import (
    ActorContext,
    EntityKind,
    Operation,
    require_mutate,
    require_view,
    scope_query,
)
from .transitions import transition


logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("name", "category_id", "department_id", "date_purchased", "cost")


@dataclass(frozen=True)
class StatusChange:
    operation: Operation
    allowed_from: tuple
    to_status: AssetStatus
    ledger_action: AssignmentAction
    event_name: str


SEND_TO_REPAIR = StatusChange(
    Operation.send_to_repair, (AssetStatus.available,), AssetStatus.in_repair,
    AssignmentAction.sent_to_repair, "AssetStatusChanged",
)
RESTORE_FROM_REPAIR = StatusChange(
    Operation.restore_from_repair, (AssetStatus.in_repair,), AssetStatus.available,
    AssignmentAction.restored, "AssetStatusChanged",
)
RETIRE = StatusChange(
    Operation.retire, (AssetStatus.available, AssetStatus.assigned, AssetStatus.in_repair), AssetStatus.retired,
    AssignmentAction.retired, "AssetStatusChanged",
)


def _load_asset(db: Session, asset_id: uuid.UUID) -> Asset:
    asset = db.get(Asset, asset_id)
    if asset is None:
        raise NotFound("asset", asset_id)
    return asset


def _ensure_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("user", user_id)
    return user


def _ensure_lookups(db: Session, category_id: Optional[uuid.UUID], department_id: Optional[uuid.UUID]) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise NotFound("category", category_id)
    if department_id is not None and db.get(Department, department_id) is None:
        raise NotFound("department", department_id)


def _append_ledger(
    db: Session,
    asset_id: uuid.UUID,
    action: AssignmentAction,
    user_id: Optional[uuid.UUID],
    actor: ActorContext,
    notes: Optional[str] = None,
) -> AssetAssignment:
    row = AssetAssignment(
        asset_id=asset_id,
        user_id=user_id,
        action=action.value,
        notes=notes,
        assigned_by=actor.user_id,
    )
    db.add(row)
    db.flush()
    return row


def _assignee_guard(previous: Optional[uuid.UUID]):
    # Guards the ledger's user_id against a concurrent reassignment
    return Asset.assigned_to.is_(None) if previous is None else Asset.assigned_to == previous


# ---------- READS ----------
def get_asset(db: Session, actor: ActorContext, asset_id: uuid.UUID) -> Asset:
    asset = _load_asset(db, asset_id)
    require_view(actor, EntityKind.asset, asset)
    return asset


def list_assets(
    db: Session,
    actor: ActorContext,
    filters: Optional[AssetFilters] = None,
    today: Optional[date] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Asset]:
    """List assets visible to actor; users only ever see what is assigned to them.

    Unpaged unless limit is given, so exports always see every matching row.
    """
    filters = filters or AssetFilters()
    query = scope_query(actor, EntityKind.asset, db.query(Asset))

    if filters.category_id:
        query = query.filter(Asset.category_id == filters.category_id)
    if filters.department_id:
        query = query.filter(Asset.department_id == filters.department_id)
    if filters.status:
        query = query.filter(Asset.status == filters.status.value)
    if filters.assigned_to:
        query = query.filter(Asset.assigned_to == filters.assigned_to)
    if filters.search:
        search_term = f"%{filters.search.strip()}%"
        query = query.filter(
            or_(
                Asset.name.ilike(search_term),
                Asset.serial_number.ilike(search_term),
                Asset.description.ilike(search_term),
            )
        )
    if filters.warranty_expiring or filters.insurance_expiring:
        today = today or current_date()
        horizon = today + timedelta(days=resolve_window(None))
        if filters.warranty_expiring:
            query = query.filter(Asset.warranty_expiry >= today, Asset.warranty_expiry <= horizon)
        if filters.insurance_expiring:
            query = query.filter(Asset.insurance_expiry >= today, Asset.insurance_expiry <= horizon)

    query = query.order_by(Asset.created_at.desc(), Asset.id)
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_my_assets(db: Session, actor: ActorContext) -> List[Asset]:
    return (
        db.query(Asset)
        .filter(Asset.assigned_to == actor.user_id)
        .order_by(Asset.assigned_date.desc())
        .all()
    )


def assignment_history(db: Session, actor: ActorContext, asset_id: uuid.UUID) -> List[AssetAssignment]:
    asset = _load_asset(db, asset_id)
    require_view(actor, EntityKind.asset_assignment, asset)
    return (
        db.query(AssetAssignment)
        .filter(AssetAssignment.asset_id == asset_id)
        .order_by(AssetAssignment.created_at.desc())
        .all()
    )


# ---------- CREATE / UPDATE / DELETE ----------
def create_asset(db: Session, actor: ActorContext, data: AssetCreate) -> Asset:
    require_mutate(actor, EntityKind.asset, data, Operation.create)
    _ensure_lookups(db, data.category_id, data.department_id)

    fields = data.model_dump(exclude={"notes", "status", "assigned_to"})
    asset = Asset(**fields, status=data.status.value, user_id=actor.user_id)
    if data.status == AssetStatus.assigned:
        _ensure_user(db, data.assigned_to)
        asset.assigned_to = data.assigned_to
        asset.assigned_date = utcnow()
    db.add(asset)
    db.flush()
    if data.status == AssetStatus.assigned:
        _append_ledger(db, asset.id, AssignmentAction.assigned, data.assigned_to, actor, data.notes)

    commit_or_raise(db, "create_asset", actor.user_id, asset.id)
    db.refresh(asset)
    logger.info("asset_created", actor_id=str(actor.user_id), entity_id=str(asset.id), status=asset.status)
    events.publish("AssetCreated", EntityKind.asset.value, asset.id, actor.user_id, status=asset.status)
    if asset.assigned_to:
        events.publish("AssetAssigned", EntityKind.asset.value, asset.id, actor.user_id, user_id=asset.assigned_to)
    return asset


def update_asset(db: Session, actor: ActorContext, asset_id: uuid.UUID, data: AssetUpdate) -> Asset:
    """Update descriptive fields. Status and assignee only move through the transitions below."""
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, Operation.update)

    update_data = data.model_dump(exclude_unset=True)
    for key in REQUIRED_FIELDS:
        if key in update_data and update_data[key] is None:
            raise ValidationFailed(f"{key} cannot be cleared")
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        if not update_data["name"]:
            raise ValidationFailed("name cannot be empty")
    if update_data.get("cost") is not None and update_data["cost"] < 0:
        raise ValidationFailed("cost must be >= 0")
    _ensure_lookups(db, update_data.get("category_id"), update_data.get("department_id"))

    for key, value in update_data.items():
        setattr(asset, key, value)
    asset.updated_at = utcnow()

    commit_or_raise(db, "update_asset", actor.user_id, asset_id)
    db.refresh(asset)
    return asset


def delete_asset(db: Session, actor: ActorContext, asset_id: uuid.UUID) -> None:
    """
    Hard delete an asset that has never been through a transition or an issue report.

    Assets with history must be retired instead so the ledger stays complete.
    Maintenance records and documents go with the asset.
    """
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, Operation.delete)

    has_history = db.query(AssetAssignment).filter(AssetAssignment.asset_id == asset_id).exists()
    has_issues = db.query(IssueReport).filter(IssueReport.asset_id == asset_id).exists()
    deleted = (
        db.query(Asset)
        .filter(Asset.id == asset_id, ~has_history, ~has_issues)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        count = (
            db.query(AssetAssignment).filter(AssetAssignment.asset_id == asset_id).count()
            + db.query(IssueReport).filter(IssueReport.asset_id == asset_id).count()
        )
        raise ReferentialConflict(
            count,
            f"Cannot delete asset. It has {count} history record(s); retire it instead.",
        )
    db.expunge(asset)
    commit_or_raise(db, "delete_asset", actor.user_id, asset_id)
    logger.info("asset_deleted", actor_id=str(actor.user_id), entity_id=str(asset_id))
    events.publish("AssetDeleted", EntityKind.asset.value, asset_id, actor.user_id)


# ---------- TRANSITIONS ----------
def assign_asset(
    db: Session,
    actor: ActorContext,
    asset_id: uuid.UUID,
    user_id: uuid.UUID,
    notes: Optional[str] = None,
) -> Asset:
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, Operation.assign)
    _ensure_user(db, user_id)

    now = utcnow()
    asset = transition(
        db, Asset, asset_id,
        entity_kind=EntityKind.asset.value,
        action=Operation.assign.value,
        allowed_from=[AssetStatus.available],
        values={"status": AssetStatus.assigned.value, "assigned_to": user_id, "assigned_date": now, "updated_at": now},
    )
    _append_ledger(db, asset_id, AssignmentAction.assigned, user_id, actor, notes)
    commit_or_raise(db, "assign_asset", actor.user_id, asset_id)

    logger.info("asset_assigned", actor_id=str(actor.user_id), entity_id=str(asset_id), user_id=str(user_id))
    events.publish("AssetAssigned", EntityKind.asset.value, asset_id, actor.user_id, user_id=user_id)
    return asset


def return_asset(db: Session, actor: ActorContext, asset_id: uuid.UUID, notes: Optional[str] = None) -> Asset:
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, Operation.return_asset)
    previous = asset.assigned_to

    asset = transition(
        db, Asset, asset_id,
        entity_kind=EntityKind.asset.value,
        action=Operation.return_asset.value,
        allowed_from=[AssetStatus.assigned],
        values={"status": AssetStatus.available.value, "assigned_to": None, "assigned_date": None, "updated_at": utcnow()},
        extra_filters=[_assignee_guard(previous)],
    )
    _append_ledger(db, asset_id, AssignmentAction.returned, previous, actor, notes)
    commit_or_raise(db, "return_asset", actor.user_id, asset_id)

    logger.info("asset_returned", actor_id=str(actor.user_id), entity_id=str(asset_id), user_id=str(previous))
    events.publish("AssetReturned", EntityKind.asset.value, asset_id, actor.user_id, user_id=previous)
    return asset


def transfer_asset(
    db: Session,
    actor: ActorContext,
    asset_id: uuid.UUID,
    user_id: uuid.UUID,
    notes: Optional[str] = None,
) -> Asset:
    """Hand an assigned asset straight to another user without passing through available."""
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, Operation.transfer)
    _ensure_user(db, user_id)
    previous = asset.assigned_to
    if previous is not None and str(previous) == str(user_id):
        raise ValidationFailed("Asset is already assigned to this user")

    now = utcnow()
    asset = transition(
        db, Asset, asset_id,
        entity_kind=EntityKind.asset.value,
        action=Operation.transfer.value,
        allowed_from=[AssetStatus.assigned],
        values={"assigned_to": user_id, "assigned_date": now, "updated_at": now},
        extra_filters=[_assignee_guard(previous)],
    )
    _append_ledger(db, asset_id, AssignmentAction.transferred, user_id, actor, notes)
    commit_or_raise(db, "transfer_asset", actor.user_id, asset_id)

    logger.info(
        "asset_transferred",
        actor_id=str(actor.user_id),
        entity_id=str(asset_id),
        from_user_id=str(previous),
        to_user_id=str(user_id),
    )
    events.publish(
        "AssetTransferred", EntityKind.asset.value, asset_id, actor.user_id,
        from_user_id=previous, to_user_id=user_id,
    )
    return asset


def _change_status(
    db: Session,
    actor: ActorContext,
    asset_id: uuid.UUID,
    change: StatusChange,
    notes: Optional[str],
) -> Asset:
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset, asset, change.operation)
    previous_status = asset.status
    previous_assignee = asset.assigned_to

    values = {"status": change.to_status.value, "updated_at": utcnow()}
    if change.to_status != AssetStatus.assigned:
        values.update({"assigned_to": None, "assigned_date": None})
    asset = transition(
        db, Asset, asset_id,
        entity_kind=EntityKind.asset.value,
        action=change.operation.value,
        allowed_from=change.allowed_from,
        values=values,
        extra_filters=[_assignee_guard(previous_assignee)],
    )
    _append_ledger(db, asset_id, change.ledger_action, previous_assignee, actor, notes)
    commit_or_raise(db, change.operation.value, actor.user_id, asset_id)

    logger.info(
        "asset_status_changed",
        actor_id=str(actor.user_id),
        entity_id=str(asset_id),
        from_status=previous_status,
        to_status=change.to_status.value,
    )
    events.publish(
        change.event_name, EntityKind.asset.value, asset_id, actor.user_id,
        from_status=previous_status, to_status=change.to_status.value,
    )
    return asset


def send_to_repair(db: Session, actor: ActorContext, asset_id: uuid.UUID, notes: Optional[str] = None) -> Asset:
    return _change_status(db, actor, asset_id, SEND_TO_REPAIR, notes)


def restore_from_repair(db: Session, actor: ActorContext, asset_id: uuid.UUID, notes: Optional[str] = None) -> Asset:
    return _change_status(db, actor, asset_id, RESTORE_FROM_REPAIR, notes)


def retire_asset(db: Session, actor: ActorContext, asset_id: uuid.UUID, notes: Optional[str] = None) -> Asset:
    return _change_status(db, actor, asset_id, RETIRE, notes)


# ---------- DOCUMENTS ----------
def list_documents(db: Session, actor: ActorContext, asset_id: uuid.UUID) -> List[AssetDocument]:
    asset = _load_asset(db, asset_id)
    require_view(actor, EntityKind.asset_document, asset)
    return (
        db.query(AssetDocument)
        .filter(AssetDocument.asset_id == asset_id)
        .order_by(AssetDocument.created_at.desc())
        .all()
    )


def add_document(db: Session, actor: ActorContext, asset_id: uuid.UUID, data: AssetDocumentCreate) -> AssetDocument:
    asset = _load_asset(db, asset_id)
    require_mutate(actor, EntityKind.asset_document, asset, Operation.create)
    document = AssetDocument(
        asset_id=asset_id,
        name=data.name,
        file_url=data.file_url,
        file_type=data.file_type.value,
        file_size=data.file_size,
        mime_type=data.mime_type,
        uploaded_by=actor.user_id,
    )
    db.add(document)
    commit_or_raise(db, "add_document", actor.user_id, asset_id)
    db.refresh(document)
    return document


def delete_document(db: Session, actor: ActorContext, asset_id: uuid.UUID, document_id: uuid.UUID) -> None:
    document = db.get(AssetDocument, document_id)
    if document is None or document.asset_id != asset_id:
        raise NotFound("document", document_id)
    asset = _load_asset(db, document.asset_id)
    require_mutate(actor, EntityKind.asset_document, asset, Operation.delete)
    db.delete(document)
    commit_or_raise(db, "delete_document", actor.user_id, document_id)

