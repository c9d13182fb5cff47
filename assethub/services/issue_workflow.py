"""
Issue report workflow.

    open --start--> in_progress
    open | in_progress --resolve--> resolved
    open | in_progress --close--> closed
    open | in_progress --cancel--> cancelled

Only the current assignee of an asset may report an issue on it; every status
change after that is an admin action.
"""
import uuid
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import Forbidden, NotFound
from ..models.models import Asset, IssueReport, utcnow
from ..schemas.workflow import IssueReportCreate, IssueStatus
from . import events
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

KIND = EntityKind.issue_report
ACTIVE = (IssueStatus.open, IssueStatus.in_progress)


def _load(db: Session, issue_id: uuid.UUID) -> IssueReport:
    issue = db.get(IssueReport, issue_id)
    if issue is None:
        raise NotFound(KIND.value, issue_id)
    return issue


def get_issue(db: Session, actor: ActorContext, issue_id: uuid.UUID) -> IssueReport:
    issue = _load(db, issue_id)
    require_view(actor, KIND, issue)
    return issue


def list_issues(db: Session, actor: ActorContext, status: Optional[IssueStatus] = None) -> List[IssueReport]:
    query = scope_query(actor, KIND, db.query(IssueReport))
    if status:
        query = query.filter(IssueReport.status == IssueStatus(status).value)
    return query.order_by(IssueReport.created_at.desc()).all()


def report_issue(db: Session, actor: ActorContext, data: IssueReportCreate) -> IssueReport:
    asset = db.get(Asset, data.asset_id)
    if asset is None:
        raise NotFound("asset", data.asset_id)
    if asset.assigned_to is None or str(asset.assigned_to) != str(actor.user_id):
        logger.info("issue_report_rejected", actor_id=str(actor.user_id), asset_id=str(asset.id))
        raise Forbidden("You can only report issues for assets assigned to you")

    issue = IssueReport(
        user_id=actor.user_id,
        asset_id=asset.id,
        issue_type=data.issue_type.value,
        title=data.title,
        description=data.description,
        severity=data.severity.value,
        status=IssueStatus.open.value,
    )
    require_mutate(actor, KIND, issue, Operation.create)
    db.add(issue)
    commit_or_raise(db, "report_issue", actor.user_id, asset.id)
    db.refresh(issue)

    logger.info("issue_reported", actor_id=str(actor.user_id), entity_id=str(issue.id), severity=issue.severity)
    events.publish("IssueReported", KIND.value, issue.id, actor.user_id, asset_id=asset.id, severity=issue.severity)
    return issue


def _move(
    db: Session,
    actor: ActorContext,
    issue_id: uuid.UUID,
    operation: Operation,
    allowed_from,
    to_status: IssueStatus,
    notes: Optional[str] = None,
    resolves: bool = False,
) -> IssueReport:
    issue = _load(db, issue_id)
    require_mutate(actor, KIND, issue, operation)
    previous = issue.status

    now = utcnow()
    values = {"status": to_status.value, "updated_at": now}
    if resolves:
        values.update({"resolved_by": actor.user_id, "resolved_at": now, "resolution_notes": notes})
    issue = transition(
        db, IssueReport, issue_id,
        entity_kind=KIND.value,
        action=operation.value,
        allowed_from=allowed_from,
        values=values,
    )
    commit_or_raise(db, f"{operation.value}_issue", actor.user_id, issue_id)

    logger.info(
        "issue_status_changed",
        actor_id=str(actor.user_id),
        entity_id=str(issue_id),
        from_status=previous,
        to_status=to_status.value,
    )
    events.publish(
        "IssueStatusChanged", KIND.value, issue_id, actor.user_id,
        from_status=previous, to_status=to_status.value, reporter_id=issue.user_id,
    )
    return issue


def start_work(db: Session, actor: ActorContext, issue_id: uuid.UUID) -> IssueReport:
    return _move(db, actor, issue_id, Operation.start, [IssueStatus.open], IssueStatus.in_progress)


def resolve_issue(db: Session, actor: ActorContext, issue_id: uuid.UUID, notes: Optional[str] = None) -> IssueReport:
    return _move(db, actor, issue_id, Operation.resolve, ACTIVE, IssueStatus.resolved, notes, resolves=True)


def close_issue(db: Session, actor: ActorContext, issue_id: uuid.UUID, notes: Optional[str] = None) -> IssueReport:
    return _move(db, actor, issue_id, Operation.close, ACTIVE, IssueStatus.closed, notes, resolves=True)


def cancel_issue(db: Session, actor: ActorContext, issue_id: uuid.UUID) -> IssueReport:
    return _move(db, actor, issue_id, Operation.cancel, ACTIVE, IssueStatus.cancelled)
