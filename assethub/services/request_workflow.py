"""
Asset request approval workflow.

    pending --decide--> approved | denied
    pending --cancel (requester only)--> cancelled
    approved --fulfill--> fulfilled
"""
import uuid
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import NotFound
from ..models.models import Asset, AssetRequest, Category, utcnow
from ..schemas.workflow import (
    AssetRequestCreate,
    RequestDecision,
    RequestStatus,
)
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

KIND = EntityKind.asset_request


def _load(db: Session, request_id: uuid.UUID) -> AssetRequest:
    req = db.get(AssetRequest, request_id)
    if req is None:
        raise NotFound(KIND.value, request_id)
    return req


def get_request(db: Session, actor: ActorContext, request_id: uuid.UUID) -> AssetRequest:
    req = _load(db, request_id)
    require_view(actor, KIND, req)
    return req


def list_requests(db: Session, actor: ActorContext, status: Optional[RequestStatus] = None) -> List[AssetRequest]:
    query = scope_query(actor, KIND, db.query(AssetRequest))
    if status:
        query = query.filter(AssetRequest.status == RequestStatus(status).value)
    return query.order_by(AssetRequest.created_at.desc()).all()


def submit_request(db: Session, actor: ActorContext, data: AssetRequestCreate) -> AssetRequest:
    req = AssetRequest(
        user_id=actor.user_id,
        request_type=data.request_type.value,
        category_id=data.category_id,
        title=data.title,
        description=data.description,
        justification=data.justification,
        priority=data.priority.value,
        status=RequestStatus.pending.value,
    )
    require_mutate(actor, KIND, req, Operation.create)
    if data.category_id is not None and db.get(Category, data.category_id) is None:
        raise NotFound("category", data.category_id)

    db.add(req)
    commit_or_raise(db, "submit_request", actor.user_id)
    db.refresh(req)
    logger.info("request_submitted", actor_id=str(actor.user_id), entity_id=str(req.id), priority=req.priority)
    events.publish("RequestSubmitted", KIND.value, req.id, actor.user_id, priority=req.priority)
    return req


def decide_request(
    db: Session,
    actor: ActorContext,
    request_id: uuid.UUID,
    outcome: RequestDecision,
    notes: Optional[str] = None,
) -> AssetRequest:
    """Approve or deny a pending request. A second decision fails with InvalidTransition."""
    req = _load(db, request_id)
    require_mutate(actor, KIND, req, Operation.decide)
    outcome = RequestDecision(outcome)

    now = utcnow()
    req = transition(
        db, AssetRequest, request_id,
        entity_kind=KIND.value,
        action=Operation.decide.value,
        allowed_from=[RequestStatus.pending],
        values={
            "status": outcome.value,
            "reviewed_by": actor.user_id,
            "reviewed_at": now,
            "admin_notes": notes,
            "updated_at": now,
        },
    )
    commit_or_raise(db, "decide_request", actor.user_id, request_id)

    logger.info("request_decided", actor_id=str(actor.user_id), entity_id=str(request_id), outcome=outcome.value)
    events.publish("RequestDecided", KIND.value, request_id, actor.user_id, outcome=outcome.value, requester_id=req.user_id)
    return req


def cancel_request(db: Session, actor: ActorContext, request_id: uuid.UUID) -> AssetRequest:
    req = _load(db, request_id)
    require_mutate(actor, KIND, req, Operation.cancel)

    req = transition(
        db, AssetRequest, request_id,
        entity_kind=KIND.value,
        action=Operation.cancel.value,
        allowed_from=[RequestStatus.pending],
        values={"status": RequestStatus.cancelled.value, "updated_at": utcnow()},
        extra_filters=[AssetRequest.user_id == actor.user_id],
    )
    commit_or_raise(db, "cancel_request", actor.user_id, request_id)

    logger.info("request_cancelled", actor_id=str(actor.user_id), entity_id=str(request_id))
    events.publish("RequestCancelled", KIND.value, request_id, actor.user_id)
    return req


def fulfill_request(
    db: Session,
    actor: ActorContext,
    request_id: uuid.UUID,
    asset_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> AssetRequest:
    """Mark an approved request as fulfilled, optionally linking the asset handed over."""
    req = _load(db, request_id)
    require_mutate(actor, KIND, req, Operation.fulfill)
    if asset_id is not None and db.get(Asset, asset_id) is None:
        raise NotFound("asset", asset_id)

    values = {"status": RequestStatus.fulfilled.value, "fulfilled_asset_id": asset_id, "updated_at": utcnow()}
    if notes is not None:
        values["admin_notes"] = notes
    req = transition(
        db, AssetRequest, request_id,
        entity_kind=KIND.value,
        action=Operation.fulfill.value,
        allowed_from=[RequestStatus.approved],
        values=values,
    )
    commit_or_raise(db, "fulfill_request", actor.user_id, request_id)

    logger.info("request_fulfilled", actor_id=str(actor.user_id), entity_id=str(request_id), asset_id=str(asset_id))
    events.publish("RequestFulfilled", KIND.value, request_id, actor.user_id, asset_id=asset_id)
    return req
