"""
Authorization policy.

Pure decisions over an explicit ActorContext: no session, no request state.
Two roles exist: admin (full access) and user (own profile, own assignments,
own requests and issue reports, read-only lookups).
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog

from ..errors import Unauthorized
from ..models.models import Asset, AssetRequest, IssueReport, User


logger = structlog.get_logger(__name__)


class Role(str, Enum):
    admin = "admin"
    user = "user"


class EntityKind(str, Enum):
    user = "user"
    category = "category"
    department = "department"
    asset = "asset"
    asset_assignment = "asset_assignment"
    asset_document = "asset_document"
    maintenance = "maintenance"
    asset_request = "asset_request"
    issue_report = "issue_report"


class Operation(str, Enum):
    create = "create"
    update = "update"
    update_profile = "update_profile"
    delete = "delete"
    assign = "assign"
    return_asset = "return"
    transfer = "transfer"
    send_to_repair = "send_to_repair"
    restore_from_repair = "restore_from_repair"
    retire = "retire"
    decide = "decide"
    fulfill = "fulfill"
    cancel = "cancel"
    start = "start"
    resolve = "resolve"
    close = "close"
    complete = "complete"


LOOKUP_KINDS = {EntityKind.category, EntityKind.department}
# Child rows whose visibility follows the parent asset; callers pass the asset as entity
ASSET_CHILD_KINDS = {EntityKind.asset_assignment, EntityKind.asset_document}


@dataclass(frozen=True)
class ActorContext:
    user_id: uuid.UUID
    role: str = Role.user.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value

    @classmethod
    def from_user(cls, user: User) -> "ActorContext":
        return cls(user_id=user.id, role=user.role)


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _owner_of(entity: Any) -> Optional[Any]:
    return getattr(entity, "user_id", None) if entity is not None else None


def can_view(actor: ActorContext, kind: EntityKind, entity: Any = None) -> bool:
    kind = EntityKind(kind)
    if actor.is_admin:
        return True
    if kind in LOOKUP_KINDS:
        return True
    if entity is None:
        return False
    if kind == EntityKind.user:
        return _same(getattr(entity, "id", None), actor.user_id)
    if kind == EntityKind.asset or kind in ASSET_CHILD_KINDS:
        return _same(getattr(entity, "assigned_to", None), actor.user_id)
    if kind in (EntityKind.asset_request, EntityKind.issue_report):
        return _same(_owner_of(entity), actor.user_id)
    return False


def can_mutate(actor: ActorContext, kind: EntityKind, entity: Any, operation: Operation) -> bool:
    """
    Decide whether actor may perform operation on entity.

    For create operations entity is the draft (anything exposing the fields
    being written); for child kinds it is the parent asset.
    """
    kind = EntityKind(kind)
    operation = Operation(operation)

    if kind == EntityKind.user:
        target_id = getattr(entity, "id", None)
        if operation == Operation.update_profile:
            return actor.is_admin or _same(target_id, actor.user_id)
        if operation in (Operation.update, Operation.delete):
            # Admins never manage their own record (prevents self-lockout)
            return actor.is_admin and not _same(target_id, actor.user_id)
        return False

    # Only the requester withdraws a request, admins deny instead
    if kind == EntityKind.asset_request and operation == Operation.cancel:
        return _same(_owner_of(entity), actor.user_id)

    if actor.is_admin:
        return True

    if kind == EntityKind.asset and operation == Operation.create:
        status = getattr(entity, "status", None)
        status = getattr(status, "value", status)
        return status in (None, "available") and getattr(entity, "assigned_to", None) is None
    if kind in (EntityKind.asset_request, EntityKind.issue_report) and operation == Operation.create:
        return _same(_owner_of(entity), actor.user_id)
    return False


def require_view(actor: ActorContext, kind: EntityKind, entity: Any = None) -> None:
    if not can_view(actor, kind, entity):
        logger.info("authz_denied", actor_id=str(actor.user_id), kind=EntityKind(kind).value, operation="view")
        raise Unauthorized()


def require_mutate(actor: ActorContext, kind: EntityKind, entity: Any, operation: Operation) -> None:
    if not can_mutate(actor, kind, entity, operation):
        logger.info(
            "authz_denied",
            actor_id=str(actor.user_id),
            kind=EntityKind(kind).value,
            operation=Operation(operation).value,
            entity_id=str(getattr(entity, "id", "") or ""),
        )
        raise Unauthorized()


def require_admin(actor: ActorContext) -> None:
    if not actor.is_admin:
        logger.info("authz_denied", actor_id=str(actor.user_id), operation="admin_only")
        raise Unauthorized("Administrator access required")


def scope_query(actor: ActorContext, kind: EntityKind, query):
    """Restrict a list query to the rows actor may see; "own records" lists may come back empty."""
    kind = EntityKind(kind)
    if actor.is_admin or kind in LOOKUP_KINDS:
        return query
    if kind == EntityKind.asset:
        return query.filter(Asset.assigned_to == actor.user_id)
    if kind == EntityKind.asset_request:
        return query.filter(AssetRequest.user_id == actor.user_id)
    if kind == EntityKind.issue_report:
        return query.filter(IssueReport.user_id == actor.user_id)
    if kind == EntityKind.user:
        return query.filter(User.id == actor.user_id)
    logger.info("authz_denied", actor_id=str(actor.user_id), kind=kind.value, operation="list")
    raise Unauthorized()
