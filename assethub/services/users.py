import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import NotFound, ReferentialConflict, ValidationFailed
from ..models.models import Asset, AssetRequest, Department, IssueReport, User
from ..schemas.users import ProfileUpdate, UserAdminUpdate
from .permissions import (
    ActorContext,
    EntityKind,
    Operation,
    Role,
    require_admin,
    require_mutate,
    require_view,
    scope_query,
)


logger = structlog.get_logger(__name__)


def ensure_user(db: Session, claims: Dict[str, Any]) -> User:
    """
    Return the profile row for a verified token, creating it on first sight.

    The identity provider owns the account; we only keep id, email and the
    fields an admin edits. New profiles always start with the user role.
    """
    user_id = uuid.UUID(str(claims["sub"]))
    user = db.get(User, user_id)
    if user is not None:
        return user

    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise ValidationFailed("Token carries no email claim")
    metadata = claims.get("user_metadata") or {}
    user = User(
        id=user_id,
        email=email,
        role=Role.user.value,
        first_name=metadata.get("first_name"),
        last_name=metadata.get("last_name"),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Two first requests raced; the other one created the row
        db.rollback()
        user = db.get(User, user_id)
        if user is None:
            raise ValidationFailed("Email is already linked to another account")
        return user
    db.refresh(user)
    logger.info("user_provisioned", user_id=str(user.id))
    return user


def _load(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(EntityKind.user.value, user_id)
    return user


def get_profile(db: Session, actor: ActorContext) -> User:
    user = _load(db, actor.user_id)
    require_view(actor, EntityKind.user, user)
    return user


def get_user(db: Session, actor: ActorContext, user_id: uuid.UUID) -> User:
    user = _load(db, user_id)
    require_view(actor, EntityKind.user, user)
    return user


def update_profile(db: Session, actor: ActorContext, data: ProfileUpdate, user_id: Optional[uuid.UUID] = None) -> User:
    """Name fields only; role and department go through update_user."""
    user = _load(db, user_id or actor.user_id)
    require_mutate(actor, EntityKind.user, user, Operation.update_profile)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value.strip() if isinstance(value, str) else value)
    commit_or_raise(db, "update_profile", actor.user_id, user.id)
    db.refresh(user)
    return user


def list_users(db: Session, actor: ActorContext, search: Optional[str] = None) -> List[User]:
    require_admin(actor)
    query = scope_query(actor, EntityKind.user, db.query(User))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            User.email.ilike(like) | User.first_name.ilike(like) | User.last_name.ilike(like)
        )
    return query.order_by(User.email.asc()).all()


def update_user(db: Session, actor: ActorContext, user_id: uuid.UUID, data: UserAdminUpdate) -> User:
    user = _load(db, user_id)
    require_mutate(actor, EntityKind.user, user, Operation.update)

    update_data = data.model_dump(exclude_unset=True)
    if "role" in update_data:
        if update_data["role"] is None:
            raise ValidationFailed("role cannot be cleared")
        update_data["role"] = Role(update_data["role"]).value
    if update_data.get("department_id") is not None and db.get(Department, update_data["department_id"]) is None:
        raise NotFound(EntityKind.department.value, update_data["department_id"])

    previous_role = user.role
    for key, value in update_data.items():
        setattr(user, key, value)
    commit_or_raise(db, "update_user", actor.user_id, user_id)
    db.refresh(user)
    if previous_role != user.role:
        logger.info(
            "user_role_changed",
            actor_id=str(actor.user_id),
            entity_id=str(user_id),
            from_role=previous_role,
            to_role=user.role,
        )
    return user


def delete_user(db: Session, actor: ActorContext, user_id: uuid.UUID) -> None:
    """Remove a profile row; refused while the user holds assets or owns requests or issue reports."""
    user = _load(db, user_id)
    require_mutate(actor, EntityKind.user, user, Operation.delete)

    references = [
        (Asset, Asset.assigned_to == user_id),
        (AssetRequest, AssetRequest.user_id == user_id),
        (IssueReport, IssueReport.user_id == user_id),
    ]
    guards = [~db.query(model).filter(cond).exists() for model, cond in references]
    deleted = db.query(User).filter(User.id == user_id, *guards).delete(synchronize_session=False)
    if deleted == 0:
        count = sum(db.query(model).filter(cond).count() for model, cond in references)
        db.rollback()
        raise ReferentialConflict(
            count,
            f"Cannot delete user. {count} assigned asset(s), request(s) or issue report(s) still reference this user.",
        )
    db.expunge(user)
    commit_or_raise(db, "delete_user", actor.user_id, user_id)
    logger.info("user_deleted", actor_id=str(actor.user_id), entity_id=str(user_id))
