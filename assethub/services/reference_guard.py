"""
Reference-integrity guard for lookup deletes.

A Category may only be removed while no Asset points at it; a Department
additionally while no User points at it. The check and the delete are one
conditional DELETE so a concurrent insert can never slip in between.
"""
import uuid
from typing import List, Tuple

import structlog
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import NotFound, ReferentialConflict
from ..models.models import Asset, Category, Department, User
from .permissions import ActorContext, EntityKind, Operation, require_mutate


logger = structlog.get_logger(__name__)

# Bounded: each retry means references disappeared between delete and count
MAX_ATTEMPTS = 3


def _referencing(model, entity_id: uuid.UUID) -> List[Tuple[object, object]]:
    if model is Category:
        return [(Asset, Asset.category_id == entity_id)]
    return [
        (Asset, Asset.department_id == entity_id),
        (User, User.department_id == entity_id),
    ]


def _guarded_delete(db: Session, actor: ActorContext, model, kind: EntityKind, entity_id: uuid.UUID) -> None:
    entity = db.get(model, entity_id)
    if entity is None:
        raise NotFound(kind.value, entity_id)
    require_mutate(actor, kind, entity, Operation.delete)

    references = _referencing(model, entity_id)
    for attempt in range(1, MAX_ATTEMPTS + 1):
        guards = [~db.query(ref).filter(cond).exists() for ref, cond in references]
        deleted = (
            db.query(model)
            .filter(model.id == entity_id, *guards)
            .delete(synchronize_session=False)
        )
        if deleted:
            db.expunge(entity)
            commit_or_raise(db, f"delete_{kind.value}", actor.user_id, entity_id)
            logger.info(f"{kind.value}_deleted", actor_id=str(actor.user_id), entity_id=str(entity_id))
            return

        if db.query(model.id).filter(model.id == entity_id).scalar() is None:
            db.rollback()
            raise NotFound(kind.value, entity_id)
        count = sum(db.query(ref).filter(cond).count() for ref, cond in references)
        if count:
            db.rollback()
            logger.info(
                "delete_blocked",
                actor_id=str(actor.user_id),
                kind=kind.value,
                entity_id=str(entity_id),
                count=count,
            )
            raise ReferentialConflict(count, _conflict_message(kind, count))
        logger.info("delete_retry", kind=kind.value, entity_id=str(entity_id), attempt=attempt)

    db.rollback()
    raise ReferentialConflict(0, f"Cannot delete {kind.value}: references changed concurrently, please retry")


def _conflict_message(kind: EntityKind, count: int) -> str:
    if kind == EntityKind.category:
        return f"Cannot delete category. {count} asset(s) are using this category."
    return f"Cannot delete department. {count} asset(s) or user(s) are in this department."


def delete_category(db: Session, actor: ActorContext, category_id: uuid.UUID) -> None:
    _guarded_delete(db, actor, Category, EntityKind.category, category_id)


def delete_department(db: Session, actor: ActorContext, department_id: uuid.UUID) -> None:
    _guarded_delete(db, actor, Department, EntityKind.department, department_id)
