import uuid
from typing import List

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import commit_or_raise
from ..errors import NotFound, ValidationFailed
from ..models.models import Category, Department
from .permissions import ActorContext, EntityKind, Operation, require_mutate, require_view


logger = structlog.get_logger(__name__)

_MODELS = {EntityKind.category: Category, EntityKind.department: Department}


def _ensure_unique(db: Session, kind: EntityKind, name: str, exclude_id=None) -> None:
    model = _MODELS[kind]
    query = db.query(model.id).filter(func.lower(model.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise ValidationFailed(f"A {kind.value} named '{name}' already exists")


def list_lookups(db: Session, actor: ActorContext, kind: EntityKind) -> List:
    require_view(actor, kind)
    model = _MODELS[EntityKind(kind)]
    return db.query(model).order_by(model.name.asc()).all()


def create_lookup(db: Session, actor: ActorContext, kind: EntityKind, name: str):
    kind = EntityKind(kind)
    require_mutate(actor, kind, None, Operation.create)
    model = _MODELS[kind]
    name = name.strip()
    if not name:
        raise ValidationFailed("name is required")
    _ensure_unique(db, kind, name)

    row = model(name=name)
    db.add(row)
    commit_or_raise(db, f"create_{kind.value}", actor.user_id)
    db.refresh(row)
    logger.info(f"{kind.value}_created", actor_id=str(actor.user_id), entity_id=str(row.id))
    return row


def rename_lookup(db: Session, actor: ActorContext, kind: EntityKind, entity_id: uuid.UUID, name: str):
    kind = EntityKind(kind)
    model = _MODELS[kind]
    row = db.get(model, entity_id)
    if row is None:
        raise NotFound(kind.value, entity_id)
    require_mutate(actor, kind, row, Operation.update)
    name = name.strip()
    if not name:
        raise ValidationFailed("name is required")
    _ensure_unique(db, kind, name, exclude_id=entity_id)

    row.name = name
    commit_or_raise(db, f"rename_{kind.value}", actor.user_id, entity_id)
    db.refresh(row)
    return row
