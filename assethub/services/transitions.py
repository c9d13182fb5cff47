"""
Atomic status transitions.

A transition is a single conditional UPDATE (compare-and-swap on the status
column). When no row matches, the entity is re-read to tell a missing row from
a state precondition failure.
"""
import uuid
from typing import Any, Dict, Iterable, Sequence

from sqlalchemy.orm import Session

from ..errors import InvalidTransition, NotFound


def transition(
    db: Session,
    model,
    entity_id: uuid.UUID,
    *,
    entity_kind: str,
    action: str,
    allowed_from: Iterable[str],
    values: Dict[str, Any],
    extra_filters: Sequence[Any] = (),
):
    """
    Move entity_id to the state described by values if its status is in allowed_from.

    Args:
        db: Database session; the caller commits
        model: Mapped class with `id` and `status` columns
        entity_id: Primary key of the row
        entity_kind: Label used in error messages
        action: Name of the transition, used in error messages
        allowed_from: Statuses from which the transition is legal
        values: Column values to write
        extra_filters: Additional guard conditions (e.g. the expected assignee)

    Returns:
        The refreshed entity

    Raises:
        NotFound: the row does not exist
        InvalidTransition: the row exists but is not in an allowed state
    """
    allowed = [getattr(s, "value", s) for s in allowed_from]
    updated = (
        db.query(model)
        .filter(model.id == entity_id, model.status.in_(allowed), *extra_filters)
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        current = db.query(model.status).filter(model.id == entity_id).scalar()
        if current is None:
            raise NotFound(entity_kind, entity_id)
        raise InvalidTransition(entity_kind, current, action)
    db.flush()
    return db.get(model, entity_id, populate_existing=True)
