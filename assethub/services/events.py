"""
Domain event publishing.

Events are handed to the registered sinks after a mutation has been committed.
Delivery is best effort: a failing sink is logged and skipped, and with no
sink registered publishing is a no-op.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import structlog

from ..models.models import utcnow


logger = structlog.get_logger(__name__)


@dataclass
class DomainEvent:
    name: str
    entity_kind: str
    entity_id: Optional[uuid.UUID]
    actor_id: Optional[uuid.UUID]
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


class EventSink(Protocol):
    def handle(self, event: DomainEvent) -> None:
        ...


class LogSink:
    """Writes every event to the structured log."""

    def handle(self, event: DomainEvent) -> None:
        logger.info(
            "domain_event",
            event_name=event.name,
            entity_kind=event.entity_kind,
            entity_id=str(event.entity_id) if event.entity_id else None,
            actor_id=str(event.actor_id) if event.actor_id else None,
            payload=event.payload,
        )


_sinks: List[EventSink] = []


def register_sink(sink: EventSink) -> None:
    if sink not in _sinks:
        _sinks.append(sink)


def unregister_sink(sink: EventSink) -> None:
    if sink in _sinks:
        _sinks.remove(sink)


def publish(
    name: str,
    entity_kind: str,
    entity_id: Optional[uuid.UUID],
    actor_id: Optional[uuid.UUID],
    **payload: Any,
) -> DomainEvent:
    event = DomainEvent(
        name=name,
        entity_kind=entity_kind,
        entity_id=entity_id,
        actor_id=actor_id,
        payload={k: (str(v) if isinstance(v, uuid.UUID) else v) for k, v in payload.items()},
    )
    for sink in list(_sinks):
        try:
            sink.handle(event)
        except Exception as e:
            logger.warning("event_sink_failed", event_name=name, sink=type(sink).__name__, error=str(e))
    return event
