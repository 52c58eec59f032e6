import enum
import logging
import uuid

from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

PENDING_EVENTS_KEY = "pending_events"


class EventType(enum.Enum):
    tenant_created = "tenant.created"

    subsidiary_created = "subsidiary.created"
    subsidiary_updated = "subsidiary.updated"
    subsidiary_moved = "subsidiary.moved"
    subsidiary_deactivated = "subsidiary.deactivated"
    subsidiary_reactivated = "subsidiary.reactivated"

    talent_created = "talent.created"
    talent_updated = "talent.updated"
    talent_moved = "talent.moved"
    talent_deactivated = "talent.deactivated"
    talent_reactivated = "talent.reactivated"

    config_created = "config.created"
    config_updated = "config.updated"
    config_deleted = "config.deleted"
    config_toggled = "config.toggled"
    config_disabled = "config.disabled"
    config_enabled = "config.enabled"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID | None,
    actor_id: str | uuid.UUID | None = None,
    tenant_schema: str | None = None,
    payload: dict | None = None,
    db: Session | None = None,
) -> None:
    """Fire-and-forget event publishing.

    Queues a Celery task that fans out to cache invalidation.
    When ``db`` is given the event is held on the session and only sent once
    that session commits; a rollback drops it.
    Never raises; failures are logged and swallowed.
    """
    message = {
        "event_type": event_type.value,
        "entity_type": entity_type,
        "entity_id": str(entity_id) if entity_id else None,
        "actor_id": str(actor_id) if actor_id else None,
        "tenant_schema": tenant_schema,
        "payload": payload or {},
    }
    if db is not None:
        db.info.setdefault(PENDING_EVENTS_KEY, []).append(message)
        return
    _send(message)


def _send(message: dict) -> None:
    try:
        from app.tasks.events import process_event

        process_event.delay(**message)
        logger.debug(
            "Published event %s for %s/%s",
            message["event_type"],
            message["entity_type"],
            message["entity_id"],
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", message["event_type"], e)


@sa_event.listens_for(Session, "after_commit")
def _flush_pending_events(session: Session) -> None:
    for message in session.info.pop(PENDING_EVENTS_KEY, []):
        _send(message)


@sa_event.listens_for(Session, "after_rollback")
def _drop_pending_events(session: Session) -> None:
    dropped = session.info.pop(PENDING_EVENTS_KEY, [])
    if dropped:
        logger.debug("Dropped %d events after rollback", len(dropped))
