import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.events.process_event", ignore_result=True)
def process_event(
    event_type: str,
    entity_type: str,
    entity_id: str | None,
    actor_id: str | None = None,
    tenant_schema: str | None = None,
    payload: dict | None = None,
) -> None:
    """Central fan-out task for hierarchy and config events."""
    event_data = {
        "event_type": event_type,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "actor_id": actor_id,
        "tenant_schema": tenant_schema,
        "payload": payload or {},
    }
    logger.info("Processing event %s for %s/%s", event_type, entity_type, entity_id)

    _fanout_cache(event_data)


def _fanout_cache(event_data: dict) -> None:
    if not event_data["tenant_schema"]:
        return
    try:
        from app.tasks.cache import invalidate_config_cache

        invalidate_config_cache.delay(
            tenant_schema=event_data["tenant_schema"],
            event_type=event_data["event_type"],
            entity_id=event_data["entity_id"],
            payload=event_data["payload"],
        )
    except Exception as e:
        logger.exception("Failed to fan-out cache invalidation: %s", e)
