import logging

from app.celery_app import celery_app
from app.services.config_cache import WILDCARD, ConfigCache

logger = logging.getLogger(__name__)

# Hierarchy changes that can alter any talent's scope chain.
_TREE_EVENTS = {
    "subsidiary.moved",
    "subsidiary.deactivated",
    "subsidiary.reactivated",
}
_TALENT_EVENTS = {"talent.moved", "talent.deactivated", "talent.reactivated"}


@celery_app.task(name="app.tasks.cache.invalidate_config_cache", ignore_result=True)
def invalidate_config_cache(
    tenant_schema: str,
    event_type: str,
    entity_id: str | None = None,
    payload: dict | None = None,
) -> int:
    """Drop effective-config cache entries touched by an event.

    Talent-scoped config changes drop one key; tenant and subsidiary scoped
    changes, and tree reshapes, drop every key under the tenant prefix.
    """
    payload = payload or {}
    try:
        if event_type in _TREE_EVENTS:
            return ConfigCache.invalidate(tenant_schema)
        if event_type in _TALENT_EVENTS:
            return ConfigCache.invalidate(tenant_schema, talent_id=entity_id)
        if not event_type.startswith("config."):
            return 0

        config_type = payload.get("config_type") or WILDCARD
        if payload.get("owner_type") == "talent" and payload.get("owner_id"):
            return ConfigCache.invalidate(
                tenant_schema, config_type, payload["owner_id"]
            )
        return ConfigCache.invalidate(tenant_schema, config_type)
    except Exception as e:
        logger.exception("Failed to invalidate config cache for %s: %s", event_type, e)
        return 0
