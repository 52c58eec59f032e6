import json
import logging

import redis

from app.config import settings
from app.redis_client import get_redis_client

logger = logging.getLogger(__name__)

WILDCARD = "*"


def cache_key(tenant_schema: str, entity_type: str, talent_id) -> str:
    return f"{settings.config_cache_prefix}:{tenant_schema}:{entity_type}:{talent_id}"


class ConfigCache:
    """Effective per-talent config lists kept in Redis.

    Every operation is best effort: with Redis unconfigured or unreachable
    reads miss and writes are dropped.
    """

    @staticmethod
    def get(tenant_schema: str, entity_type: str, talent_id) -> list[dict] | None:
        client = get_redis_client()
        if client is None:
            return None
        try:
            raw = client.get(cache_key(tenant_schema, entity_type, talent_id))
        except redis.RedisError as e:
            logger.warning("Config cache read failed: %s", e)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    @staticmethod
    def set(tenant_schema: str, entity_type: str, talent_id, items: list[dict]) -> None:
        client = get_redis_client()
        if client is None:
            return
        try:
            client.set(
                cache_key(tenant_schema, entity_type, talent_id),
                json.dumps(items),
                ex=settings.config_cache_ttl_seconds,
            )
        except redis.RedisError as e:
            logger.warning("Config cache write failed: %s", e)

    @staticmethod
    def invalidate(
        tenant_schema: str, entity_type: str = WILDCARD, talent_id=WILDCARD
    ) -> int:
        """Drop cached lists; either selector may be the ``*`` wildcard."""
        client = get_redis_client()
        if client is None:
            return 0
        key = cache_key(tenant_schema, entity_type, talent_id)
        try:
            if WILDCARD not in (entity_type, str(talent_id)):
                return client.delete(key)
            removed = 0
            for matched in client.scan_iter(match=key, count=500):
                removed += client.delete(matched)
        except redis.RedisError as e:
            logger.warning("Config cache invalidation failed for %s: %s", key, e)
            return 0
        logger.debug("Invalidated %d cached config lists for %s", removed, key)
        return removed


config_cache = ConfigCache()
