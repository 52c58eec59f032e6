import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.errors import DomainRuleError, NotFoundError
from app.models.config import ConfigOverride
from app.models.hierarchy import OwnerType
from app.services.common import coerce_uuid
from app.services.config_registry import get_spec
from app.services.scope_chain import ScopeChains, scope_link

logger = logging.getLogger(__name__)

# Stored in place of a NULL owner id so tenant-scope rows stay unique.
TENANT_OWNER_ID = uuid.UUID(int=0)


def owner_key(owner_type: OwnerType, owner_id) -> uuid.UUID:
    if owner_type == OwnerType.tenant or owner_id is None:
        return TENANT_OWNER_ID
    return coerce_uuid(owner_id)


def _owner_filter(entity_type: str, owner_type: OwnerType, owner_id):
    return (
        ConfigOverride.entity_type == entity_type,
        ConfigOverride.owner_type == owner_type,
        ConfigOverride.owner_id == owner_key(owner_type, owner_id),
    )


class ConfigOverrides:
    @staticmethod
    def disabled_ids_query(entity_type: str, owner_type: OwnerType, owner_id):
        return select(ConfigOverride.entity_id).where(
            *_owner_filter(entity_type, owner_type, owner_id),
            ConfigOverride.is_disabled.is_(True),
        )

    @staticmethod
    def get_disabled_ids(
        db: Session, entity_type: str, owner_type: OwnerType, owner_id
    ) -> set[uuid.UUID]:
        stmt = ConfigOverrides.disabled_ids_query(entity_type, owner_type, owner_id)
        return set(db.scalars(stmt).all())

    @staticmethod
    def is_disabled(
        db: Session, entity_type: str, entity_id, owner_type: OwnerType, owner_id
    ) -> bool:
        stmt = ConfigOverrides.disabled_ids_query(
            entity_type, owner_type, owner_id
        ).where(ConfigOverride.entity_id == coerce_uuid(entity_id))
        return db.scalars(stmt).first() is not None

    @staticmethod
    def disable(
        db: Session,
        entity_type: str,
        entity_id,
        owner_type: OwnerType,
        owner_id,
        actor_id=None,
    ) -> ConfigOverride:
        spec = get_spec(entity_type)
        entity = db.get(spec.model, coerce_uuid(entity_id))
        if entity is None:
            raise NotFoundError("Config entity not found")

        viewing = scope_link(owner_type, owner_id)
        if viewing == scope_link(entity.owner_type, entity.owner_id):
            raise DomainRuleError(
                "Can only disable inherited entries", code="CONFIG_NOT_INHERITED"
            )

        ScopeChains.ensure_scope_exists(db, owner_type, viewing.id)
        chain = ScopeChains.build(db, owner_type, viewing.id)
        owner = scope_link(entity.owner_type, entity.owner_id)
        if not entity.inherit or owner not in chain[:-1]:
            raise DomainRuleError(
                "Entry is not inherited by this scope", code="CONFIG_NOT_IN_SCOPE"
            )

        if entity.is_force_use:
            raise DomainRuleError(
                "This entry is set to force use and cannot be disabled",
                code="CONFIG_FORCE_USE",
            )

        override = db.scalars(
            select(ConfigOverride).where(
                *_owner_filter(entity_type, owner_type, viewing.id),
                ConfigOverride.entity_id == entity.id,
            )
        ).first()
        actor_id = coerce_uuid(actor_id)
        if override is None:
            override = ConfigOverride(
                entity_type=entity_type,
                entity_id=entity.id,
                owner_type=owner_type,
                owner_id=owner_key(owner_type, viewing.id),
                is_disabled=True,
                created_by=actor_id,
                updated_by=actor_id,
            )
            db.add(override)
        else:
            override.is_disabled = True
            override.updated_by = actor_id
        db.flush()
        logger.info(
            "Disabled %s %s for %s %s",
            entity_type,
            entity.id,
            owner_type.value,
            viewing.id,
        )
        return override

    @staticmethod
    def enable(
        db: Session, entity_type: str, entity_id, owner_type: OwnerType, owner_id
    ) -> None:
        get_spec(entity_type)
        db.execute(
            delete(ConfigOverride).where(
                *_owner_filter(entity_type, owner_type, owner_id),
                ConfigOverride.entity_id == coerce_uuid(entity_id),
            )
        )
        db.flush()

    @staticmethod
    def delete_for_entity(db: Session, entity_type: str, entity_id) -> int:
        result = db.execute(
            delete(ConfigOverride).where(
                ConfigOverride.entity_type == entity_type,
                ConfigOverride.entity_id == coerce_uuid(entity_id),
            )
        )
        return result.rowcount or 0


config_overrides = ConfigOverrides()
