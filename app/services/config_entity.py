import logging
import re

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import (
    DomainRuleError,
    NotFoundError,
    ValidationFailedError,
    VersionConflictError,
)
from app.models.change_log import ChangeAction
from app.models.config import PatternType
from app.models.hierarchy import OwnerType
from app.schemas.config import ScopeRef
from app.services.change_log import ChangeLogs
from app.services.common import coerce_uuid
from app.services.config_override import ConfigOverrides
from app.services.config_registry import (
    CONFIG_ENTITY_SPECS,
    ConfigEntitySpec,
    get_spec,
)
from app.services.event import EventType, publish_event
from app.services.scope_chain import ScopeChains

logger = logging.getLogger(__name__)


def _snapshot(spec: ConfigEntitySpec, entity) -> dict:
    return spec.read_schema.model_validate(entity).model_dump()


def _display_name(entity) -> str:
    for field in ("code", "pattern"):
        value = getattr(entity, field, None)
        if value:
            return value
    return entity.name_en


def _event_payload(entity_type: str, owner_type: OwnerType, owner_id) -> dict:
    return {
        "config_type": entity_type,
        "owner_type": owner_type.value,
        "owner_id": str(owner_id) if owner_id else None,
    }


class ConfigEntities:
    @staticmethod
    def parse(schema: type[BaseModel], body: dict) -> BaseModel:
        """Validate a request body against an entity type's schema."""
        try:
            return schema.model_validate(body)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    @staticmethod
    def _ensure_code_available(db: Session, spec: ConfigEntitySpec, code: str) -> None:
        existing = db.scalars(
            select(spec.model.id).where(spec.model.code == code)
        ).first()
        if existing is not None:
            raise ValidationFailedError(
                f"{spec.entity_type} code already exists", code="CODE_ALREADY_EXISTS"
            )

    @staticmethod
    def _validate_parent(db: Session, spec: ConfigEntitySpec, parent_id) -> None:
        if not spec.parent_field or parent_id is None:
            return
        parent_model = get_spec(spec.parent_entity_type).model
        if db.get(parent_model, coerce_uuid(parent_id)) is None:
            raise NotFoundError(f"Parent {spec.parent_entity_type} not found")

    @staticmethod
    def _ensure_unreferenced(db: Session, spec: ConfigEntitySpec, entity_id) -> None:
        for child in CONFIG_ENTITY_SPECS.values():
            if child.parent_entity_type != spec.entity_type:
                continue
            column = getattr(child.model, child.parent_field)
            if db.scalars(select(child.model.id).where(column == entity_id)).first():
                raise DomainRuleError(
                    f"Entry is still referenced by {child.entity_type} entries",
                    code="CONFIG_IN_USE",
                )

    @staticmethod
    def _validate_pattern(pattern: str | None, pattern_type: PatternType | None) -> None:
        if pattern_type != PatternType.url_regex or pattern is None:
            return
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValidationFailedError(f"Invalid regular expression: {exc}") from exc

    @staticmethod
    def create(db: Session, entity_type: str, payload, actor_id=None):
        spec = get_spec(entity_type)
        data = payload.model_dump()
        owner_type = data["owner_type"]
        if owner_type == OwnerType.tenant:
            data["owner_id"] = None
        ScopeChains.ensure_scope_exists(db, owner_type, data["owner_id"])
        if spec.has_code:
            ConfigEntities._ensure_code_available(db, spec, data["code"])
        if spec.parent_field:
            ConfigEntities._validate_parent(db, spec, data.get(spec.parent_field))
        if "pattern" in data:
            ConfigEntities._validate_pattern(data["pattern"], data["pattern_type"])

        actor_id = coerce_uuid(actor_id)
        entity = spec.model(**data, created_by=actor_id, updated_by=actor_id)
        db.add(entity)
        db.flush()
        db.refresh(entity)

        ChangeLogs.record(
            db,
            ChangeAction.create,
            entity_type,
            entity.id,
            _display_name(entity),
            actor_id,
            new=_snapshot(spec, entity),
        )
        publish_event(
            EventType.config_created,
            entity_type,
            entity.id,
            actor_id=actor_id,
            tenant_schema=db.info.get("tenant_schema"),
            db=db,
            payload=_event_payload(entity_type, entity.owner_type, entity.owner_id),
        )
        logger.info("Created %s %s", entity_type, entity.id)
        return entity

    @staticmethod
    def get(db: Session, entity_type: str, entity_id):
        spec = get_spec(entity_type)
        entity = db.get(spec.model, coerce_uuid(entity_id))
        if not entity:
            raise NotFoundError(f"{spec.entity_type} not found")
        return entity

    @staticmethod
    def update(db: Session, entity_type: str, entity_id, payload, actor_id=None):
        spec = get_spec(entity_type)
        entity = ConfigEntities.get(db, entity_type, entity_id)
        if entity.is_system:
            raise DomainRuleError(
                "System entries cannot be modified", code="CONFIG_SYSTEM_IMMUTABLE"
            )
        data = payload.model_dump(exclude_unset=True)
        if data.pop("version") != entity.version:
            raise VersionConflictError()

        was_forced = entity.is_force_use
        before = _snapshot(spec, entity)
        columns = spec.model.__table__.c
        for key, value in data.items():
            if value is None and not columns[key].nullable:
                continue
            setattr(entity, key, value)

        if spec.parent_field and spec.parent_field in data:
            ConfigEntities._validate_parent(db, spec, getattr(entity, spec.parent_field))
        if hasattr(entity, "pattern"):
            ConfigEntities._validate_pattern(entity.pattern, entity.pattern_type)
        if entity.is_force_use and not was_forced:
            # Mandatory entries cannot stay disabled anywhere below their owner.
            cleared = ConfigOverrides.delete_for_entity(db, entity_type, entity.id)
            if cleared:
                logger.info(
                    "Cleared %d overrides of forced %s %s",
                    cleared,
                    entity_type,
                    entity.id,
                )

        entity.version += 1
        entity.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(entity)

        ChangeLogs.record(
            db,
            ChangeAction.update,
            entity_type,
            entity.id,
            _display_name(entity),
            actor_id,
            old=before,
            new=_snapshot(spec, entity),
        )
        publish_event(
            EventType.config_updated,
            entity_type,
            entity.id,
            actor_id=actor_id,
            tenant_schema=db.info.get("tenant_schema"),
            db=db,
            payload=_event_payload(entity_type, entity.owner_type, entity.owner_id),
        )
        logger.info("Updated %s %s", entity_type, entity.id)
        return entity

    @staticmethod
    def delete(db: Session, entity_type: str, entity_id, actor_id=None) -> None:
        spec = get_spec(entity_type)
        entity = ConfigEntities.get(db, entity_type, entity_id)
        if entity.is_system:
            raise DomainRuleError(
                "System entries cannot be deleted", code="CONFIG_SYSTEM_IMMUTABLE"
            )
        ConfigEntities._ensure_unreferenced(db, spec, entity.id)
        before = _snapshot(spec, entity)
        owner_type, owner_id = entity.owner_type, entity.owner_id
        removed_overrides = ConfigOverrides.delete_for_entity(db, entity_type, entity.id)
        db.delete(entity)
        db.flush()

        ChangeLogs.record(
            db,
            ChangeAction.delete,
            entity_type,
            before["id"],
            before.get("code") or before.get("pattern") or before["name_en"],
            actor_id,
            old=before,
        )
        publish_event(
            EventType.config_deleted,
            entity_type,
            before["id"],
            actor_id=actor_id,
            tenant_schema=db.info.get("tenant_schema"),
            db=db,
            payload=_event_payload(entity_type, owner_type, owner_id),
        )
        logger.info(
            "Deleted %s %s (%d overrides removed)",
            entity_type,
            before["id"],
            removed_overrides,
        )

    @staticmethod
    def batch_toggle(
        db: Session, entity_type: str, ids, is_active: bool, actor_id=None
    ) -> int:
        spec = get_spec(entity_type)
        actor_id = coerce_uuid(actor_id)
        entities = db.scalars(
            select(spec.model).where(spec.model.id.in_([coerce_uuid(i) for i in ids]))
        ).all()
        updated = 0
        for entity in entities:
            if entity.is_active == is_active:
                continue
            entity.is_active = is_active
            entity.version += 1
            entity.updated_by = actor_id
            ChangeLogs.record(
                db,
                ChangeAction.toggle,
                entity_type,
                entity.id,
                _display_name(entity),
                actor_id,
                old={"is_active": not is_active},
                new={"is_active": is_active},
            )
            updated += 1
        db.flush()

        if updated:
            publish_event(
                EventType.config_toggled,
                entity_type,
                None,
                actor_id=actor_id,
                tenant_schema=db.info.get("tenant_schema"),
                db=db,
                payload={"config_type": entity_type, "count": updated},
            )
        logger.info("Toggled %d %s entries to is_active=%s", updated, entity_type, is_active)
        return updated

    @staticmethod
    def disable_in_scope(
        db: Session, entity_type: str, entity_id, scope: ScopeRef, actor_id=None
    ) -> dict:
        override = ConfigOverrides.disable(
            db, entity_type, entity_id, scope.scope_type, scope.scope_id, actor_id
        )
        ChangeLogs.record(
            db,
            ChangeAction.disable,
            entity_type,
            override.entity_id,
            None,
            actor_id,
            new={"scope_type": scope.scope_type, "scope_id": scope.scope_id},
        )
        publish_event(
            EventType.config_disabled,
            entity_type,
            override.entity_id,
            actor_id=actor_id,
            tenant_schema=db.info.get("tenant_schema"),
            db=db,
            payload=_event_payload(entity_type, scope.scope_type, scope.scope_id),
        )
        return {"id": override.entity_id, "disabled": True}

    @staticmethod
    def enable_in_scope(
        db: Session, entity_type: str, entity_id, scope: ScopeRef, actor_id=None
    ) -> dict:
        entity_id = coerce_uuid(entity_id)
        ConfigOverrides.enable(
            db, entity_type, entity_id, scope.scope_type, scope.scope_id
        )
        ChangeLogs.record(
            db,
            ChangeAction.enable,
            entity_type,
            entity_id,
            None,
            actor_id,
            old={"scope_type": scope.scope_type, "scope_id": scope.scope_id},
        )
        publish_event(
            EventType.config_enabled,
            entity_type,
            entity_id,
            actor_id=actor_id,
            tenant_schema=db.info.get("tenant_schema"),
            db=db,
            payload=_event_payload(entity_type, scope.scope_type, scope.scope_id),
        )
        return {"id": entity_id, "enabled": True}


config_entities = ConfigEntities()
