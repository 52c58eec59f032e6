import uuid
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_db, require_actor
from app.models.hierarchy import OwnerType
from app.schemas.config import (
    BatchToggle,
    BatchToggleResult,
    BlocklistTestRequest,
    BlocklistTestResult,
    DisableResult,
    EnableResult,
    ResolvedPage,
    ScopeRef,
)
from app.services.blocklist import blocklists
from app.services.config_entity import config_entities
from app.services.config_registry import CONFIG_ENTITY_SPECS, get_spec
from app.services.config_resolver import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ResolveOptions,
    config_resolver,
)

router = APIRouter(prefix="/config", tags=["config"])


def _read(entity_type: str, entity):
    return get_spec(entity_type).read_schema.model_validate(entity)


@router.get("/types")
def list_config_types() -> list[str]:
    return sorted(CONFIG_ENTITY_SPECS)


@router.post("/external-blocklist-pattern/test", response_model=BlocklistTestResult)
def check_blocklist_text(
    payload: BlocklistTestRequest, db: Session = Depends(get_tenant_db)
) -> dict:
    return blocklists.test_text(db, payload.text, payload.scope_type, payload.scope_id)


@router.get("/{entity_type}", response_model=ResolvedPage)
def resolve_config(
    entity_type: str,
    scope_type: OwnerType = OwnerType.tenant,
    scope_id: str | None = None,
    include_inherited: bool = True,
    include_disabled: bool = False,
    include_inactive: bool = False,
    category: str | None = None,
    search: str | None = None,
    parent_id: str | None = None,
    language: str = Query(default="en", pattern="^(en|zh|ja)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_tenant_db),
) -> dict:
    options = ResolveOptions(
        include_inherited=include_inherited,
        include_disabled=include_disabled,
        include_inactive=include_inactive,
        category=category,
        search=search,
        parent_id=parent_id,
        language=language,
        page=page,
        page_size=page_size,
    )
    return config_resolver.resolve(db, entity_type, scope_type, scope_id, options)


@router.post("/{entity_type}", status_code=status.HTTP_201_CREATED)
def create_config_entity(
    entity_type: str,
    body: dict[str, Any] = Body(...),
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
):
    payload = config_entities.parse(get_spec(entity_type).create_schema, body)
    entity = config_entities.create(db, entity_type, payload, actor_id)
    return _read(entity_type, entity)


@router.post("/{entity_type}/batch-toggle", response_model=BatchToggleResult)
def batch_toggle_config_entities(
    entity_type: str,
    payload: BatchToggle,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> dict:
    updated = config_entities.batch_toggle(
        db, entity_type, payload.ids, payload.is_active, actor_id
    )
    return {"updated": updated}


@router.get("/{entity_type}/{entity_id}")
def get_config_entity(
    entity_type: str, entity_id: str, db: Session = Depends(get_tenant_db)
):
    return _read(entity_type, config_entities.get(db, entity_type, entity_id))


@router.patch("/{entity_type}/{entity_id}")
def update_config_entity(
    entity_type: str,
    entity_id: str,
    body: dict[str, Any] = Body(...),
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
):
    payload = config_entities.parse(get_spec(entity_type).update_schema, body)
    entity = config_entities.update(db, entity_type, entity_id, payload, actor_id)
    return _read(entity_type, entity)


@router.delete("/{entity_type}/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_config_entity(
    entity_type: str,
    entity_id: str,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> None:
    config_entities.delete(db, entity_type, entity_id, actor_id)


@router.post("/{entity_type}/{entity_id}/disable", response_model=DisableResult)
def disable_config_entity(
    entity_type: str,
    entity_id: str,
    payload: ScopeRef,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> dict:
    return config_entities.disable_in_scope(
        db, entity_type, entity_id, payload, actor_id
    )


@router.post("/{entity_type}/{entity_id}/enable", response_model=EnableResult)
def enable_config_entity(
    entity_type: str,
    entity_id: str,
    payload: ScopeRef,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> dict:
    return config_entities.enable_in_scope(
        db, entity_type, entity_id, payload, actor_id
    )
