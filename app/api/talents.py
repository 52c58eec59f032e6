import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_db, require_actor
from app.schemas.common import ListResponse
from app.schemas.hierarchy import (
    TalentCreate,
    TalentMove,
    TalentRead,
    TalentUpdate,
    VersionPayload,
)
from app.services import talent as talent_service
from app.services.config_resolver import config_resolver

router = APIRouter(prefix="/talents", tags=["talents"])


@router.post("", response_model=TalentRead, status_code=status.HTTP_201_CREATED)
def create_talent(
    payload: TalentCreate,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> TalentRead:
    return talent_service.talents.create(db, payload, actor_id)


@router.get("/{talent_id}", response_model=TalentRead)
def get_talent(talent_id: str, db: Session = Depends(get_tenant_db)) -> TalentRead:
    return talent_service.talents.get(db, talent_id)


@router.get("", response_model=ListResponse[TalentRead])
def list_talents(
    subsidiary_id: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="code"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_tenant_db),
) -> dict:
    return talent_service.talents.list_response(
        db, subsidiary_id, search, is_active, order_by, order_dir, limit, offset
    )


@router.patch("/{talent_id}", response_model=TalentRead)
def update_talent(
    talent_id: str,
    payload: TalentUpdate,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> TalentRead:
    return talent_service.talents.update(db, talent_id, payload, actor_id)


@router.post("/{talent_id}/move", response_model=TalentRead)
def move_talent(
    talent_id: str,
    payload: TalentMove,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> TalentRead:
    return talent_service.talents.move(db, talent_id, payload, actor_id)


@router.post("/{talent_id}/deactivate", response_model=TalentRead)
def deactivate_talent(
    talent_id: str,
    payload: VersionPayload,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> TalentRead:
    return talent_service.talents.deactivate(db, talent_id, payload, actor_id)


@router.post("/{talent_id}/reactivate", response_model=TalentRead)
def reactivate_talent(
    talent_id: str,
    payload: VersionPayload,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> TalentRead:
    return talent_service.talents.reactivate(db, talent_id, payload, actor_id)


@router.get("/{talent_id}/effective-config/{entity_type}")
def get_effective_config(
    talent_id: str,
    entity_type: str,
    language: str = Query(default="en", pattern="^(en|zh|ja)$"),
    db: Session = Depends(get_tenant_db),
) -> list[dict]:
    return config_resolver.effective_for_talent(db, entity_type, talent_id, language)
