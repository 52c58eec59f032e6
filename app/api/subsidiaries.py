import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_db, require_actor
from app.schemas.common import ListResponse
from app.schemas.hierarchy import (
    DeactivationResult,
    SubsidiaryCreate,
    SubsidiaryDeactivate,
    SubsidiaryMove,
    SubsidiaryMoveResult,
    SubsidiaryRead,
    SubsidiaryUpdate,
    VersionPayload,
)
from app.services import subsidiary as subsidiary_service

router = APIRouter(prefix="/subsidiaries", tags=["subsidiaries"])


@router.post("", response_model=SubsidiaryRead, status_code=status.HTTP_201_CREATED)
def create_subsidiary(
    payload: SubsidiaryCreate,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> SubsidiaryRead:
    return subsidiary_service.subsidiaries.create(db, payload, actor_id)


@router.get("/by-code/{code}", response_model=SubsidiaryRead)
def get_subsidiary_by_code(
    code: str, db: Session = Depends(get_tenant_db)
) -> SubsidiaryRead:
    return subsidiary_service.subsidiaries.get_by_code(db, code)


@router.get("/{subsidiary_id}", response_model=SubsidiaryRead)
def get_subsidiary(
    subsidiary_id: str, db: Session = Depends(get_tenant_db)
) -> SubsidiaryRead:
    return subsidiary_service.subsidiaries.get(db, subsidiary_id)


@router.get("/{subsidiary_id}/counts")
def get_subsidiary_counts(
    subsidiary_id: str, db: Session = Depends(get_tenant_db)
) -> dict:
    subsidiary = subsidiary_service.subsidiaries.get(db, subsidiary_id)
    return {
        "children": subsidiary_service.subsidiaries.children_count(db, subsidiary.id),
        "talents": subsidiary_service.subsidiaries.talent_count(db, subsidiary.id),
    }


@router.get("", response_model=ListResponse[SubsidiaryRead])
def list_subsidiaries(
    parent_id: str | None = None,
    root_only: bool = False,
    search: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="sort_order"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_tenant_db),
) -> dict:
    return subsidiary_service.subsidiaries.list_response(
        db, parent_id, root_only, search, is_active, order_by, order_dir, limit, offset
    )


@router.patch("/{subsidiary_id}", response_model=SubsidiaryRead)
def update_subsidiary(
    subsidiary_id: str,
    payload: SubsidiaryUpdate,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> SubsidiaryRead:
    return subsidiary_service.subsidiaries.update(db, subsidiary_id, payload, actor_id)


@router.post("/{subsidiary_id}/move", response_model=SubsidiaryMoveResult)
def move_subsidiary(
    subsidiary_id: str,
    payload: SubsidiaryMove,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> dict:
    return subsidiary_service.subsidiaries.move(db, subsidiary_id, payload, actor_id)


@router.post("/{subsidiary_id}/deactivate", response_model=DeactivationResult)
def deactivate_subsidiary(
    subsidiary_id: str,
    payload: SubsidiaryDeactivate,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> dict:
    return subsidiary_service.subsidiaries.deactivate(
        db, subsidiary_id, payload, actor_id
    )


@router.post("/{subsidiary_id}/reactivate", response_model=SubsidiaryRead)
def reactivate_subsidiary(
    subsidiary_id: str,
    payload: VersionPayload,
    db: Session = Depends(get_tenant_db),
    actor_id: uuid.UUID = Depends(require_actor),
) -> SubsidiaryRead:
    return subsidiary_service.subsidiaries.reactivate(
        db, subsidiary_id, payload, actor_id
    )
