from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.tenant import TenantCreate, TenantRead
from app.services import tenant as tenant_service

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post("", response_model=TenantRead, status_code=status.HTTP_201_CREATED)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db)) -> TenantRead:
    return tenant_service.tenants.create(db, payload)


@router.get("/{tenant_id}", response_model=TenantRead)
def get_tenant(tenant_id: str, db: Session = Depends(get_db)) -> TenantRead:
    return tenant_service.tenants.get(db, tenant_id)


@router.get("", response_model=ListResponse[TenantRead])
def list_tenants(
    is_active: bool | None = None,
    order_by: str = Query(default="code"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> dict:
    return tenant_service.tenants.list_response(
        db, is_active, order_by, order_dir, limit, offset
    )
