from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_db
from app.models.hierarchy import OwnerType
from app.schemas.config import ScopeLinkRead
from app.services.scope_chain import scope_chains

router = APIRouter(prefix="/scopes", tags=["scopes"])


@router.get("/chain", response_model=list[ScopeLinkRead])
def get_scope_chain(
    scope_type: OwnerType = OwnerType.tenant,
    scope_id: str | None = None,
    strict: bool = False,
    db: Session = Depends(get_tenant_db),
) -> list:
    scope_chains.require_scope_id(scope_type, scope_id)
    if strict:
        scope_chains.ensure_scope_exists(db, scope_type, scope_id)
    return scope_chains.build(db, scope_type, scope_id)
