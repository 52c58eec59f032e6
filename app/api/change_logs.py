from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_db
from app.models.change_log import ChangeAction
from app.schemas.change_log import ChangeLogRead
from app.schemas.common import ListResponse
from app.services.change_log import change_logs

router = APIRouter(prefix="/change-logs", tags=["change-logs"])


@router.get("", response_model=ListResponse[ChangeLogRead])
def list_change_logs(
    object_type: str | None = None,
    object_id: str | None = None,
    action: ChangeAction | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_tenant_db),
) -> dict:
    return change_logs.list_response(db, object_type, object_id, action, limit, offset)
