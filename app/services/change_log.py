import logging

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.change_log import ChangeAction, ChangeLog
from app.services.common import apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def snapshot(obj, fields) -> dict:
    return {field: getattr(obj, field) for field in fields}


def compute_diff(old: dict | None, new: dict | None) -> dict:
    """Field-level ``{"old", "new"}`` pairs for every changed key."""
    old = jsonable_encoder(old or {})
    new = jsonable_encoder(new or {})
    diff = {}
    for key in sorted(set(old) | set(new)):
        before = old.get(key)
        after = new.get(key)
        if before != after:
            diff[key] = {"old": before, "new": after}
    return diff


class ChangeLogs(ListResponseMixin):
    @staticmethod
    def record(
        db: Session,
        action: ChangeAction,
        object_type: str,
        object_id,
        object_name: str | None = None,
        operator_id=None,
        old: dict | None = None,
        new: dict | None = None,
    ) -> ChangeLog:
        entry = ChangeLog(
            action=action,
            object_type=object_type,
            object_id=coerce_uuid(object_id),
            object_name=object_name,
            operator_id=coerce_uuid(operator_id),
            diff=compute_diff(old, new),
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def list(
        db: Session,
        object_type: str | None,
        object_id: str | None,
        action: ChangeAction | None,
        limit: int,
        offset: int,
    ) -> list[ChangeLog]:
        stmt = select(ChangeLog)
        if object_type:
            stmt = stmt.where(ChangeLog.object_type == object_type)
        if object_id:
            stmt = stmt.where(ChangeLog.object_id == coerce_uuid(object_id))
        if action is not None:
            stmt = stmt.where(ChangeLog.action == action)
        stmt = stmt.order_by(ChangeLog.occurred_at.desc())
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


change_logs = ChangeLogs()
