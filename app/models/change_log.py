import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Index, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db import TENANT_SCHEMA, Base


class ChangeAction(enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"
    move = "move"
    deactivate = "deactivate"
    reactivate = "reactivate"
    disable = "disable"
    enable = "enable"
    toggle = "toggle"


class ChangeLog(Base):
    __tablename__ = "change_logs"
    __table_args__ = (
        Index("ix_change_logs_object", "object_type", "object_id"),
        Index("ix_change_logs_occurred_at", "occurred_at"),
        {"schema": TENANT_SCHEMA},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    operator_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    action: Mapped[ChangeAction] = mapped_column(
        Enum(ChangeAction, native_enum=False, length=16), nullable=False
    )
    object_type: Mapped[str] = mapped_column(String(64), nullable=False)
    object_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    object_name: Mapped[str | None] = mapped_column(String(255))
    # {field: {"old": ..., "new": ...}}
    diff: Mapped[dict | None] = mapped_column(JSON)
