from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.change_log import ChangeAction


class ChangeLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    occurred_at: datetime
    operator_id: UUID | None
    action: ChangeAction
    object_type: str
    object_id: UUID | None
    object_name: str | None
    diff: dict[str, Any] | None
