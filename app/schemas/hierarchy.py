from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


# ---------------------------------------------------------------------------
# Subsidiary
# ---------------------------------------------------------------------------


class SubsidiaryBase(BaseModel):
    name_en: str = Field(min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    sort_order: int = 0


class SubsidiaryCreate(SubsidiaryBase):
    parent_id: UUID | None = None
    code: str = Field(min_length=1, max_length=32, pattern=CODE_PATTERN)


class SubsidiaryUpdate(BaseModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    sort_order: int | None = None
    version: int = Field(ge=1)


class SubsidiaryMove(BaseModel):
    new_parent_id: UUID | None = None
    version: int = Field(ge=1)


class SubsidiaryDeactivate(BaseModel):
    cascade: bool = False
    version: int = Field(ge=1)


class VersionPayload(BaseModel):
    version: int = Field(ge=1)


class SubsidiaryRead(SubsidiaryBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    parent_id: UUID | None
    code: str
    path: str
    depth: int
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime


class SubsidiaryMoveResult(BaseModel):
    subsidiary: SubsidiaryRead
    affected_children: int


class DeactivationResult(BaseModel):
    subsidiaries: int
    talents: int


# ---------------------------------------------------------------------------
# Talent
# ---------------------------------------------------------------------------


class TalentBase(BaseModel):
    name_en: str = Field(min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    avatar_url: str | None = Field(default=None, max_length=1024)
    homepage_path: str | None = Field(
        default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9][a-z0-9_-]*$"
    )
    timezone: str = Field(default="UTC", max_length=64)
    settings: dict[str, Any] | None = None


class TalentCreate(TalentBase):
    subsidiary_id: UUID | None = None
    profile_store_id: UUID
    code: str = Field(min_length=1, max_length=32, pattern=CODE_PATTERN)


class TalentUpdate(BaseModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    avatar_url: str | None = Field(default=None, max_length=1024)
    homepage_path: str | None = Field(
        default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9][a-z0-9_-]*$"
    )
    timezone: str | None = Field(default=None, max_length=64)
    settings: dict[str, Any] | None = None
    version: int = Field(ge=1)


class TalentMove(BaseModel):
    new_subsidiary_id: UUID | None = None
    version: int = Field(ge=1)


class TalentRead(TalentBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subsidiary_id: UUID | None
    profile_store_id: UUID
    code: str
    path: str
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime
