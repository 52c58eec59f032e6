from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.config import (
    DEFAULT_BLOCKLIST_REPLACEMENT,
    BlocklistAction,
    BlocklistSeverity,
    PatternType,
)
from app.models.hierarchy import OwnerType
from app.schemas.hierarchy import CODE_PATTERN

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ConfigEntityBase(BaseModel):
    name_en: str = Field(min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    inherit: bool = True
    sort_order: int = 0
    is_active: bool = True
    is_force_use: bool = False


class ConfigEntityCreate(ConfigEntityBase):
    owner_type: OwnerType = OwnerType.tenant
    owner_id: UUID | None = None


class ConfigEntityUpdate(BaseModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=255)
    name_zh: str | None = Field(default=None, max_length=255)
    name_ja: str | None = Field(default=None, max_length=255)
    description_en: str | None = None
    description_zh: str | None = None
    description_ja: str | None = None
    inherit: bool | None = None
    sort_order: int | None = None
    is_active: bool | None = None
    is_force_use: bool | None = None
    version: int = Field(ge=1)


class ConfigEntityRead(ConfigEntityBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_type: OwnerType
    owner_id: UUID | None
    is_system: bool
    version: int
    created_at: datetime
    updated_at: datetime


class CodedConfigCreate(ConfigEntityCreate):
    code: str = Field(min_length=1, max_length=32, pattern=CODE_PATTERN)


class CodedConfigRead(ConfigEntityRead):
    code: str


# ---------------------------------------------------------------------------
# Communication types
# ---------------------------------------------------------------------------


class CommunicationTypeCreate(CodedConfigCreate):
    channel_category_id: UUID | None = None


class CommunicationTypeUpdate(ConfigEntityUpdate):
    channel_category_id: UUID | None = None


class CommunicationTypeRead(CodedConfigRead):
    channel_category_id: UUID | None


# ---------------------------------------------------------------------------
# Customer statuses
# ---------------------------------------------------------------------------


class CustomerStatusCreate(CodedConfigCreate):
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class CustomerStatusUpdate(ConfigEntityUpdate):
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class CustomerStatusRead(CodedConfigRead):
    color: str | None


# ---------------------------------------------------------------------------
# Inactivation reasons
# ---------------------------------------------------------------------------


class InactivationReasonCreate(CodedConfigCreate):
    reason_category_id: UUID | None = None


class InactivationReasonUpdate(ConfigEntityUpdate):
    reason_category_id: UUID | None = None


class InactivationReasonRead(CodedConfigRead):
    reason_category_id: UUID | None


# ---------------------------------------------------------------------------
# External blocklist patterns
# ---------------------------------------------------------------------------


class BlocklistPatternCreate(ConfigEntityCreate):
    pattern: str = Field(min_length=1, max_length=512)
    pattern_type: PatternType
    category: str | None = Field(default=None, max_length=64)
    severity: BlocklistSeverity = BlocklistSeverity.medium
    action: BlocklistAction = BlocklistAction.reject
    replacement: str = Field(default=DEFAULT_BLOCKLIST_REPLACEMENT, max_length=255)


class BlocklistPatternUpdate(ConfigEntityUpdate):
    pattern: str | None = Field(default=None, min_length=1, max_length=512)
    pattern_type: PatternType | None = None
    category: str | None = Field(default=None, max_length=64)
    severity: BlocklistSeverity | None = None
    action: BlocklistAction | None = None
    replacement: str | None = Field(default=None, max_length=255)


class BlocklistPatternRead(ConfigEntityRead):
    pattern: str
    pattern_type: PatternType
    category: str | None
    severity: BlocklistSeverity
    action: BlocklistAction
    replacement: str


# ---------------------------------------------------------------------------
# Scope operations
# ---------------------------------------------------------------------------


class ScopeRef(BaseModel):
    scope_type: OwnerType
    scope_id: UUID | None = None


class ScopeLinkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: OwnerType
    id: UUID | None


class DisableResult(BaseModel):
    id: UUID
    disabled: bool = True


class EnableResult(BaseModel):
    id: UUID
    enabled: bool = True


class BatchToggle(BaseModel):
    ids: list[UUID] = Field(min_length=1, max_length=100)
    is_active: bool


class BatchToggleResult(BaseModel):
    updated: int


class ResolvedPage(BaseModel):
    items: list[dict[str, Any]]
    total: int
    total_matched: int
    total_visible: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Blocklist text test
# ---------------------------------------------------------------------------


class BlocklistTestRequest(ScopeRef):
    text: str = Field(min_length=1, max_length=10000)


class BlocklistMatch(BaseModel):
    entry_id: UUID
    pattern: str
    pattern_type: PatternType
    matched_text: str
    start: int
    end: int
    severity: BlocklistSeverity
    action: BlocklistAction
    owner_type: OwnerType


class BlocklistTestResult(BaseModel):
    original_text: str
    is_blocked: bool
    matches: list[BlocklistMatch]
    filtered_text: str
