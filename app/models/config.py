import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db import TENANT_SCHEMA, Base
from app.models.hierarchy import OwnerType

DEFAULT_BLOCKLIST_REPLACEMENT = "[链接已移除]"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PatternType(enum.Enum):
    domain = "domain"
    url_regex = "url_regex"
    keyword = "keyword"


class BlocklistSeverity(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class BlocklistAction(enum.Enum):
    reject = "reject"
    flag = "flag"
    replace = "replace"


def _enum_column(enum_cls):
    # Plain VARCHAR so every tenant schema can be provisioned independently.
    return Enum(enum_cls, native_enum=False, length=16)


# ---------------------------------------------------------------------------
# Shared columns
# ---------------------------------------------------------------------------


class ScopedConfigMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_type: Mapped[OwnerType] = mapped_column(
        _enum_column(OwnerType), nullable=False, default=OwnerType.tenant
    )
    # NULL for tenant-owned rows.
    owner_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    name_en: Mapped[str] = mapped_column(String(255), nullable=False)
    name_zh: Mapped[str | None] = mapped_column(String(255))
    name_ja: Mapped[str | None] = mapped_column(String(255))
    description_en: Mapped[str | None] = mapped_column(Text)
    description_zh: Mapped[str | None] = mapped_column(Text)
    description_ja: Mapped[str | None] = mapped_column(Text)
    inherit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_force_use: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


def _coded_table_args(table: str):
    return (
        UniqueConstraint("code", name=f"uq_{table}_code"),
        Index(f"ix_{table}_owner", "owner_type", "owner_id"),
        {"schema": TENANT_SCHEMA},
    )


# ---------------------------------------------------------------------------
# Communication
# ---------------------------------------------------------------------------


class ChannelCategory(ScopedConfigMixin, Base):
    __tablename__ = "channel_categories"
    __table_args__ = _coded_table_args("channel_categories")

    code: Mapped[str] = mapped_column(String(32), nullable=False)


class CommunicationType(ScopedConfigMixin, Base):
    __tablename__ = "communication_types"
    __table_args__ = _coded_table_args("communication_types")

    code: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey(f"{TENANT_SCHEMA}.channel_categories.id")
    )


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class CustomerStatus(ScopedConfigMixin, Base):
    __tablename__ = "customer_statuses"
    __table_args__ = _coded_table_args("customer_statuses")

    code: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str | None] = mapped_column(String(16))


class BusinessSegment(ScopedConfigMixin, Base):
    __tablename__ = "business_segments"
    __table_args__ = _coded_table_args("business_segments")

    code: Mapped[str] = mapped_column(String(32), nullable=False)


class ReasonCategory(ScopedConfigMixin, Base):
    __tablename__ = "reason_categories"
    __table_args__ = _coded_table_args("reason_categories")

    code: Mapped[str] = mapped_column(String(32), nullable=False)


class InactivationReason(ScopedConfigMixin, Base):
    __tablename__ = "inactivation_reasons"
    __table_args__ = _coded_table_args("inactivation_reasons")

    code: Mapped[str] = mapped_column(String(32), nullable=False)
    reason_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey(f"{TENANT_SCHEMA}.reason_categories.id")
    )


class MembershipClass(ScopedConfigMixin, Base):
    __tablename__ = "membership_classes"
    __table_args__ = _coded_table_args("membership_classes")

    code: Mapped[str] = mapped_column(String(32), nullable=False)


# ---------------------------------------------------------------------------
# External blocklist
# ---------------------------------------------------------------------------


class ExternalBlocklistPattern(ScopedConfigMixin, Base):
    __tablename__ = "external_blocklist_patterns"
    __table_args__ = (
        Index("ix_external_blocklist_patterns_owner", "owner_type", "owner_id"),
        Index("ix_external_blocklist_patterns_category", "category"),
        {"schema": TENANT_SCHEMA},
    )

    pattern: Mapped[str] = mapped_column(String(512), nullable=False)
    pattern_type: Mapped[PatternType] = mapped_column(
        _enum_column(PatternType), nullable=False
    )
    category: Mapped[str | None] = mapped_column(String(64))
    severity: Mapped[BlocklistSeverity] = mapped_column(
        _enum_column(BlocklistSeverity), nullable=False, default=BlocklistSeverity.medium
    )
    action: Mapped[BlocklistAction] = mapped_column(
        _enum_column(BlocklistAction), nullable=False, default=BlocklistAction.reject
    )
    replacement: Mapped[str] = mapped_column(
        String(255), nullable=False, default=DEFAULT_BLOCKLIST_REPLACEMENT
    )


# ---------------------------------------------------------------------------
# Per-scope overrides
# ---------------------------------------------------------------------------


class ConfigOverride(Base):
    __tablename__ = "config_overrides"
    __table_args__ = (
        UniqueConstraint(
            "entity_type",
            "entity_id",
            "owner_type",
            "owner_id",
            name="uq_config_overrides_entity_owner",
        ),
        Index("ix_config_overrides_owner", "entity_type", "owner_type", "owner_id"),
        {"schema": TENANT_SCHEMA},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    owner_type: Mapped[OwnerType] = mapped_column(
        _enum_column(OwnerType), nullable=False
    )
    # The all-zero UUID stands for the tenant scope so the unique key holds.
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    is_disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
