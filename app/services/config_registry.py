"""Catalogue of scoped configuration entity types.

Each entry ties the URL slug of an entity type to its model, its request and
response schemas and the optional columns the resolver needs: a rank used as
the secondary sort key, a parent column for hierarchical filters and a
category column.
"""

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel
from sqlalchemy import case

from app.errors import NotFoundError
from app.models.config import (
    BlocklistSeverity,
    BusinessSegment,
    ChannelCategory,
    CommunicationType,
    CustomerStatus,
    ExternalBlocklistPattern,
    InactivationReason,
    MembershipClass,
    ReasonCategory,
)
from app.schemas import config as schemas


def _severity_rank(model):
    return case(
        (model.severity == BlocklistSeverity.high, 3),
        (model.severity == BlocklistSeverity.medium, 2),
        (model.severity == BlocklistSeverity.low, 1),
        else_=0,
    )


@dataclass(frozen=True)
class ConfigEntitySpec:
    entity_type: str
    model: type
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    read_schema: type[BaseModel]
    has_code: bool = True
    rank: Callable | None = None
    parent_field: str | None = None
    parent_entity_type: str | None = None
    category_field: str | None = None
    search_fields: tuple[str, ...] = ("code", "name_en", "name_zh", "name_ja")

    def rank_expression(self):
        if self.rank is None:
            return None
        return self.rank(self.model)


CONFIG_ENTITY_SPECS: dict[str, ConfigEntitySpec] = {
    spec.entity_type: spec
    for spec in (
        ConfigEntitySpec(
            entity_type="channel-category",
            model=ChannelCategory,
            create_schema=schemas.CodedConfigCreate,
            update_schema=schemas.ConfigEntityUpdate,
            read_schema=schemas.CodedConfigRead,
        ),
        ConfigEntitySpec(
            entity_type="communication-type",
            model=CommunicationType,
            create_schema=schemas.CommunicationTypeCreate,
            update_schema=schemas.CommunicationTypeUpdate,
            read_schema=schemas.CommunicationTypeRead,
            parent_field="channel_category_id",
            parent_entity_type="channel-category",
        ),
        ConfigEntitySpec(
            entity_type="customer-status",
            model=CustomerStatus,
            create_schema=schemas.CustomerStatusCreate,
            update_schema=schemas.CustomerStatusUpdate,
            read_schema=schemas.CustomerStatusRead,
        ),
        ConfigEntitySpec(
            entity_type="business-segment",
            model=BusinessSegment,
            create_schema=schemas.CodedConfigCreate,
            update_schema=schemas.ConfigEntityUpdate,
            read_schema=schemas.CodedConfigRead,
        ),
        ConfigEntitySpec(
            entity_type="reason-category",
            model=ReasonCategory,
            create_schema=schemas.CodedConfigCreate,
            update_schema=schemas.ConfigEntityUpdate,
            read_schema=schemas.CodedConfigRead,
        ),
        ConfigEntitySpec(
            entity_type="inactivation-reason",
            model=InactivationReason,
            create_schema=schemas.InactivationReasonCreate,
            update_schema=schemas.InactivationReasonUpdate,
            read_schema=schemas.InactivationReasonRead,
            parent_field="reason_category_id",
            parent_entity_type="reason-category",
        ),
        ConfigEntitySpec(
            entity_type="membership-class",
            model=MembershipClass,
            create_schema=schemas.CodedConfigCreate,
            update_schema=schemas.ConfigEntityUpdate,
            read_schema=schemas.CodedConfigRead,
        ),
        ConfigEntitySpec(
            entity_type="external-blocklist-pattern",
            model=ExternalBlocklistPattern,
            create_schema=schemas.BlocklistPatternCreate,
            update_schema=schemas.BlocklistPatternUpdate,
            read_schema=schemas.BlocklistPatternRead,
            has_code=False,
            rank=_severity_rank,
            category_field="category",
            search_fields=("pattern", "name_en", "name_zh", "name_ja"),
        ),
    )
}


def get_spec(entity_type: str) -> ConfigEntitySpec:
    spec = CONFIG_ENTITY_SPECS.get(entity_type)
    if spec is None:
        raise NotFoundError(f"Unknown config entity type: {entity_type}")
    return spec
