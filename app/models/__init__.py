from app.models.change_log import ChangeAction, ChangeLog  # noqa: F401
from app.models.config import (  # noqa: F401
    BlocklistAction,
    BlocklistSeverity,
    BusinessSegment,
    ChannelCategory,
    CommunicationType,
    ConfigOverride,
    CustomerStatus,
    ExternalBlocklistPattern,
    InactivationReason,
    MembershipClass,
    PatternType,
    ReasonCategory,
)
from app.models.hierarchy import MAX_DEPTH, OwnerType, Subsidiary, Talent  # noqa: F401
from app.models.tenant import Tenant  # noqa: F401
