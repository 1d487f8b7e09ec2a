"""Pydantic schemas for request/response validation."""

from biolink.schemas.analytics import (
    ClickEventCreate,
    CountryStats,
    DeviceStats,
    EventCreatedResponse,
    OverviewPeriod,
    OverviewTotals,
    ProfileOverview,
    TopLink,
    TrafficSourceStats,
    UserAgentInfo,
    ViewEventCreate,
    ViewsChartPoint,
)
from biolink.schemas.blocks import (
    BlockConfig,
    HeaderBlockConfig,
    LinkBlockConfig,
    TextBlockConfig,
    block_label,
    parse_block_config,
)
from biolink.schemas.link import (
    UTM_KEYS,
    LinkSnapshot,
    ShortLinkCreate,
    ShortLinkCreatedResponse,
    ShortLinkListResponse,
    ShortLinkResponse,
    ShortLinkUpdate,
    UtmParams,
)

__all__ = [
    # Analytics
    "ClickEventCreate",
    "CountryStats",
    "DeviceStats",
    "EventCreatedResponse",
    "OverviewPeriod",
    "OverviewTotals",
    "ProfileOverview",
    "TopLink",
    "TrafficSourceStats",
    "UserAgentInfo",
    "ViewEventCreate",
    "ViewsChartPoint",
    # Blocks
    "BlockConfig",
    "HeaderBlockConfig",
    "LinkBlockConfig",
    "TextBlockConfig",
    "block_label",
    "parse_block_config",
    # Links
    "UTM_KEYS",
    "LinkSnapshot",
    "ShortLinkCreate",
    "ShortLinkCreatedResponse",
    "ShortLinkListResponse",
    "ShortLinkResponse",
    "ShortLinkUpdate",
    "UtmParams",
]
