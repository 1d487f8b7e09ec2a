"""Pydantic schemas for analytics ingestion and the overview dashboard."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from biolink.schemas.base import CamelModel


class ViewEventCreate(CamelModel):
    """Body of ``POST /analytics/events/view``.

    Ids are optional here so a missing id is reported as a 400 with a
    specific message rather than a generic validation error.
    """

    profile_id: UUID | None = None
    url: str | None = Field(default=None, description="Destination URL the visitor landed on")


class ClickEventCreate(ViewEventCreate):
    """Body of ``POST /analytics/events/click``."""

    block_id: UUID | None = None


class EventCreatedResponse(CamelModel):
    """Acknowledgement of a stored event."""

    success: bool = True
    event_id: UUID


class UserAgentInfo(BaseModel):
    """Parsed user agent fields. Unknown parts are None."""

    browser: str | None = None
    browser_version: str | None = None
    os: str | None = None
    os_version: str | None = None
    device: str | None = None


class OverviewPeriod(CamelModel):
    """Inclusive UTC window covered by an overview."""

    from_: datetime = Field(alias="from")
    to: datetime


class OverviewTotals(CamelModel):
    """Headline numbers for the period."""

    total_views: int
    unique_visitors: int = Field(description="Distinct hashed IPs among views (approximate)")
    total_clicks: int
    click_rate: float = Field(description="Clicks per 100 views, two decimals")
    period: OverviewPeriod


class ViewsChartPoint(CamelModel):
    """Views for one calendar day."""

    date: str
    views: int
    unique_visitors: int


class TopLink(CamelModel):
    """A block ranked by clicks."""

    id: UUID
    title: str
    url: str
    clicks: int
    click_rate: float = Field(description="Clicks per 100 profile views, one decimal")


class TrafficSourceStats(CamelModel):
    source: str
    views: int
    percentage: float


class DeviceStats(CamelModel):
    type: str
    views: int
    percentage: float


class CountryStats(CamelModel):
    country: str = Field(description="ISO 3166-1 alpha-2 country code")
    views: int
    percentage: float


class ProfileOverview(CamelModel):
    """Response of ``GET /analytics/overview``."""

    overview: OverviewTotals
    views_chart: list[ViewsChartPoint]
    top_links: list[TopLink]
    traffic_sources: list[TrafficSourceStats]
    devices: list[DeviceStats]
    top_countries: list[CountryStats]
