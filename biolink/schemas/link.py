"""Short link Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from biolink.schemas.base import CamelModel

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


class UtmParams(BaseModel):
    """The five standard UTM query parameters."""

    utm_source: str | None = Field(default=None, max_length=255)
    utm_medium: str | None = Field(default=None, max_length=255)
    utm_campaign: str | None = Field(default=None, max_length=255)
    utm_content: str | None = Field(default=None, max_length=255)
    utm_term: str | None = Field(default=None, max_length=255)


class LinkSnapshot(CamelModel):
    """Denormalized short link state held in the redirect cache.

    Serialized as ``{"fullUrl", "id", "clicks"}``. The click count is the
    durable value at the time of the last sync and may lag behind.
    """

    full_url: str
    id: UUID
    clicks: int = 0


class ShortLinkCreate(CamelModel):
    """Request body for generating a UTM link."""

    profile_id: UUID
    utm_params: UtmParams
    generate_short_code: bool = False


class ShortLinkUpdate(CamelModel):
    """Request body for replacing a link's UTM parameters."""

    utm_params: UtmParams


class ShortLinkResponse(CamelModel):
    """A generated UTM link."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    profile_id: UUID
    short_code: str | None
    short_url: str | None = None
    full_url: str
    utm_params: UtmParams
    clicks: int
    created_at: datetime


class ShortLinkCreatedResponse(CamelModel):
    """Response for link creation and update."""

    message: str
    link: ShortLinkResponse


class ShortLinkListResponse(CamelModel):
    """The caller's links."""

    items: list[ShortLinkResponse]
