"""UTM link endpoints."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.config import get_settings
from biolink.core.database import AsyncSessionDep
from biolink.core.deps import CurrentUserId, LinkCacheDep
from biolink.core.rate_limit import RATE_LIMIT_API, limiter
from biolink.models.short_link import ShortLink
from biolink.schemas import (
    ShortLinkCreate,
    ShortLinkCreatedResponse,
    ShortLinkListResponse,
    ShortLinkResponse,
    ShortLinkUpdate,
)
from biolink.services import profile as profile_service
from biolink.services import short_link as short_link_service
from biolink.services.utm import (
    build_utm_url,
    clean_utm_params,
    has_utm_params,
    profile_page_url,
    short_url,
)

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(prefix="/links", tags=["links"])

LINK_NOT_FOUND = "Link not found"
LINK_FORBIDDEN = "Forbidden: You don't own this link"
MISSING_UTM_PARAMS = "At least one UTM parameter is required"


def to_response(link: ShortLink) -> ShortLinkResponse:
    """Serialize a link with its public short URL."""
    response = ShortLinkResponse.model_validate(link)
    response.short_url = short_url(settings.public_base_url, link.short_code)
    return response


async def get_owned_link(session: AsyncSession, link_id: UUID, user_id: UUID) -> ShortLink:
    """Load a link, raising 404 if missing and 403 if owned by someone else."""
    link = await short_link_service.get_link_by_id(session, link_id)
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=LINK_NOT_FOUND)
    if link.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=LINK_FORBIDDEN)
    return link


@router.post(
    "",
    response_model=ShortLinkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_API)
async def create_link(
    request: Request,
    link_data: ShortLinkCreate,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
) -> ShortLinkCreatedResponse:
    """Generate a UTM link to one of the caller's profiles.

    With ``generateShortCode`` the link also gets a short code that
    redirects through ``/r/{code}``.
    """
    utm_params = clean_utm_params(link_data.utm_params)
    if not has_utm_params(utm_params):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_UTM_PARAMS)

    profile = await profile_service.get_profile(session, link_data.profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    if profile.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You don't own this profile",
        )

    full_url = build_utm_url(profile_page_url(settings.frontend_url, profile.slug), utm_params)
    link = await short_link_service.create_short_link(
        session,
        user_id=user_id,
        profile_id=profile.id,
        full_url=full_url,
        utm_params=utm_params,
        with_short_code=link_data.generate_short_code,
    )
    await session.commit()

    logger.info(
        "Link created",
        link_id=str(link.id),
        short_code=link.short_code,
        user_id=str(user_id),
    )
    return ShortLinkCreatedResponse(message="UTM link generated successfully", link=to_response(link))


@router.get("", response_model=ShortLinkListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
    profile_id: Annotated[UUID | None, Query(alias="profileId")] = None,
) -> ShortLinkListResponse:
    """List the caller's links, newest first."""
    links = await short_link_service.get_user_links(session, user_id, profile_id)
    return ShortLinkListResponse(items=[to_response(link) for link in links])


@router.get("/{link_id}", response_model=ShortLinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link(
    request: Request,
    link_id: UUID,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
) -> ShortLinkResponse:
    """Get a specific link by ID."""
    link = await get_owned_link(session, link_id, user_id)
    return to_response(link)


@router.put("/{link_id}", response_model=ShortLinkCreatedResponse)
@limiter.limit(RATE_LIMIT_API)
async def update_link(
    request: Request,
    link_id: UUID,
    link_data: ShortLinkUpdate,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> ShortLinkCreatedResponse:
    """Replace a link's UTM parameters and rebuild its destination URL."""
    link = await get_owned_link(session, link_id, user_id)

    utm_params = clean_utm_params(link_data.utm_params)
    if not has_utm_params(utm_params):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_UTM_PARAMS)

    profile = await profile_service.get_profile(session, link.profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    full_url = build_utm_url(profile_page_url(settings.frontend_url, profile.slug), utm_params)
    updated = await short_link_service.update_link_utm(session, link, utm_params, full_url, cache)
    await session.commit()

    logger.info("Link updated", link_id=str(link_id), user_id=str(user_id))
    return ShortLinkCreatedResponse(message="Link updated successfully", link=to_response(updated))


@router.delete("/{link_id}")
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    link_id: UUID,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> dict[str, str]:
    """Delete a link; its short code stops redirecting immediately."""
    link = await get_owned_link(session, link_id, user_id)
    await short_link_service.delete_link(session, link, cache)
    await session.commit()

    logger.info("Link deleted", link_id=str(link_id), user_id=str(user_id))
    return {"message": "Link deleted successfully"}
