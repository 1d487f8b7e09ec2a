"""Analytics API endpoints: event ingestion and the profile overview."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status

from biolink.aggregators import summarize
from biolink.core.config import get_settings
from biolink.core.database import AsyncSessionDep
from biolink.core.deps import CurrentUserId, GeoLocatorDep
from biolink.core.rate_limit import RATE_LIMIT_ANALYTICS, RATE_LIMIT_API, limiter
from biolink.schemas import (
    ClickEventCreate,
    EventCreatedResponse,
    ProfileOverview,
    ViewEventCreate,
)
from biolink.services import event_store, profile as profile_service
from biolink.services.enrichment import enrich_event

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.post(
    "/events/view",
    response_model=EventCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
async def track_view(
    request: Request,
    event_data: ViewEventCreate,
    session: AsyncSessionDep,
    geo_locator: GeoLocatorDep,
) -> EventCreatedResponse:
    """Record a profile page view."""
    if event_data.profile_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="profileId is required",
        )

    profile = await profile_service.get_profile(session, event_data.profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    enriched = await enrich_event(
        request.headers,
        "view",
        geo_locator,
        url=event_data.url,
        ip_hash_salt=settings.ip_hash_salt,
        allow_test_ip_header=settings.allow_test_ip_header,
    )
    event = await event_store.record_event(session, profile.id, None, enriched)
    await session.commit()

    return EventCreatedResponse(event_id=event.id)


@router.post(
    "/events/click",
    response_model=EventCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
async def track_click(
    request: Request,
    event_data: ClickEventCreate,
    session: AsyncSessionDep,
    geo_locator: GeoLocatorDep,
) -> EventCreatedResponse:
    """Record a click on a profile block."""
    if event_data.profile_id is None or event_data.block_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="profileId and blockId are required",
        )

    profile = await profile_service.get_profile(session, event_data.profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    block = await profile_service.get_block(session, event_data.block_id)
    if not block:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Block not found",
        )

    if block.profile_id != profile.id:
        logger.info(
            "Click rejected - block belongs to another profile",
            profile_id=str(profile.id),
            block_id=str(block.id),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Block does not belong to profile",
        )

    enriched = await enrich_event(
        request.headers,
        "click",
        geo_locator,
        url=event_data.url,
        ip_hash_salt=settings.ip_hash_salt,
        allow_test_ip_header=settings.allow_test_ip_header,
    )
    event = await event_store.record_event(session, profile.id, block.id, enriched)
    await session.commit()

    return EventCreatedResponse(event_id=event.id)


@router.get("/overview", response_model=ProfileOverview)
@limiter.limit(RATE_LIMIT_API)
async def get_overview(
    request: Request,
    user_id: CurrentUserId,
    session: AsyncSessionDep,
    profile_id: Annotated[UUID | None, Query(alias="profileId")] = None,
    period: Annotated[str, Query(description="Days to cover: 1, 7 or 30")] = "7",
) -> ProfileOverview:
    """Get the analytics overview of a profile owned by the caller."""
    if profile_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="profileId is required",
        )

    profile = await profile_service.get_profile(session, profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    if profile.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You don't have access to this profile's analytics",
        )

    return await summarize(session, profile.id, period)
