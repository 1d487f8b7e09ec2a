"""Append-only storage of enriched analytics events."""

from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.observability import record_event_ingested
from biolink.models.analytics_event import AnalyticsEvent
from biolink.services.enrichment import EnrichedEvent

logger = structlog.get_logger()


async def record_event(
    session: AsyncSession,
    profile_id: UUID,
    block_id: UUID | None,
    event: EnrichedEvent,
) -> AnalyticsEvent:
    """Insert one analytics event.

    The caller has already checked that the profile exists and, for clicks,
    that the block belongs to it. Database errors propagate; there is no
    retry and no deduplication.
    """
    row = AnalyticsEvent(
        id=uuid4(),
        profile_id=profile_id,
        block_id=block_id if event.event_type == "click" else None,
        event_type=event.event_type,
        utm_source=event.utm.utm_source,
        utm_medium=event.utm.utm_medium,
        utm_campaign=event.utm.utm_campaign,
        utm_content=event.utm.utm_content,
        utm_term=event.utm.utm_term,
        referrer=event.referrer,
        traffic_source=event.traffic_source,
        user_agent=event.user_agent,
        user_agent_parsed=event.user_agent_parsed.model_dump(),
        device_type=event.device_type,
        ip_hash=event.ip_hash,
        country=event.country,
        city=event.city,
    )
    session.add(row)
    await session.flush()

    logger.info(
        "Analytics event stored",
        event_id=str(row.id),
        event_type=event.event_type,
        profile_id=str(profile_id),
    )
    record_event_ingested(event.event_type)
    return row
