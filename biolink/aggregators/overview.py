"""On-demand aggregation of raw analytics events into a profile overview."""

import time
from collections import defaultdict
from datetime import date, datetime, time as dt_time, timedelta, timezone
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.core.observability import record_overview_duration
from biolink.models.analytics_event import AnalyticsEvent
from biolink.schemas.analytics import (
    CountryStats,
    DeviceStats,
    OverviewPeriod,
    OverviewTotals,
    ProfileOverview,
    TopLink,
    TrafficSourceStats,
    ViewsChartPoint,
)
from biolink.schemas.blocks import block_label
from biolink.services.profile import get_profile_blocks

logger = structlog.get_logger()

DEFAULT_PERIOD_DAYS = 7
TOP_LINKS_LIMIT = 5
TOP_COUNTRIES_LIMIT = 5

# "2" and "3" are the selectors older dashboards send for 7 and 30 days
PERIOD_DAYS = {
    "1": 1,
    "7": 7,
    "30": 30,
    "2": 7,
    "3": 30,
}


def resolve_period(period: str | None) -> int:
    """Number of days covered by a period selector. Unknown values mean 7."""
    return PERIOD_DAYS.get((period or "").strip(), DEFAULT_PERIOD_DAYS)


def period_window(days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    """UTC window of ``days`` whole calendar days ending today.

    Returns naive UTC datetimes, matching how event timestamps are stored.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    today = now.date()
    start = datetime.combine(today - timedelta(days=days - 1), dt_time.min)
    end = datetime.combine(today, dt_time.max)
    return start, end


def _percentage(part: int, total: int, digits: int = 1) -> float:
    return round(part / total * 100, digits) if total > 0 else 0


def _ranked(counts: dict[str, int]) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


async def _grouped_view_counts(
    session: AsyncSession,
    column,
    window_filter,
) -> dict[str | None, int]:
    result = await session.execute(
        select(column, func.count())
        .where(window_filter, AnalyticsEvent.event_type == "view")
        .group_by(column)
    )
    return {key: count for key, count in result.all()}


def _fold_missing(counts: dict[str | None, int], label: str) -> dict[str, int]:
    folded: dict[str, int] = defaultdict(int)
    for key, count in counts.items():
        folded[key or label] += count
    return dict(folded)


async def summarize(
    session: AsyncSession,
    profile_id: UUID,
    period: str | None = None,
    now: datetime | None = None,
) -> ProfileOverview:
    """Compute the dashboard overview for a profile.

    Args:
        session: Database session.
        profile_id: Profile whose events are aggregated. Existence and
            ownership are checked by the caller.
        period: Period selector ("1", "7" or "30" days).
        now: Reference time, for deterministic tests.
    """
    started = time.perf_counter()

    days = resolve_period(period)
    window_start, window_end = period_window(days, now)

    in_window = and_(
        AnalyticsEvent.profile_id == profile_id,
        AnalyticsEvent.created_at >= window_start,
        AnalyticsEvent.created_at <= window_end,
    )

    # Totals
    totals_result = await session.execute(
        select(AnalyticsEvent.event_type, func.count())
        .where(in_window)
        .group_by(AnalyticsEvent.event_type)
    )
    totals = dict(totals_result.all())
    total_views = totals.get("view", 0)
    total_clicks = totals.get("click", 0)

    unique_result = await session.execute(
        select(func.count(func.distinct(AnalyticsEvent.ip_hash))).where(
            in_window,
            AnalyticsEvent.event_type == "view",
        )
    )
    unique_visitors = unique_result.scalar() or 0

    # Daily views, bucketed here so the query stays portable across databases
    views_result = await session.execute(
        select(AnalyticsEvent.created_at, AnalyticsEvent.ip_hash).where(
            in_window,
            AnalyticsEvent.event_type == "view",
        )
    )
    views_by_day: dict[date, int] = defaultdict(int)
    visitors_by_day: dict[date, set[str]] = defaultdict(set)
    for created_at, ip_hash in views_result.all():
        day = created_at.date()
        views_by_day[day] += 1
        visitors_by_day[day].add(ip_hash)

    views_chart = []
    for offset in range(days):
        day = window_start.date() + timedelta(days=offset)
        views_chart.append(
            ViewsChartPoint(
                date=day.isoformat(),
                views=views_by_day.get(day, 0),
                unique_visitors=len(visitors_by_day.get(day, ())),
            )
        )

    # Top links
    clicks_result = await session.execute(
        select(AnalyticsEvent.block_id, func.count())
        .where(
            in_window,
            AnalyticsEvent.event_type == "click",
            AnalyticsEvent.block_id.is_not(None),
        )
        .group_by(AnalyticsEvent.block_id)
    )
    clicks_by_block = dict(clicks_result.all())

    top_links: list[TopLink] = []
    if clicks_by_block:
        for block in await get_profile_blocks(session, profile_id):
            clicks = clicks_by_block.get(block.id, 0)
            if clicks <= 0:
                continue
            title, url = block_label(block)
            top_links.append(
                TopLink(
                    id=block.id,
                    title=title,
                    url=url,
                    clicks=clicks,
                    click_rate=_percentage(clicks, total_views),
                )
            )
        # Stable sort keeps page order among equal counts
        top_links.sort(key=lambda link: -link.clicks)
        top_links = top_links[:TOP_LINKS_LIMIT]

    # Breakdowns over views
    sources = _fold_missing(
        await _grouped_view_counts(session, AnalyticsEvent.traffic_source, in_window),
        "other",
    )
    devices = _fold_missing(
        await _grouped_view_counts(session, AnalyticsEvent.device_type, in_window),
        "other",
    )
    countries = _fold_missing(
        await _grouped_view_counts(session, AnalyticsEvent.country, in_window),
        "unknown",
    )
    countries.pop("unknown", None)

    overview = ProfileOverview(
        overview=OverviewTotals(
            total_views=total_views,
            unique_visitors=unique_visitors,
            total_clicks=total_clicks,
            click_rate=_percentage(total_clicks, total_views, digits=2),
            period=OverviewPeriod(
                from_=window_start.replace(tzinfo=timezone.utc),
                to=window_end.replace(tzinfo=timezone.utc),
            ),
        ),
        views_chart=views_chart,
        top_links=top_links,
        traffic_sources=[
            TrafficSourceStats(source=source, views=views, percentage=_percentage(views, total_views))
            for source, views in _ranked(sources)
        ],
        devices=[
            DeviceStats(type=device, views=views, percentage=_percentage(views, total_views))
            for device, views in _ranked(devices)
        ],
        top_countries=[
            CountryStats(country=country, views=views, percentage=_percentage(views, total_views))
            for country, views in _ranked(countries)[:TOP_COUNTRIES_LIMIT]
        ],
    )

    duration = time.perf_counter() - started
    record_overview_duration(duration)
    logger.info(
        "Overview computed",
        profile_id=str(profile_id),
        days=days,
        total_views=total_views,
        total_clicks=total_clicks,
        duration_ms=round(duration * 1000, 2),
    )
    return overview
