"""Profile overview aggregation and endpoint."""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.aggregators import period_window, resolve_period, summarize
from biolink.core.database import utcnow
from biolink.models import AnalyticsEvent, Profile, ProfileBlock

NOW = datetime(2026, 10, 19, 15, 30)


def make_event(
    profile: Profile,
    event_type: str,
    created_at: datetime,
    ip_hash: str = "a" * 64,
    block: ProfileBlock | None = None,
    traffic_source: str | None = "direct",
    device_type: str | None = "desktop",
    country: str | None = None,
) -> AnalyticsEvent:
    return AnalyticsEvent(
        id=uuid4(),
        profile_id=profile.id,
        block_id=block.id if block else None,
        event_type=event_type,
        ip_hash=ip_hash,
        traffic_source=traffic_source,
        device_type=device_type,
        country=country,
        created_at=created_at,
    )


@pytest.mark.parametrize(
    ("period", "days"),
    [("1", 1), ("7", 7), ("30", 30), ("2", 7), ("3", 30), (None, 7), ("90", 7), ("abc", 7)],
)
def test_resolve_period(period: str | None, days: int) -> None:
    assert resolve_period(period) == days


def test_period_window_covers_whole_days() -> None:
    start, end = period_window(7, NOW)
    assert start == datetime(2026, 10, 13, 0, 0, 0)
    assert end == datetime(2026, 10, 19, 23, 59, 59, 999999)

    start, _ = period_window(1, datetime(2026, 10, 19, 1, 0, tzinfo=timezone(timedelta(hours=5))))
    # 01:00 at UTC+5 is still the previous day in UTC
    assert start == datetime(2026, 10, 18)


@pytest.mark.asyncio
async def test_empty_profile_has_zero_filled_series(db_session: AsyncSession, profile: Profile) -> None:
    overview = await summarize(db_session, profile.id, "7", now=NOW)

    assert overview.overview.total_views == 0
    assert overview.overview.total_clicks == 0
    assert overview.overview.unique_visitors == 0
    assert overview.overview.click_rate == 0
    assert [point.date for point in overview.views_chart] == [
        "2026-10-13",
        "2026-10-14",
        "2026-10-15",
        "2026-10-16",
        "2026-10-17",
        "2026-10-18",
        "2026-10-19",
    ]
    assert all(point.views == 0 and point.unique_visitors == 0 for point in overview.views_chart)
    assert overview.top_links == []
    assert overview.traffic_sources == []
    assert overview.devices == []
    assert overview.top_countries == []


@pytest.mark.asyncio
@pytest.mark.parametrize(("period", "length"), [("1", 1), ("30", 30), ("3", 30), ("bogus", 7)])
async def test_series_length_follows_period(
    db_session: AsyncSession,
    profile: Profile,
    period: str,
    length: int,
) -> None:
    overview = await summarize(db_session, profile.id, period, now=NOW)
    assert len(overview.views_chart) == length
    assert overview.views_chart[-1].date == "2026-10-19"


@pytest.mark.asyncio
async def test_summary(db_session: AsyncSession, profile: Profile, make_block) -> None:
    shop = await make_block(profile, {"url": "https://shop.example.com", "title": "Shop"}, position=0)
    header = await make_block(profile, {"text": "Hello"}, block_type="header", position=1)
    await make_block(profile, {"url": "https://blog.example.com", "title": "Blog"}, position=2)

    today = NOW.replace(hour=9)
    ip_a, ip_b, ip_c, ip_d = "a" * 64, "b" * 64, "c" * 64, "d" * 64
    db_session.add_all(
        [
            # Same visitor twice today
            make_event(profile, "view", today, ip_a, traffic_source="instagram", device_type="mobile", country="US"),
            make_event(profile, "view", today, ip_a, traffic_source="instagram", device_type="mobile", country="US"),
            make_event(profile, "view", today, ip_b, traffic_source="google", device_type="desktop", country="GB"),
            make_event(profile, "view", today - timedelta(days=3), ip_c, traffic_source=None, device_type="desktop"),
            # Outside the 7 day window
            make_event(profile, "view", today - timedelta(days=8), ip_d),
            make_event(profile, "click", today, ip_a, block=shop),
            make_event(profile, "click", today, ip_b, block=shop),
            make_event(profile, "click", today - timedelta(days=2), ip_c, block=header),
            make_event(profile, "click", today - timedelta(days=10), ip_c, block=header),
        ]
    )
    await db_session.commit()

    overview = await summarize(db_session, profile.id, "7", now=NOW)

    totals = overview.overview
    assert totals.total_views == 4
    assert totals.unique_visitors == 3
    assert totals.total_clicks == 3
    assert totals.click_rate == 75.0
    assert totals.period.from_ == datetime(2026, 10, 13, tzinfo=timezone.utc)
    assert totals.period.to == datetime(2026, 10, 19, 23, 59, 59, 999999, tzinfo=timezone.utc)

    chart = {point.date: (point.views, point.unique_visitors) for point in overview.views_chart}
    assert chart["2026-10-19"] == (3, 2)
    assert chart["2026-10-16"] == (1, 1)
    assert sum(views for views, _ in chart.values()) == 4

    assert [(link.id, link.title, link.url, link.clicks, link.click_rate) for link in overview.top_links] == [
        (shop.id, "Shop", "https://shop.example.com", 2, 50.0),
        (header.id, "Hello", "", 1, 25.0),
    ]

    # Missing sources fold into "other"; ties are ordered by name
    assert [(s.source, s.views, s.percentage) for s in overview.traffic_sources] == [
        ("instagram", 2, 50.0),
        ("google", 1, 25.0),
        ("other", 1, 25.0),
    ]
    assert [(d.type, d.views, d.percentage) for d in overview.devices] == [
        ("desktop", 2, 50.0),
        ("mobile", 2, 50.0),
    ]
    assert [(c.country, c.views, c.percentage) for c in overview.top_countries] == [
        ("US", 2, 50.0),
        ("GB", 1, 25.0),
    ]


@pytest.mark.asyncio
async def test_top_links_limited_to_five(db_session: AsyncSession, profile: Profile, make_block) -> None:
    today = NOW.replace(hour=9)
    for position in range(7):
        block = await make_block(
            profile,
            {"url": f"https://example.com/{position}", "title": f"Link {position}"},
            position=position,
        )
        db_session.add_all(make_event(profile, "click", today, block=block) for _ in range(position + 1))
    await db_session.commit()

    overview = await summarize(db_session, profile.id, "7", now=NOW)

    assert [link.title for link in overview.top_links] == ["Link 6", "Link 5", "Link 4", "Link 3", "Link 2"]
    # No views means no click rate
    assert all(link.click_rate == 0 for link in overview.top_links)


# ============================================================================
# Endpoint
# ============================================================================


async def add_view(db_session: AsyncSession, profile: Profile) -> None:
    db_session.add(make_event(profile, "view", utcnow(), traffic_source="instagram", country="US"))
    await db_session.commit()


@pytest.mark.asyncio
async def test_overview_requires_authentication(client: AsyncClient, profile: Profile) -> None:
    response = await client.get("/analytics/overview", params={"profileId": str(profile.id)})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_overview_rejects_invalid_token(client: AsyncClient, profile: Profile) -> None:
    response = await client.get(
        "/analytics/overview",
        params={"profileId": str(profile.id)},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_overview_forbidden_for_other_user(client: AsyncClient, profile: Profile, auth_cookies) -> None:
    client.cookies.update(auth_cookies(uuid4()))

    response = await client.get("/analytics/overview", params={"profileId": str(profile.id)})

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: You don't have access to this profile's analytics"}


@pytest.mark.asyncio
async def test_overview_unknown_profile(client: AsyncClient, owner_id: UUID, auth_cookies) -> None:
    client.cookies.update(auth_cookies(owner_id))

    response = await client.get("/analytics/overview", params={"profileId": str(uuid4())})

    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


@pytest.mark.asyncio
async def test_overview_requires_profile_id(client: AsyncClient, owner_id: UUID, auth_cookies) -> None:
    client.cookies.update(auth_cookies(owner_id))

    response = await client.get("/analytics/overview")

    assert response.status_code == 400
    assert response.json() == {"error": "profileId is required"}


@pytest.mark.asyncio
async def test_overview_for_owner(
    client: AsyncClient,
    db_session: AsyncSession,
    profile: Profile,
    owner_id: UUID,
    auth_cookies,
) -> None:
    await add_view(db_session, profile)
    client.cookies.update(auth_cookies(owner_id))

    response = await client.get("/analytics/overview", params={"profileId": str(profile.id), "period": "1"})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"overview", "viewsChart", "topLinks", "trafficSources", "devices", "topCountries"}
    assert body["overview"]["totalViews"] == 1
    assert body["overview"]["uniqueVisitors"] == 1
    assert body["overview"]["clickRate"] == 0
    assert set(body["overview"]["period"]) == {"from", "to"}
    assert len(body["viewsChart"]) == 1
    assert body["viewsChart"][0] == {"date": utcnow().date().isoformat(), "views": 1, "uniqueVisitors": 1}
    assert body["trafficSources"] == [{"source": "instagram", "views": 1, "percentage": 100.0}]
    assert body["topCountries"] == [{"country": "US", "views": 1, "percentage": 100.0}]


@pytest.mark.asyncio
async def test_overview_accepts_bearer_token(
    client: AsyncClient,
    profile: Profile,
    owner_id: UUID,
    auth_cookies,
) -> None:
    token = auth_cookies(owner_id)["biolink_token"]

    response = await client.get(
        "/analytics/overview",
        params={"profileId": str(profile.id)},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    assert len(response.json()["viewsChart"]) == 7
