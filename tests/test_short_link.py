"""Short link directory: code generation, lookup and atomic click counting."""

import asyncio
import string
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from biolink.core.errors import ShortCodeGenerationError
from biolink.models import Profile, ShortLink
from biolink.schemas import UtmParams
from biolink.services import short_link as short_link_service

BASE62 = set(string.ascii_letters + string.digits)


def test_generated_codes_are_base62_of_length_7() -> None:
    codes = {short_link_service.generate_short_code() for _ in range(200)}
    assert all(len(code) == 7 for code in codes)
    assert all(set(code) <= BASE62 for code in codes)
    # 62^7 possibilities; 200 draws should not collide
    assert len(codes) == 200


@pytest.mark.asyncio
async def test_unique_code_generation_gives_up(
    db_session: AsyncSession,
    short_link: ShortLink,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(short_link_service, "generate_short_code", lambda: short_link.short_code)

    with pytest.raises(ShortCodeGenerationError) as exc_info:
        await short_link_service.generate_unique_short_code(db_session, max_attempts=10)

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_unique_code_generation_retries_on_collision(
    db_session: AsyncSession,
    short_link: ShortLink,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    candidates = iter([short_link.short_code, short_link.short_code, "Zz9Yy8X"])
    monkeypatch.setattr(short_link_service, "generate_short_code", lambda: next(candidates))

    assert await short_link_service.generate_unique_short_code(db_session) == "Zz9Yy8X"


@pytest.mark.asyncio
async def test_create_short_link(db_session: AsyncSession, profile: Profile) -> None:
    link = await short_link_service.create_short_link(
        db_session,
        user_id=profile.user_id,
        profile_id=profile.id,
        full_url="https://example.com/u/alice?utm_source=instagram",
        utm_params=UtmParams(utm_source="instagram"),
        with_short_code=True,
    )
    await db_session.commit()

    assert link.short_code is not None and len(link.short_code) == 7
    assert link.clicks == 0
    assert link.utm_params == {"utm_source": "instagram"}


@pytest.mark.asyncio
async def test_create_link_without_short_code(db_session: AsyncSession, profile: Profile) -> None:
    link = await short_link_service.create_short_link(
        db_session,
        user_id=profile.user_id,
        profile_id=profile.id,
        full_url="https://example.com/u/alice?utm_medium=email",
        utm_params=UtmParams(utm_medium="email"),
    )
    assert link.short_code is None


@pytest.mark.asyncio
async def test_resolve(db_session: AsyncSession, short_link: ShortLink) -> None:
    snapshot = await short_link_service.resolve(db_session, "abc1234")

    assert snapshot is not None
    assert snapshot.id == short_link.id
    assert snapshot.full_url == short_link.full_url
    assert snapshot.clicks == 0
    assert await short_link_service.resolve(db_session, "nope123") is None


@pytest.mark.asyncio
async def test_increment_returns_new_count(db_session: AsyncSession, short_link: ShortLink) -> None:
    assert await short_link_service.increment_clicks(db_session, short_link.id) == 1
    assert await short_link_service.increment_clicks(db_session, short_link.id) == 2
    await db_session.commit()

    assert await short_link_service.increment_clicks(db_session, uuid4()) is None


@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(
    session_factory: async_sessionmaker[AsyncSession],
    short_link: ShortLink,
) -> None:
    async def increment() -> None:
        async with session_factory() as session:
            await short_link_service.increment_clicks(session, short_link.id)
            await session.commit()

    await asyncio.gather(*(increment() for _ in range(10)))

    async with session_factory() as session:
        result = await session.execute(select(ShortLink.clicks).where(ShortLink.id == short_link.id))
        assert result.scalar_one() == 10
