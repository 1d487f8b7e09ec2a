"""Shared pytest fixtures: SQLite database, cache doubles and API client."""

import os

# Settings are read once at import time
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOW_TEST_IP_HEADER", "true")
os.environ.setdefault("IP_HASH_SALT", "")
os.environ.setdefault("GEOIP_API_FALLBACK", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

from collections.abc import AsyncGenerator, Callable  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from biolink.core.database import Base, get_async_session  # noqa: E402
from biolink.core.deps import get_click_counter, get_geo_locator, get_link_cache  # noqa: E402
from biolink.core.security import create_access_token  # noqa: E402
from biolink.main import app  # noqa: E402
from biolink.models import Profile, ProfileBlock, ShortLink  # noqa: E402
from biolink.services import (  # noqa: E402
    ClickCountUpdater,
    GeoLocation,
    InMemoryLinkCache,
    StaticGeoLocator,
)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    # A file database gives every session its own connection, like Postgres
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'biolink.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def link_cache() -> InMemoryLinkCache:
    return InMemoryLinkCache(ttl=600)


@pytest.fixture
def geo_locator() -> StaticGeoLocator:
    return StaticGeoLocator(
        {
            "8.8.8.8": GeoLocation(country="US", city="Mountain View"),
            "81.2.69.160": GeoLocation(country="GB", city="London"),
            "5.145.149.142": GeoLocation(country="DE", city="Berlin"),
        }
    )


@pytest_asyncio.fixture(scope="function")
async def click_counter(
    session_factory: async_sessionmaker[AsyncSession],
    link_cache: InMemoryLinkCache,
) -> AsyncGenerator[ClickCountUpdater, None]:
    updater = ClickCountUpdater(session_factory, link_cache, policy="invalidate", cache_ttl=600)
    yield updater
    await updater.stop()


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    link_cache: InMemoryLinkCache,
    click_counter: ClickCountUpdater,
    geo_locator: StaticGeoLocator,
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_link_cache] = lambda: link_cache
    app.dependency_overrides[get_click_counter] = lambda: click_counter
    app.dependency_overrides[get_geo_locator] = lambda: geo_locator

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_cookies() -> Callable[[UUID], dict[str, str]]:
    def _cookies(user_id: UUID) -> dict[str, str]:
        return {"biolink_token": create_access_token(user_id)}

    return _cookies


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture(scope="function")
async def profile(db_session: AsyncSession, owner_id: UUID) -> Profile:
    profile = Profile(user_id=owner_id, slug="alice", title="Alice")
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
def make_block(db_session: AsyncSession) -> Callable[..., Any]:
    async def _make_block(
        profile: Profile,
        config: dict[str, Any] | None = None,
        block_type: str = "link",
        position: int = 0,
    ) -> ProfileBlock:
        block = ProfileBlock(
            profile_id=profile.id,
            type=block_type,
            config=config or {"url": "https://example.com", "title": "Example"},
            position=position,
        )
        db_session.add(block)
        await db_session.commit()
        return block

    return _make_block


@pytest_asyncio.fixture(scope="function")
async def short_link(db_session: AsyncSession, profile: Profile) -> ShortLink:
    link = ShortLink(
        user_id=profile.user_id,
        profile_id=profile.id,
        short_code="abc1234",
        full_url="https://example.com/u/alice?utm_source=instagram",
        utm_params={"utm_source": "instagram"},
        clicks=0,
    )
    db_session.add(link)
    await db_session.commit()
    return link
