"""Short code resolution for the redirect endpoint."""

from typing import Literal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from biolink.schemas.link import LinkSnapshot
from biolink.services import short_link as short_link_service
from biolink.services.click_counter import ClickCountUpdater
from biolink.services.link_cache import LinkCache

logger = structlog.get_logger()

ResolutionSource = Literal["cache", "database", "none"]


class RedirectResolver:
    """Resolves a short code through the cache, falling back to the database.

    Flow:
    1. Check the link cache
    2. On a miss, query the database and cache the snapshot
    3. Schedule the click counter update without waiting for it

    Unknown codes are never cached.
    """

    def __init__(self, cache: LinkCache, click_counter: ClickCountUpdater):
        self._cache = cache
        self._click_counter = click_counter

    async def resolve(
        self,
        session: AsyncSession,
        short_code: str,
    ) -> tuple[LinkSnapshot | None, ResolutionSource]:
        """Return the snapshot for ``short_code`` and where it came from."""
        snapshot = await self._cache.get(short_code)
        if snapshot is not None:
            logger.info("Redirect from cache", short_code=short_code, link_id=str(snapshot.id))
            self._click_counter.schedule(snapshot, short_code)
            return snapshot, "cache"

        snapshot = await short_link_service.resolve(session, short_code)
        if snapshot is None:
            logger.info("Redirect failed - link not found", short_code=short_code)
            return None, "none"

        await self._cache.set(short_code, snapshot)
        logger.info("Redirect from database", short_code=short_code, link_id=str(snapshot.id))
        self._click_counter.schedule(snapshot, short_code)
        return snapshot, "database"
