"""Background propagation of redirect clicks to the durable counter."""

import asyncio
from typing import Literal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from biolink.core.observability import record_click_update
from biolink.schemas.link import LinkSnapshot
from biolink.services.link_cache import DEFAULT_TTL, LinkCache
from biolink.services.short_link import increment_clicks, resolve as resolve_link

logger = structlog.get_logger()

CachePolicy = Literal["refresh", "invalidate"]


class ClickCountUpdater:
    """Runs click counter updates off the request path.

    Each scheduled update opens its own session, performs the atomic
    increment, commits, and then reconciles the cached snapshot according to
    ``policy``:

    * ``invalidate`` (default): delete the snapshot; the next redirect
      reloads it from the database.
    * ``refresh``: re-read the row after the increment and cache it, so the
      next redirect is still a cache hit. The resolve-time snapshot is never
      written back, and a lower count never replaces a higher cached one.

    Failures are logged and dropped, never retried.

    Usage:
        updater = ClickCountUpdater(async_session_factory, cache)
        updater.schedule(snapshot, "abc1234")
        ...
        await updater.stop()  # Waits for pending updates
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: LinkCache,
        policy: CachePolicy = "invalidate",
        cache_ttl: int = DEFAULT_TTL,
    ):
        self._session_factory = session_factory
        self._cache = cache
        self._policy = policy
        self._cache_ttl = cache_ttl
        self._tasks: set[asyncio.Task[None]] = set()
        self._accepting = True
        self._updates_ok = 0
        self._updates_failed = 0

    @property
    def pending(self) -> int:
        """Number of updates not yet finished."""
        return len(self._tasks)

    def schedule(self, snapshot: LinkSnapshot, short_code: str) -> asyncio.Task[None] | None:
        """Start a counter update for one redirect and return immediately."""
        if not self._accepting:
            logger.warning(
                "Click update dropped - updater stopped",
                link_id=str(snapshot.id),
                short_code=short_code,
            )
            record_click_update("dropped")
            return None

        task = asyncio.create_task(
            self._apply(snapshot, short_code),
            name=f"click-update:{short_code}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Click update cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            # _apply handles its own errors; anything here is a bug
            logger.error("Click update crashed", task=task.get_name(), error=str(exc))

    async def _apply(self, snapshot: LinkSnapshot, short_code: str) -> None:
        try:
            async with self._session_factory() as session:
                clicks = await increment_clicks(session, snapshot.id)
                await session.commit()
                # The resolve-time snapshot may predate an edit of the link
                fresh = (
                    await resolve_link(session, short_code)
                    if clicks is not None and self._policy == "refresh"
                    else None
                )
        except Exception as e:
            self._updates_failed += 1
            logger.error(
                "Failed to increment click count",
                link_id=str(snapshot.id),
                short_code=short_code,
                error=str(e),
            )
            record_click_update("failed")
            return

        if clicks is None:
            # Link deleted after it was resolved; drop any stale snapshot
            logger.info("Click update skipped - link gone", short_code=short_code)
            await self._cache.delete(short_code)
            record_click_update("missing")
            return

        if fresh is not None and fresh.id == snapshot.id:
            await self._refresh(short_code, fresh)
        else:
            await self._cache.delete(short_code)

        self._updates_ok += 1
        logger.debug("Click count updated", short_code=short_code, clicks=clicks)
        record_click_update("ok")

    async def _refresh(self, short_code: str, fresh: LinkSnapshot) -> None:
        cached = await self._cache.get(short_code)
        if cached is not None and cached.id == fresh.id and cached.clicks > fresh.clicks:
            # A later update already cached a higher count
            return
        await self._cache.set(short_code, fresh, self._cache_ttl)

    async def drain(self) -> None:
        """Wait until every scheduled update has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Stop accepting updates and wait for pending ones."""
        self._accepting = False
        await self.drain()
        logger.info(
            "Click count updater stopped",
            updates_ok=self._updates_ok,
            updates_failed=self._updates_failed,
        )
