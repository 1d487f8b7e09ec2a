"""Cache-aside store of short link snapshots for the redirect hot path.

The cache is advisory: every backend failure is logged, counted and then
treated as a miss (``get``) or a no-op (``set``/``delete``), so redirects
keep working from the database when Redis is down.
"""

import json
import time
from collections.abc import Callable
from typing import Protocol

import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from biolink.core.observability import record_cache_error
from biolink.core.redis import link_cache_key
from biolink.schemas.link import LinkSnapshot

logger = structlog.get_logger()

DEFAULT_TTL = 600  # 10 minutes


class LinkCache(Protocol):
    """Where the redirect resolver keeps link snapshots."""

    async def get(self, short_code: str) -> LinkSnapshot | None: ...

    async def set(self, short_code: str, snapshot: LinkSnapshot, ttl: int | None = None) -> None: ...

    async def delete(self, short_code: str) -> None: ...


def _dump(snapshot: LinkSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


def _load(raw: str) -> LinkSnapshot:
    return LinkSnapshot.model_validate(json.loads(raw))


class RedisLinkCache:
    """Redis-backed link cache storing ``link:{code}`` -> JSON snapshot."""

    def __init__(self, client: redis.Redis, ttl: int = DEFAULT_TTL):
        self._client = client
        self._ttl = ttl

    async def get(self, short_code: str) -> LinkSnapshot | None:
        """Get a cached snapshot. Any failure counts as a miss."""
        key = link_cache_key(short_code)
        try:
            raw = await self._client.get(key)
            if raw is None:
                return None
            return _load(raw)
        except (redis.RedisError, OSError) as e:
            logger.warning("Link cache read failed", short_code=short_code, error=str(e))
            record_cache_error("get")
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Corrupt link cache entry", short_code=short_code, error=str(e))
            record_cache_error("get")
        return None

    async def set(self, short_code: str, snapshot: LinkSnapshot, ttl: int | None = None) -> None:
        """Cache a snapshot with a TTL."""
        try:
            await self._client.setex(link_cache_key(short_code), ttl or self._ttl, _dump(snapshot))
            logger.debug("Link cached", short_code=short_code, ttl=ttl or self._ttl)
        except (redis.RedisError, OSError) as e:
            logger.warning("Link cache write failed", short_code=short_code, error=str(e))
            record_cache_error("set")

    async def delete(self, short_code: str) -> None:
        """Drop a snapshot so the next redirect reads the database."""
        try:
            await self._client.delete(link_cache_key(short_code))
            logger.debug("Link cache invalidated", short_code=short_code)
        except (redis.RedisError, OSError) as e:
            logger.warning("Link cache delete failed", short_code=short_code, error=str(e))
            record_cache_error("delete")


class InMemoryLinkCache:
    """Process-local link cache with the same contract as ``RedisLinkCache``.

    Entries are stored serialized, exactly as Redis would hold them, and
    expire according to ``clock`` (``time.monotonic`` by default). Useful for
    tests and single-process local runs.
    """

    def __init__(
        self,
        ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, short_code: str) -> LinkSnapshot | None:
        key = link_cache_key(short_code)
        entry = self._entries.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        try:
            return _load(raw)
        except (ValueError, ValidationError) as e:
            logger.warning("Corrupt link cache entry", short_code=short_code, error=str(e))
            record_cache_error("get")
            return None

    async def set(self, short_code: str, snapshot: LinkSnapshot, ttl: int | None = None) -> None:
        self._entries[link_cache_key(short_code)] = (
            _dump(snapshot),
            self._clock() + (ttl or self._ttl),
        )

    async def delete(self, short_code: str) -> None:
        self._entries.pop(link_cache_key(short_code), None)

    def set_raw(self, short_code: str, raw: str, ttl: int | None = None) -> None:
        """Store an arbitrary payload, e.g. to simulate a corrupt entry."""
        self._entries[link_cache_key(short_code)] = (raw, self._clock() + (ttl or self._ttl))

    def __contains__(self, short_code: str) -> bool:
        entry = self._entries.get(link_cache_key(short_code))
        return entry is not None and self._clock() < entry[1]

    def __len__(self) -> int:
        return len(self._entries)
