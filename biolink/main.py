"""Biolink API application: redirects, analytics ingestion and the dashboard API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from biolink.api.analytics import router as analytics_router
from biolink.api.redirect import router as redirect_router
from biolink.api.v1.router import router as v1_router
from biolink.core.config import get_settings
from biolink.core.database import async_session_factory, close_db
from biolink.core.errors import register_error_handlers
from biolink.core.middleware import SecurityHeadersMiddleware
from biolink.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from biolink.core.rate_limit import limiter
from biolink.core.redis import close_redis, create_redis_client
from biolink.services import ClickCountUpdater, GeoIPService, RedisLinkCache

settings = get_settings()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared Redis cache, click counter and geolocator.

    They live on ``app.state`` and reach routes through ``biolink.core.deps``.
    On shutdown pending click updates are drained before connections close.
    """
    logger.info(
        "Starting Biolink API",
        version=settings.app_version,
        click_cache_policy=settings.click_cache_policy,
    )

    redis_client = create_redis_client(settings)
    link_cache = RedisLinkCache(redis_client, ttl=settings.link_cache_ttl)
    click_counter = ClickCountUpdater(
        async_session_factory,
        link_cache,
        policy=settings.click_cache_policy,
        cache_ttl=settings.link_cache_ttl,
    )
    geo_locator = GeoIPService(
        geoip_database_path=settings.geoip_database_path or None,
        api_fallback=settings.geoip_api_fallback,
    )

    app.state.link_cache = link_cache
    app.state.click_counter = click_counter
    app.state.geo_locator = geo_locator

    yield

    logger.info("Shutting down Biolink API", pending_click_updates=click_counter.pending)
    await click_counter.stop()
    geo_locator.close()
    await close_redis(redis_client)
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Link-in-bio redirects and analytics",
    lifespan=lifespan,
)

setup_observability(app)
register_error_handlers(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# The last middleware added runs first on the way in
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=not settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
)

app.include_router(v1_router)
app.include_router(analytics_router)
app.include_router(redirect_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {"message": "Welcome to Biolink API", "version": settings.app_version}
