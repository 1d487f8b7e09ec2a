"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, Request, status

from biolink.core.security import decode_access_token
from biolink.services.click_counter import ClickCountUpdater
from biolink.services.geoip import GeoLocator
from biolink.services.link_cache import LinkCache
from biolink.services.redirect import RedirectResolver

# Cookie name for auth token
AUTH_COOKIE_NAME = "biolink_token"


async def get_token(
    biolink_token: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the access token from the httpOnly cookie or a Bearer header."""
    if biolink_token:
        return biolink_token
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None


async def get_current_user_id(
    token: Annotated[str | None, Depends(get_token)],
) -> UUID:
    """Get the authenticated user's id from the access token.

    Raises HTTPException 401 if not authenticated.
    """
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data.user_id


def get_link_cache(request: Request) -> LinkCache:
    """Link cache created in the application lifespan."""
    return request.app.state.link_cache


def get_click_counter(request: Request) -> ClickCountUpdater:
    """Click count updater created in the application lifespan."""
    return request.app.state.click_counter


def get_geo_locator(request: Request) -> GeoLocator:
    """Geolocation backend created in the application lifespan."""
    return request.app.state.geo_locator


def get_redirect_resolver(
    cache: Annotated[LinkCache, Depends(get_link_cache)],
    click_counter: Annotated[ClickCountUpdater, Depends(get_click_counter)],
) -> RedirectResolver:
    """Redirect resolver over the shared cache and click counter."""
    return RedirectResolver(cache, click_counter)


# Type aliases for dependency injection
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
LinkCacheDep = Annotated[LinkCache, Depends(get_link_cache)]
GeoLocatorDep = Annotated[GeoLocator, Depends(get_geo_locator)]
RedirectResolverDep = Annotated[RedirectResolver, Depends(get_redirect_resolver)]
