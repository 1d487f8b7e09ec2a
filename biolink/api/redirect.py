"""Redirect endpoint for short links."""

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from biolink.core.database import AsyncSessionDep
from biolink.core.deps import RedirectResolverDep
from biolink.core.observability import record_redirect
from biolink.core.rate_limit import RATE_LIMIT_REDIRECT, limiter

logger = structlog.get_logger()

router = APIRouter(prefix="/r", tags=["redirect"])


@router.get("/{short_code}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_short_link(
    request: Request,
    short_code: str,
    session: AsyncSessionDep,
    resolver: RedirectResolverDep,
) -> RedirectResponse:
    """Redirect a short code to its destination URL.

    The click counter is updated in the background; the redirect does not
    wait for it.
    """
    snapshot, source = await resolver.resolve(session, short_code)

    if snapshot is None:
        record_redirect(status.HTTP_404_NOT_FOUND, source)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short link not found",
        )

    record_redirect(status.HTTP_302_FOUND, source)
    return RedirectResponse(url=snapshot.full_url, status_code=status.HTTP_302_FOUND)
