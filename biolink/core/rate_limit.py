"""Per-client request limits (slowapi, Redis-backed)."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from biolink.core.config import get_settings
from biolink.services.enrichment import UNKNOWN_CLIENT_IP, get_client_ip

settings = get_settings()


def rate_limit_key(request: Request) -> str:
    """Bucket requests by the visitor address analytics would record.

    Falls back to the socket peer when no proxy header is present.
    """
    client_ip = get_client_ip(request.headers)
    if client_ip == UNKNOWN_CLIENT_IP:
        return get_remote_address(request)
    return client_ip


limiter = Limiter(
    key_func=rate_limit_key,
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri or settings.redis_url,
    strategy="fixed-window",
    # Limiter storage outages must not block redirects
    swallow_errors=True,
)

# Redirects are the hot path
RATE_LIMIT_REDIRECT = "1000/minute"

# Called by public profile pages
RATE_LIMIT_ANALYTICS = "100/minute"

# Authenticated dashboard endpoints
RATE_LIMIT_API = "100/minute"
