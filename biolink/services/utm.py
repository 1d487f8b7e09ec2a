"""UTM parameter cleaning and URL building."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from biolink.schemas.link import UTM_KEYS, UtmParams


def clean_utm_params(params: UtmParams) -> UtmParams:
    """Strip whitespace and drop parameters that end up empty."""
    cleaned = {}
    for key in UTM_KEYS:
        value = getattr(params, key)
        if value and value.strip():
            cleaned[key] = value.strip()
    return UtmParams(**cleaned)


def has_utm_params(params: UtmParams) -> bool:
    """Check that at least one UTM parameter is set."""
    return any(getattr(params, key) for key in UTM_KEYS)


def build_utm_url(base_url: str, params: UtmParams) -> str:
    """Set the UTM parameters on ``base_url``, keeping its other query values.

    Raises:
        ValueError: If ``base_url`` is not an absolute URL.
    """
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        raise ValueError("Invalid base URL")

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    for key in UTM_KEYS:
        value = getattr(params, key)
        if value:
            query[key] = value

    return urlunsplit(parts._replace(query=urlencode(query)))


def profile_page_url(frontend_url: str, slug: str) -> str:
    """Public page of a profile."""
    return f"{frontend_url.rstrip('/')}/u/{slug}"


def short_url(public_base_url: str, short_code: str | None) -> str | None:
    """Public redirect URL for a short code, if the link has one."""
    if not short_code:
        return None
    return f"{public_base_url.rstrip('/')}/r/{short_code}"
