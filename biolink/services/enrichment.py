"""Derive analytics attributes from an inbound request.

Everything here is a pure function of the request headers and the optional
destination URL, except the location lookup which is delegated to a
``GeoLocator``. Nothing in this module raises on bad input: unparseable
values degrade to ``None`` / "unknown" fields.
"""

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import parse_qs, urlsplit

import structlog
from ua_parser import parse as parse_ua

from biolink.schemas.analytics import UserAgentInfo
from biolink.schemas.link import UTM_KEYS, UtmParams
from biolink.services.geoip import GeoLocation, GeoLocator

logger = structlog.get_logger()

EventType = Literal["view", "click"]
DeviceType = Literal["mobile", "desktop", "tablet"]

# Used when no proxy header carries the client address. It is a loopback
# address, so geolocation skips it.
UNKNOWN_CLIENT_IP = "127.0.0.1"

TABLET_MARKERS = ("ipad", "tablet")
MOBILE_MARKERS = ("mobile", "iphone", "ipod", "android", "blackberry", "windows phone")

# (source, domains) in match order; a referrer host matches a domain when it
# equals it or is a subdomain of it.
SOCIAL_SOURCES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("instagram", ("instagram.com",)),
    ("tiktok", ("tiktok.com",)),
    ("twitter", ("twitter.com", "x.com", "t.co")),
    ("facebook", ("facebook.com", "fb.com")),
    ("linkedin", ("linkedin.com", "lnkd.in")),
    ("youtube", ("youtube.com", "youtu.be")),
    ("reddit", ("reddit.com",)),
    ("pinterest", ("pinterest.com",)),
    ("telegram", ("telegram.org", "t.me")),
    ("whatsapp", ("whatsapp.com",)),
    ("vk", ("vk.com",)),
)
SEARCH_SOURCES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("google", ("google.com",)),
    ("bing", ("bing.com",)),
    ("yahoo", ("yahoo.com",)),
    ("duckduckgo", ("duckduckgo.com",)),
)


@dataclass
class EnrichedEvent:
    """An analytics event ready to be written to the store."""

    event_type: EventType
    ip_hash: str
    device_type: DeviceType
    traffic_source: str
    utm: UtmParams
    referrer: str | None = None
    user_agent: str | None = None
    user_agent_parsed: UserAgentInfo = field(default_factory=UserAgentInfo)
    country: str | None = None
    city: str | None = None


def get_client_ip(headers: Mapping[str, str], allow_test_header: bool = False) -> str:
    """Extract the client IP address from proxy headers.

    Order: ``X-Forwarded-For`` (first hop), ``X-Real-IP``,
    ``CF-Connecting-IP``; otherwise ``UNKNOWN_CLIENT_IP``. Outside
    production an ``X-Test-IP`` header may override all of them.
    """
    if allow_test_header:
        test_ip = headers.get("x-test-ip")
        if test_ip:
            return test_ip.strip()

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    cf_connecting_ip = headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    return UNKNOWN_CLIENT_IP


def hash_ip_address(ip_address: str, salt: str = "") -> str:
    """Return the hex-encoded SHA-256 digest of the (salted) IP address.

    Equal inputs give equal digests, which is what unique visitor counting
    relies on; the address itself cannot be recovered.
    """
    return hashlib.sha256(f"{salt}{ip_address}".encode("utf-8")).hexdigest()


def get_device_type(user_agent: str | None) -> DeviceType:
    """Classify a user agent as tablet, mobile or desktop.

    Tablets are checked first: Android tablets do not send "mobile".
    """
    ua = (user_agent or "").lower()

    if any(marker in ua for marker in TABLET_MARKERS) or (
        "android" in ua and "mobile" not in ua
    ):
        return "tablet"

    if any(marker in ua for marker in MOBILE_MARKERS):
        return "mobile"

    return "desktop"


def _version(*parts: str | None) -> str | None:
    present = [part for part in parts if part]
    return ".".join(present) or None


def parse_user_agent(user_agent: str | None) -> UserAgentInfo:
    """Parse browser, OS and device from a user agent string."""
    if not user_agent:
        return UserAgentInfo()

    try:
        result = parse_ua(user_agent)
    except Exception as e:  # parser internals are not part of our contract
        logger.debug("User agent parsing failed", error=str(e))
        return UserAgentInfo()

    info = UserAgentInfo()
    if result.user_agent is not None and result.user_agent.family != "Other":
        info.browser = result.user_agent.family
        info.browser_version = _version(result.user_agent.major, result.user_agent.minor)
    if result.os is not None and result.os.family != "Other":
        info.os = result.os.family
        info.os_version = _version(result.os.major, result.os.minor, result.os.patch)
    if result.device is not None and result.device.family != "Other":
        info.device = result.device.family
    return info


def _referrer_host(referrer: str) -> str:
    value = referrer.strip().lower()
    if "//" not in value:
        value = f"//{value}"
    try:
        host = urlsplit(value).hostname or ""
    except ValueError:
        host = ""
    return host.removeprefix("www.")


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def get_traffic_source(referrer: str | None, utm_source: str | None = None) -> str:
    """Classify where a visit came from.

    A UTM source on the destination URL wins. Otherwise the referrer host is
    matched against known social platforms and search engines; no referrer
    means "direct" and anything unrecognised is "other".
    """
    if utm_source and utm_source.strip():
        return utm_source.strip().lower()

    if not referrer or not referrer.strip():
        return "direct"

    host = _referrer_host(referrer)
    if not host:
        return "other"

    for source, domains in SOCIAL_SOURCES + SEARCH_SOURCES:
        if any(_host_matches(host, domain) for domain in domains):
            return source

    # Yandex runs one search domain per country (yandex.ru, yandex.com.tr, ...)
    if host.startswith("yandex.") or ".yandex." in host:
        return "yandex"

    return "other"


def extract_utm_params(url: str | None) -> UtmParams:
    """Read the five UTM parameters from a URL's query string.

    Anything that is not an absolute URL yields all-absent fields.
    """
    if not url:
        return UtmParams()

    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            return UtmParams()
        query = parse_qs(parts.query)
    except ValueError:
        return UtmParams()

    values = {key: query[key][0] for key in UTM_KEYS if query.get(key) and query[key][0]}
    return UtmParams(**{key: value[:255] for key, value in values.items()})


async def enrich_event(
    headers: Mapping[str, str],
    event_type: EventType,
    geo_locator: GeoLocator,
    url: str | None = None,
    ip_hash_salt: str = "",
    allow_test_ip_header: bool = False,
) -> EnrichedEvent:
    """Build the enriched event for one inbound view or click.

    ``headers`` must be case-insensitive (Starlette's ``Headers`` is) or use
    lower-case keys.
    """
    user_agent = headers.get("user-agent") or ""
    referrer = headers.get("referer") or headers.get("referrer") or None
    client_ip = get_client_ip(headers, allow_test_header=allow_test_ip_header)
    utm = extract_utm_params(url)

    # Geolocation needs the raw address, so it happens before hashing
    try:
        location = await geo_locator.lookup(client_ip)
    except Exception as e:
        # A broken locator costs the location, never the event
        logger.warning("Geolocation failed", error=str(e), error_type=type(e).__name__)
        location = GeoLocation()

    return EnrichedEvent(
        event_type=event_type,
        ip_hash=hash_ip_address(client_ip, ip_hash_salt),
        device_type=get_device_type(user_agent),
        traffic_source=get_traffic_source(referrer, utm.utm_source),
        utm=utm,
        referrer=referrer,
        user_agent=user_agent or None,
        user_agent_parsed=parse_user_agent(user_agent),
        country=location.country,
        city=location.city,
    )
