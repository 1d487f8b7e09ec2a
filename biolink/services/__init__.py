"""Business logic services."""

from biolink.services.click_counter import ClickCountUpdater
from biolink.services.enrichment import EnrichedEvent, enrich_event
from biolink.services.geoip import GeoIPService, GeoLocation, GeoLocator, StaticGeoLocator
from biolink.services.link_cache import InMemoryLinkCache, LinkCache, RedisLinkCache
from biolink.services.redirect import RedirectResolver

__all__ = [
    # Click counting
    "ClickCountUpdater",
    # Enrichment
    "EnrichedEvent",
    "enrich_event",
    # GeoIP
    "GeoIPService",
    "GeoLocation",
    "GeoLocator",
    "StaticGeoLocator",
    # Link cache
    "InMemoryLinkCache",
    "LinkCache",
    "RedisLinkCache",
    # Redirects
    "RedirectResolver",
]
