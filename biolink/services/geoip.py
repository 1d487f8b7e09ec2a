"""GeoIP lookup for coarse visitor location.

Lookups are best effort: every failure path returns an empty
``GeoLocation`` instead of raising, so enrichment never fails a request.
"""

import ipaddress
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import geoip2.database
import geoip2.errors
import httpx
import maxminddb
import structlog

from biolink.core.config import get_settings

settings = get_settings()
logger = structlog.get_logger()

IP_API_URL = "http://ip-api.com/json/{ip}"


@dataclass(frozen=True)
class GeoLocation:
    """Country and city of a visitor; both None when unknown."""

    country: str | None = None  # ISO 3166-1 alpha-2
    city: str | None = None


def is_private_ip(ip_address: str) -> bool:
    """True for addresses no geolocation source can place.

    Covers private, loopback, link-local and reserved ranges, and strings
    that are not IP addresses at all.
    """
    try:
        address = ipaddress.ip_address(ip_address.strip())
    except ValueError:
        return True
    return not address.is_global


class GeoLocator(Protocol):
    """Anything that can resolve a raw IP address to a location."""

    async def lookup(self, ip_address: str | None) -> GeoLocation: ...

    def close(self) -> None: ...


class GeoIPService:
    """Geolocation from a MaxMind GeoIP2 City database.

    When no database is available and ``api_fallback`` is on, addresses are
    resolved through the ip-api.com JSON endpoint instead, which is only
    suitable for development traffic.
    """

    def __init__(
        self,
        geoip_database_path: str | None = None,
        api_fallback: bool | None = None,
        api_timeout: float = 2.0,
    ):
        self._api_fallback = (
            settings.geoip_api_fallback if api_fallback is None else api_fallback
        )
        self._api_timeout = api_timeout
        self._reader = self._open_reader(geoip_database_path or settings.geoip_database_path)

    @staticmethod
    def _open_reader(database_path: str) -> geoip2.database.Reader | None:
        if not database_path:
            return None

        path = Path(database_path)
        if not path.is_file():
            logger.warning("GeoIP2 database missing, lookups degraded", path=str(path))
            return None

        try:
            reader = geoip2.database.Reader(str(path))
        except (OSError, ValueError) as e:
            logger.error("GeoIP2 database unreadable", path=str(path), error=str(e))
            return None

        logger.info("GeoIP2 database opened", path=str(path))
        return reader

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        """Locate ``ip_address``; unknown for private addresses or on failure."""
        if not ip_address or is_private_ip(ip_address):
            return GeoLocation()

        if self._reader is not None:
            return self._lookup_database(ip_address)
        if self._api_fallback:
            return await self._lookup_ip_api(ip_address)
        return GeoLocation()

    def _lookup_database(self, ip_address: str) -> GeoLocation:
        try:
            city = self._reader.city(ip_address)
        except geoip2.errors.AddressNotFoundError:
            return GeoLocation()
        except (
            geoip2.errors.GeoIP2Error,
            maxminddb.InvalidDatabaseError,
            TypeError,  # not a City database
            ValueError,
        ) as e:
            logger.warning("GeoIP2 lookup failed", error=str(e), error_type=type(e).__name__)
            return GeoLocation()
        return GeoLocation(country=city.country.iso_code, city=city.city.name)

    async def _lookup_ip_api(self, ip_address: str) -> GeoLocation:
        """Look up location using IP-API.com.

        The free tier allows 45 requests per minute; production deployments
        should ship a GeoIP2 database instead.
        """
        try:
            async with httpx.AsyncClient(timeout=self._api_timeout) as client:
                response = await client.get(
                    IP_API_URL.format(ip=ip_address),
                    params={"fields": "status,countryCode,city"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("IP-API lookup failed", error=str(e))
            return GeoLocation()

        if data.get("status") != "success":
            return GeoLocation()
        return GeoLocation(
            country=data.get("countryCode") or None,
            city=data.get("city") or None,
        )

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None


class StaticGeoLocator:
    """Deterministic locator backed by a fixed table. Used in tests and local runs."""

    def __init__(self, table: dict[str, GeoLocation] | None = None):
        self._table = dict(table or {})
        self.lookups: list[str | None] = []

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        self.lookups.append(ip_address)
        if not ip_address or is_private_ip(ip_address):
            return GeoLocation()
        return self._table.get(ip_address, GeoLocation())

    def close(self) -> None:
        self._table.clear()
