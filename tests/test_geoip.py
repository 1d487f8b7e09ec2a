"""Geolocation backends."""

import geoip2.errors
import httpx
import maxminddb
import pytest

from biolink.services import geoip
from biolink.services.geoip import GeoIPService, GeoLocation, StaticGeoLocator, is_private_ip


@pytest.mark.parametrize(
    "ip_address",
    ["127.0.0.1", "10.1.2.3", "172.16.0.1", "172.31.255.255", "192.168.0.10", "169.254.1.1", "::1", "fe80::1", "not-an-ip"],
)
def test_private_addresses(ip_address: str) -> None:
    assert is_private_ip(ip_address)


@pytest.mark.parametrize("ip_address", ["8.8.8.8", "172.32.0.1", "81.2.69.160", "2001:4860:4860::8888"])
def test_public_addresses(ip_address: str) -> None:
    assert not is_private_ip(ip_address)


@pytest.mark.asyncio
async def test_static_locator_returns_known_locations() -> None:
    locator = StaticGeoLocator({"8.8.8.8": GeoLocation(country="US", city="Mountain View")})

    assert await locator.lookup("8.8.8.8") == GeoLocation(country="US", city="Mountain View")
    assert await locator.lookup("1.1.1.1") == GeoLocation()
    assert await locator.lookup(None) == GeoLocation()
    assert locator.lookups == ["8.8.8.8", "1.1.1.1", None]


@pytest.mark.asyncio
async def test_service_skips_private_addresses() -> None:
    service = GeoIPService(geoip_database_path="", api_fallback=True)
    assert await service.lookup("127.0.0.1") == GeoLocation()


@pytest.mark.asyncio
async def test_service_without_backends_returns_unknown(tmp_path) -> None:
    service = GeoIPService(geoip_database_path=str(tmp_path / "missing.mmdb"), api_fallback=False)
    assert await service.lookup("8.8.8.8") == GeoLocation()
    service.close()


@pytest.mark.asyncio
async def test_service_api_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/json/8.8.8.8"
        return httpx.Response(200, json={"status": "success", "countryCode": "US", "city": "Mountain View"})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        geoip.httpx,
        "AsyncClient",
        lambda *args, **kwargs: real_client(transport=httpx.MockTransport(handler)),
    )

    service = GeoIPService(geoip_database_path="", api_fallback=True)
    assert await service.lookup("8.8.8.8") == GeoLocation(country="US", city="Mountain View")


@pytest.mark.asyncio
async def test_service_api_failure_returns_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        geoip.httpx,
        "AsyncClient",
        lambda *args, **kwargs: real_client(transport=httpx.MockTransport(handler)),
    )

    service = GeoIPService(geoip_database_path="", api_fallback=True)
    assert await service.lookup("8.8.8.8") == GeoLocation()


class RaisingReader:
    """Stands in for a GeoIP2 reader opened on the wrong or a damaged file."""

    def __init__(self, error: Exception):
        self.error = error

    def city(self, ip_address: str):
        raise self.error

    def close(self) -> None:
        pass


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        TypeError("The city method cannot be used with the GeoLite2-Country database"),
        maxminddb.InvalidDatabaseError("The MaxMind DB file's data section contains bad data"),
        geoip2.errors.GeoIP2Error("lookup failed"),
    ],
)
async def test_service_database_errors_return_unknown(error: Exception) -> None:
    service = GeoIPService(geoip_database_path="", api_fallback=False)
    service._reader = RaisingReader(error)

    assert await service.lookup("8.8.8.8") == GeoLocation()
