import asyncio

import httpx
import pytest

from fakes import wait_until
from shichenclock.errors import LocationUnavailableError, PermissionNotGrantedError
from shichenclock.locators.ip import IpGeoLocator, lookup_ip_position

TOKYO = {"ip": "203.0.113.7", "city": "Tokyo", "latitude": 35.6895, "longitude": 139.6917}


class Service:
    """Mock IP lookup endpoint answering from a mutable (status, body) pair."""

    def __init__(self, status: int = 200, body: dict | None = None) -> None:
        self.status = status
        self.body = TOKYO if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.mark.asyncio
async def test_lookup_returns_lat_lng():
    service = Service()
    lat, lng = await lookup_ip_position("https://geo.test/json", transport=service.transport)
    assert (lat, lng) == (35.6895, 139.6917)
    assert service.requests[0].url == "https://geo.test/json"
    assert service.requests[0].headers["User-Agent"].startswith("shichenclock/")


@pytest.mark.asyncio
async def test_lookup_rejects_service_errors():
    service = Service(body={"error": True, "reason": "RateLimited"})
    with pytest.raises(LocationUnavailableError, match="RateLimited"):
        await lookup_ip_position(transport=service.transport)


@pytest.mark.asyncio
async def test_lookup_rejects_missing_coordinates():
    service = Service(body={"ip": "203.0.113.7"})
    with pytest.raises(LocationUnavailableError, match="no coordinates"):
        await lookup_ip_position(transport=service.transport)


@pytest.mark.asyncio
async def test_current_position_is_medium_precision():
    locator = IpGeoLocator(transport=Service().transport)
    assert locator.get_status().current_precision == "low"

    current = await locator.get_current_position()
    assert current.precision == "medium"
    assert current.longitude == 139.6917
    status = locator.get_status()
    assert status.is_available
    assert status.current_precision == "medium"


@pytest.mark.asyncio
async def test_failure_marks_unavailable_until_next_success():
    service = Service(status=503)
    locator = IpGeoLocator(transport=service.transport)
    statuses = []
    locator.on_status_change(statuses.append)

    with pytest.raises(LocationUnavailableError):
        await locator.get_current_position()
    assert not locator.get_status().is_available
    assert statuses[-1].is_available is False

    service.status = 200
    await locator.get_current_position()
    assert locator.get_status().is_available
    assert statuses[-1].is_available is True


@pytest.mark.asyncio
async def test_disabled_locator_is_denied():
    locator = IpGeoLocator(enabled=False, transport=Service().transport)
    assert locator.get_status().permission_state == "denied"
    assert await locator.request_permission() == "denied"
    with pytest.raises(PermissionNotGrantedError):
        await locator.get_current_position()


@pytest.mark.asyncio
async def test_subscription_refreshes_in_background():
    service = Service()
    locator = IpGeoLocator(transport=service.transport, refresh_interval=0.01)
    received = []
    unsubscribe = locator.subscribe(received.append)

    await wait_until(lambda: len(received) >= 2)
    assert received[0].latitude == 35.6895

    unsubscribe()
    count = len(service.requests)
    await asyncio.sleep(0.05)
    locator.dispose()
    assert len(service.requests) == count


@pytest.mark.asyncio
async def test_lookup_rejects_non_object_body():
    service = Service(body=["not", "an", "object"])
    with pytest.raises(LocationUnavailableError, match="not an object"):
        await lookup_ip_position(transport=service.transport)


@pytest.mark.asyncio
async def test_non_object_body_marks_locator_unavailable():
    locator = IpGeoLocator(transport=Service(body=["not", "an", "object"]).transport)
    with pytest.raises(LocationUnavailableError):
        await locator.get_current_position()
    assert locator.get_status().is_available is False


@pytest.mark.asyncio
async def test_refresh_survives_a_malformed_answer():
    service = Service(body=[])
    locator = IpGeoLocator(transport=service.transport, refresh_interval=0.01)
    received = []
    unsubscribe = locator.subscribe(received.append)
    await wait_until(lambda: len(service.requests) >= 2)
    assert received == []

    service.body = TOKYO
    await wait_until(lambda: len(received) >= 1)
    assert locator.get_status().is_available
    unsubscribe()
