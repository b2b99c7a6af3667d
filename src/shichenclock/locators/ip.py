"""Network locator estimating position from the public IP address."""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from shichenclock.errors import LocationUnavailableError, PermissionNotGrantedError
from shichenclock.locators.base import (
    ListenerSet,
    PositionCallback,
    StatusCallback,
    StatusEmitter,
    Unsubscribe,
)
from shichenclock.models import GeoLocatorStatus, GeoPosition, PermissionState

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_URL = "https://ipapi.co/json/"
_HEADERS = {"User-Agent": "shichenclock/1.0"}


async def lookup_ip_position(
    url: str = DEFAULT_LOOKUP_URL,
    *,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[float, float]:
    """Single IP geolocation call. Returns (lat, lng).

    Raises:
        httpx.HTTPError: On transport failure or non-2xx status.
        LocationUnavailableError: When the service answers without coordinates.
    """
    async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
        resp = await client.get(url, headers=_HEADERS)
        resp.raise_for_status()
        data = resp.json()
    if not isinstance(data, dict):
        raise LocationUnavailableError(f"IP lookup returned {type(data).__name__}, not an object")
    if data.get("error"):
        raise LocationUnavailableError(f"IP lookup error: {data.get('reason', 'unknown')}")
    try:
        return float(data["latitude"]), float(data["longitude"])
    except (KeyError, TypeError, ValueError) as exc:
        raise LocationUnavailableError("IP lookup returned no coordinates") from exc


class IpGeoLocator:
    """City-level estimate; needs no OS permission but can be disabled by config."""

    id = "ip"
    name = "Network (IP)"
    max_precision = "medium"

    def __init__(
        self,
        *,
        url: str = DEFAULT_LOOKUP_URL,
        enabled: bool = True,
        refresh_interval: float = 15 * 60.0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._permission: PermissionState = "granted" if enabled else "denied"
        self._refresh_interval = refresh_interval
        self._timeout = timeout
        self._transport = transport
        self._available = True
        self._listeners: ListenerSet[GeoPosition] = ListenerSet()
        self._status = StatusEmitter()
        self._position: GeoPosition | None = None
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def current_position(self) -> GeoPosition | None:
        return self._position

    def get_status(self) -> GeoLocatorStatus:
        return GeoLocatorStatus(
            permission_state=self._permission,
            is_available=self._available,
            current_precision="medium" if self._position is not None else "low",
        )

    async def request_permission(self) -> PermissionState:
        # Consent comes from configuration; there is no dialog to show
        return self._permission

    async def _fetch(self) -> GeoPosition:
        try:
            lat, lng = await lookup_ip_position(
                self._url, timeout=self._timeout, transport=self._transport
            )
        except (httpx.HTTPError, LocationUnavailableError, ValueError) as exc:
            self._available = False
            self._status.notify(self.get_status())
            raise LocationUnavailableError(f"IP lookup failed: {exc}") from exc
        self._available = True
        self._position = GeoPosition(
            longitude=lng,
            latitude=lat,
            precision="medium",
            timestamp=datetime.now(timezone.utc),
        )
        self._status.notify(self.get_status())
        return self._position

    async def get_current_position(self) -> GeoPosition:
        if self._permission != "granted":
            raise PermissionNotGrantedError("IP lookup disabled")
        return await self._fetch()

    async def _refresh_loop(self) -> None:
        while True:
            try:
                position = await self._fetch()
            except LocationUnavailableError as exc:
                logger.warning("%s", exc)
            else:
                self._listeners.emit(position)
            await asyncio.sleep(self._refresh_interval)

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        remove = self._listeners.add(callback)
        if self._position is not None:
            callback(self._position)

        if len(self._listeners) == 1 and self._permission == "granted":
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_loop())

        def unsubscribe() -> None:
            if remove() and not self._listeners:
                self._stop()

        return unsubscribe

    def on_status_change(self, callback: StatusCallback) -> Unsubscribe:
        remove = self._status.add(callback, self.get_status())

        def unsubscribe() -> None:
            remove()

        return unsubscribe

    def _stop(self) -> None:
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

    def dispose(self) -> None:
        self._listeners.clear()
        self._status.clear()
        self._stop()
