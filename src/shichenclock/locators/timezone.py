"""Fallback locator estimating longitude from the system timezone offset.

Lowest precision, but needs no permission and works everywhere.
UTC-5 (New York winter) → -300 min → -75° longitude.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, tzinfo

from shichenclock.calculator import civil_now, timezone_longitude_estimate
from shichenclock.locators.base import (
    ListenerSet,
    PositionCallback,
    StatusCallback,
    Unsubscribe,
)
from shichenclock.models import GeoLocatorStatus, GeoPosition, PermissionState

logger = logging.getLogger(__name__)

_STATUS = GeoLocatorStatus(
    permission_state="granted", is_available=True, current_precision="low"
)


class TimezoneGeoLocator:
    id = "timezone"
    name = "Timezone Fallback"
    max_precision = "low"

    def __init__(
        self,
        *,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
        check_interval: float = 60.0,
    ) -> None:
        self._clock = clock or (lambda: civil_now(tz))
        self._check_interval = check_interval
        self._listeners: ListenerSet[GeoPosition] = ListenerSet()
        self._position: GeoPosition | None = None
        self._check_task: asyncio.Task[None] | None = None

    @property
    def current_position(self) -> GeoPosition | None:
        return self._position

    def _estimate(self) -> GeoPosition:
        now = self._clock()
        self._position = GeoPosition(
            longitude=timezone_longitude_estimate(now),
            latitude=0.0,  # unknown from timezone alone
            precision="low",
            timestamp=now,
        )
        return self._position

    def get_status(self) -> GeoLocatorStatus:
        return _STATUS

    async def request_permission(self) -> PermissionState:
        return "granted"

    async def get_current_position(self) -> GeoPosition:
        return self._estimate()

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        remove = self._listeners.add(callback)
        callback(self._estimate())

        if len(self._listeners) == 1:
            self._check_task = asyncio.get_running_loop().create_task(self._watch_offset())

        def unsubscribe() -> None:
            if remove() and not self._listeners:
                self._stop()

        return unsubscribe

    def on_status_change(self, callback: StatusCallback) -> Unsubscribe:
        # Status never changes: deliver it once
        callback(_STATUS)
        return lambda: None

    async def _watch_offset(self) -> None:
        # Offset changes are rare (travel, zone database updates)
        while True:
            await asyncio.sleep(self._check_interval)
            previous = self._position
            position = self._estimate()
            if previous is None or position.longitude != previous.longitude:
                logger.info("Timezone longitude estimate changed to %.2f°", position.longitude)
                self._listeners.emit(position)

    def _stop(self) -> None:
        if self._check_task is not None:
            self._check_task.cancel()
            self._check_task = None

    def dispose(self) -> None:
        self._listeners.clear()
        self._stop()
