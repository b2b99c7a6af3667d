"""High precision locator wrapping a platform location API.

A 10 m fix is ~0.0001° of longitude, well under a second of solar time.
Requires foreground location permission.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from shichenclock.errors import LocationUnavailableError, PermissionNotGrantedError
from shichenclock.locators.base import (
    ListenerSet,
    PositionCallback,
    StatusCallback,
    StatusEmitter,
    Unsubscribe,
    map_permission_status,
)
from shichenclock.locators.platform import LocationPlatform, PlatformFix, WatchHandle
from shichenclock.models import (
    GeoLocatorStatus,
    GeoPosition,
    LocationPrecision,
    PermissionState,
)

logger = logging.getLogger(__name__)

HIGH_ACCURACY_METERS = 100.0
FRESHNESS_SECONDS = 120.0  # covers short app-background windows
WATCH_TIME_INTERVAL = 60.0
WATCH_DISTANCE_INTERVAL = 100.0


def precision_from_accuracy(accuracy: float | None) -> LocationPrecision:
    """Reported horizontal accuracy → precision tier. Unknown accuracy is medium."""
    if accuracy is not None and accuracy < HIGH_ACCURACY_METERS:
        return "high"
    return "medium"


class GpsGeoLocator:
    id = "gps"
    name = "GPS"
    max_precision = "high"

    def __init__(
        self,
        platform: LocationPlatform,
        *,
        status_poll_interval: float = 5.0,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._platform = platform
        self._status_poll_interval = status_poll_interval
        self._monotonic = monotonic
        self._listeners: ListenerSet[GeoPosition] = ListenerSet()
        self._status = StatusEmitter()
        self._permission: PermissionState = "undetermined"
        self._position: GeoPosition | None = None
        self._position_acquired_at: float | None = None
        self._watch: WatchHandle | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._watch_stopped_at: float | None = None
        self._status_task: asyncio.Task[None] | None = None

    @property
    def current_position(self) -> GeoPosition | None:
        return self._position

    @property
    def is_watching(self) -> bool:
        return self._watch is not None

    # --- permission ---

    def _apply_permission(self, state: PermissionState) -> None:
        if state == self._permission:
            return
        logger.info("GPS permission changed: %s -> %s", self._permission, state)
        self._permission = state
        if state == "granted":
            if self._listeners:
                self._start_watching()
        else:
            self._stop_watching()
            self._position = None  # stale once access is gone
            self._position_acquired_at = None
        self._status.notify(self.get_status())

    async def refresh_permission(self) -> PermissionState:
        """Re-read the permission state from the platform."""
        try:
            status = await self._platform.get_permission_status()
        except Exception as exc:
            logger.warning("Failed to get GPS permission status: %s", exc)
            return self._permission
        self._apply_permission(map_permission_status(status))
        return self._permission

    async def request_permission(self) -> PermissionState:
        try:
            status = await self._platform.request_permission()
        except Exception as exc:
            logger.warning("Failed to request GPS permission: %s", exc)
            return "denied"
        self._apply_permission(map_permission_status(status))
        return self._permission

    # --- status ---

    def _is_fresh(self) -> bool:
        if self._position is None:
            return False
        if self._watch is not None:
            return True
        anchors = [t for t in (self._position_acquired_at, self._watch_stopped_at) if t is not None]
        if not anchors:
            return False
        return self._monotonic() - max(anchors) < FRESHNESS_SECONDS

    def get_status(self) -> GeoLocatorStatus:
        # Precision reflects usable data, not just permission
        precision: LocationPrecision = "low"
        if self._position is not None and self._is_fresh():
            precision = self._position.precision
        return GeoLocatorStatus(
            permission_state=self._permission,
            is_available=True,
            current_precision=precision,
        )

    def on_status_change(self, callback: StatusCallback) -> Unsubscribe:
        remove = self._status.add(callback, self.get_status())
        if self._status_task is None:
            self._status_task = asyncio.get_running_loop().create_task(self._poll_status())

        def unsubscribe() -> None:
            if remove() and not self._status:
                self._stop_status_poll()

        return unsubscribe

    async def _poll_status(self) -> None:
        # Picks up grants made outside the app and freshness expiry
        while True:
            await asyncio.sleep(self._status_poll_interval)
            await self.refresh_permission()
            self._status.notify(self.get_status())

    def _stop_status_poll(self) -> None:
        if self._status_task is not None:
            self._status_task.cancel()
            self._status_task = None

    # --- positions ---

    def _position_from_fix(self, fix: PlatformFix) -> GeoPosition:
        return GeoPosition(
            longitude=fix.longitude,
            latitude=fix.latitude,
            precision=precision_from_accuracy(fix.accuracy),
            timestamp=datetime.now(timezone.utc),
            accuracy_m=fix.accuracy,
        )

    def _store(self, position: GeoPosition) -> None:
        self._position = position
        self._position_acquired_at = self._monotonic()

    def _on_fix(self, fix: PlatformFix) -> None:
        position = self._position_from_fix(fix)
        self._store(position)
        self._listeners.emit(position)
        self._status.notify(self.get_status())

    async def get_current_position(self) -> GeoPosition:
        if self._permission != "granted":
            raise PermissionNotGrantedError("GPS permission not granted")
        try:
            fix = await self._platform.get_current_fix()
        except Exception as exc:
            logger.warning("Failed to get GPS position: %s", exc)
            raise LocationUnavailableError("GPS position unavailable") from exc
        position = self._position_from_fix(fix)
        self._store(position)
        return position

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        remove = self._listeners.add(callback)
        if self._position is not None:
            callback(self._position)

        if len(self._listeners) == 1 and self._permission == "granted":
            self._start_watching()

        def unsubscribe() -> None:
            if remove() and not self._listeners:
                self._stop_watching()

        return unsubscribe

    # --- watch lifecycle ---

    def _start_watching(self) -> None:
        if self._watch is not None or self._watch_task is not None:
            return
        if self._permission != "granted":
            return
        self._watch_task = asyncio.get_running_loop().create_task(self._open_watch())

    async def _open_watch(self) -> None:
        try:
            handle = await self._platform.watch_position(
                self._on_fix,
                time_interval=WATCH_TIME_INTERVAL,
                distance_interval=WATCH_DISTANCE_INTERVAL,
            )
        except Exception as exc:
            logger.warning("Failed to start GPS watching: %s", exc)
            return
        finally:
            if self._watch_task is asyncio.current_task():
                self._watch_task = None

        if not self._listeners or self._permission != "granted":
            # Last subscriber left while the platform was starting the watch
            handle.remove()
            return
        self._watch = handle
        self._watch_stopped_at = None
        logger.debug("GPS watch started")
        self._status.notify(self.get_status())

    def _stop_watching(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            self._watch_task = None
        if self._watch is not None:
            self._watch.remove()
            self._watch = None
            self._watch_stopped_at = self._monotonic()
            logger.debug("GPS watch stopped")
            self._status.notify(self.get_status())

    def dispose(self) -> None:
        self._listeners.clear()
        self._status.clear()
        self._stop_watching()
        self._stop_status_poll()
