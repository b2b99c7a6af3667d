"""Live solar time feed combining location updates with a minute-aligned timer."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, tzinfo
from typing import Protocol, TypeVar

from shichenclock.calculator import build_solar_time_data, civil_now
from shichenclock.locators.base import GeoLocator, ListenerSet, Unsubscribe
from shichenclock.models import GeoPosition, SolarTimeData

logger = logging.getLogger(__name__)

T = TypeVar("T")

MINUTE_BOUNDARY_BUFFER = 0.1  # seconds past the boundary, so the new minute is visible


class SituationProvider(Protocol[T]):
    """A named, subscribable source of situation data."""

    id: str
    name: str

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe: ...

    def get_current_data(self) -> T: ...


def seconds_until_next_minute(now: datetime) -> float:
    """Delay from ``now`` to just past the next wall-clock minute boundary."""
    elapsed = now.second + now.microsecond / 1_000_000
    return 60.0 - elapsed + MINUTE_BOUNDARY_BUFFER


class SolarTimeProvider:
    """Publishes SolarTimeData on every position change and every minute.

    The timer is aligned to wall-clock minutes rather than a fixed period,
    so updates land on minute changes whenever the first subscriber
    attached. Location subscription and timer run only while subscribed.
    """

    id = "solar-time"
    name = "Solar Time"

    def __init__(
        self,
        geo_locator: GeoLocator,
        *,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._geo_locator = geo_locator
        self._clock = clock or (lambda: civil_now(tz))
        self._listeners: ListenerSet[SolarTimeData] = ListenerSet()
        self._geo_unsubscribe: Unsubscribe | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._current = self._compute()

    def _compute(self, position: GeoPosition | None = None) -> SolarTimeData:
        return build_solar_time_data(
            self._clock(), position or self._geo_locator.current_position
        )

    def _update(self, position: GeoPosition | None = None) -> None:
        self._current = self._compute(position)
        logger.debug(
            "Solar time %02d:%02d (%s, offset %.1f min)",
            self._current.solar_hour,
            self._current.solar_minute,
            self._current.earthly_branch,
            self._current.solar_offset_minutes,
        )
        self._listeners.emit(self._current)

    def _schedule_next_update(self) -> None:
        if self._timer is not None:
            return
        delay = seconds_until_next_minute(self._clock())
        self._timer = asyncio.get_running_loop().call_later(delay, self._on_minute)

    def _on_minute(self) -> None:
        self._timer = None
        self._update()
        self._schedule_next_update()

    def _start(self) -> None:
        if self._geo_unsubscribe is not None or self._timer is not None:
            return
        self._geo_unsubscribe = self._geo_locator.subscribe(self._update)
        self._schedule_next_update()

    def _stop(self) -> None:
        if self._geo_unsubscribe is not None:
            self._geo_unsubscribe()
            self._geo_unsubscribe = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def is_running(self) -> bool:
        return self._timer is not None or self._geo_unsubscribe is not None

    def subscribe(self, callback: Callable[[SolarTimeData], None]) -> Unsubscribe:
        remove = self._listeners.add(callback)
        if len(self._listeners) == 1:
            self._start()
        callback(self._current)

        def unsubscribe() -> None:
            if remove() and not self._listeners:
                self._stop()

        return unsubscribe

    def get_current_data(self) -> SolarTimeData:
        return self._current

    def dispose(self) -> None:
        self._listeners.clear()
        self._stop()
