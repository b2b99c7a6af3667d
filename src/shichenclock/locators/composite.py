"""Coordinates several locators behind one GeoLocator façade.

Selects the best available source by permission and precision and falls
back GPS → network → timezone. Permission grants resolve asynchronously
(OS dialogs), so the selection is re-evaluated on a short poll while
anybody is listening.
"""

import asyncio
import logging
from collections.abc import Sequence

from shichenclock.locators.base import (
    GeoLocator,
    ListenerSet,
    PositionCallback,
    StatusCallback,
    StatusEmitter,
    Unsubscribe,
    precision_rank,
)
from shichenclock.models import (
    GeoLocatorStatus,
    GeoPosition,
    LocationPrecision,
    PermissionState,
)

logger = logging.getLogger(__name__)

REEVALUATE_INTERVAL = 0.5


class CompositeGeoLocator:
    id = "composite"
    name = "Composite GeoLocator"

    def __init__(
        self,
        locators: Sequence[GeoLocator],
        *,
        reevaluate_interval: float = REEVALUATE_INTERVAL,
    ) -> None:
        if not locators:
            raise ValueError("CompositeGeoLocator needs at least one locator")
        self._locators = list(locators)
        # Highest precision first; ties keep the given order
        self._by_precision = sorted(
            self._locators, key=lambda loc: precision_rank(loc.max_precision), reverse=True
        )
        self._reevaluate_interval = reevaluate_interval
        self._listeners: ListenerSet[GeoPosition] = ListenerSet()
        self._status = StatusEmitter()
        self._position: GeoPosition | None = None
        self._active: GeoLocator | None = None
        self._active_unsubscribe: Unsubscribe | None = None
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def max_precision(self) -> LocationPrecision:
        return self._by_precision[0].max_precision

    @property
    def current_position(self) -> GeoPosition | None:
        return self._position

    @property
    def active_locator(self) -> GeoLocator | None:
        """The one locator currently subscribed to, if any."""
        return self._active

    def best_locator(self) -> GeoLocator:
        """Highest precision granted and available locator, else the lowest precision one."""
        for locator in self._by_precision:
            status = locator.get_status()
            if status.permission_state == "granted" and status.is_available:
                return locator
        return min(self._locators, key=lambda loc: precision_rank(loc.max_precision))

    def _highest_precision_locator(self) -> GeoLocator:
        return self._by_precision[0]

    # --- selection ---

    def _forward(self, source: GeoLocator) -> PositionCallback:
        def on_position(position: GeoPosition) -> None:
            if source is not self._active:
                return  # late delivery from a replaced source
            self._position = position
            self._listeners.emit(position)

        return on_position

    def _detach(self) -> None:
        if self._active_unsubscribe is not None:
            self._active_unsubscribe()
        self._active_unsubscribe = None
        self._active = None

    def reevaluate(self) -> None:
        """Switch the underlying subscription if the best locator changed."""
        if not self._listeners:
            return
        best = self.best_locator()
        if best is self._active:
            return
        previous = self._active
        self._detach()
        logger.info(
            "Location source: %s -> %s", previous.id if previous else None, best.id
        )
        self._active = best
        self._active_unsubscribe = best.subscribe(self._forward(best))

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._reevaluate_interval)
            self.reevaluate()
            self._status.notify(self.get_status())

    def _ensure_polling(self) -> None:
        if self._poll_task is None:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def _maybe_stop_polling(self) -> None:
        if self._listeners or self._status:
            return
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    # --- GeoLocator ---

    def get_status(self) -> GeoLocatorStatus:
        # Permission of the best possible source, so a UI can offer to enable it,
        # precision of whichever source is actually in use
        highest = self._highest_precision_locator().get_status()
        in_use = self._active or self.best_locator()
        return GeoLocatorStatus(
            permission_state=highest.permission_state,
            is_available=highest.is_available,
            current_precision=in_use.get_status().current_precision,
        )

    async def request_permission(self) -> PermissionState:
        result = await self._highest_precision_locator().request_permission()
        self.reevaluate()
        self._status.notify(self.get_status())
        return result

    async def get_current_position(self) -> GeoPosition:
        return await self.best_locator().get_current_position()

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        remove = self._listeners.add(callback)
        if self._position is not None:
            callback(self._position)

        if len(self._listeners) == 1:
            self.reevaluate()
            self._ensure_polling()

        def unsubscribe() -> None:
            if remove() and not self._listeners:
                self._detach()
                self._position = None  # the next session starts from its own source
                self._maybe_stop_polling()

        return unsubscribe

    def on_status_change(self, callback: StatusCallback) -> Unsubscribe:
        remove = self._status.add(callback, self.get_status())
        self._ensure_polling()

        def unsubscribe() -> None:
            if remove():
                self._maybe_stop_polling()

        return unsubscribe

    def dispose(self) -> None:
        self._listeners.clear()
        self._status.clear()
        self._detach()
        self._position = None
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        for locator in self._locators:
            locator.dispose()
