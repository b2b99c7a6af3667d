"""Shared location-source capability and listener bookkeeping."""

import logging
from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

from shichenclock.models import (
    PRECISION_RANK,
    GeoLocatorStatus,
    GeoPosition,
    LocationPrecision,
    PermissionState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]
PositionCallback = Callable[[GeoPosition], None]
StatusCallback = Callable[[GeoLocatorStatus], None]


class GeoLocator(Protocol):
    """A source of position estimates with its own permission lifecycle.

    ``subscribe`` and ``on_status_change`` must be called from code running
    on the event loop; the returned callables are idempotent.
    """

    id: str
    name: str
    max_precision: LocationPrecision

    @property
    def current_position(self) -> GeoPosition | None: ...

    def get_status(self) -> GeoLocatorStatus: ...

    async def request_permission(self) -> PermissionState: ...

    async def get_current_position(self) -> GeoPosition: ...

    def subscribe(self, callback: PositionCallback) -> Unsubscribe: ...

    def on_status_change(self, callback: StatusCallback) -> Unsubscribe: ...

    def dispose(self) -> None: ...


def precision_rank(precision: str) -> int:
    return PRECISION_RANK[precision]


class ListenerSet(Generic[T]):
    """Callbacks in registration order, each removable exactly once."""

    def __init__(self) -> None:
        self._entries: list[tuple[object, Callable[[T], None]]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def add(self, callback: Callable[[T], None]) -> Callable[[], bool]:
        """Register ``callback``.

        Returns:
            A remover. It returns True on the call that removed the entry and
            False on every later call.
        """
        token = object()
        self._entries.append((token, callback))

        def remove() -> bool:
            for i, (entry_token, _) in enumerate(self._entries):
                if entry_token is token:
                    del self._entries[i]
                    return True
            return False

        return remove

    def emit(self, value: T) -> None:
        # Snapshot: callbacks may unsubscribe while being notified
        for _, callback in list(self._entries):
            try:
                callback(value)
            except Exception:
                logger.exception("Listener %r failed", callback)

    def clear(self) -> None:
        self._entries.clear()


class StatusEmitter:
    """Status listeners with change detection: no two equal statuses in a row."""

    def __init__(self) -> None:
        self.listeners: ListenerSet[GeoLocatorStatus] = ListenerSet()
        self._last: GeoLocatorStatus | None = None

    def __bool__(self) -> bool:
        return bool(self.listeners)

    def add(
        self, callback: StatusCallback, current: GeoLocatorStatus
    ) -> Callable[[], bool]:
        """Register ``callback`` and deliver ``current`` to it right away."""
        remove = self.listeners.add(callback)
        if self._last is None:
            self._last = current
        callback(current)

        def unsubscribe() -> bool:
            removed = remove()
            if not self.listeners:
                self._last = None
            return removed

        return unsubscribe

    def notify(self, status: GeoLocatorStatus) -> None:
        if not self.listeners or status == self._last:
            return
        self._last = status
        self.listeners.emit(status)

    def clear(self) -> None:
        self.listeners.clear()
        self._last = None


def map_permission_status(status: str) -> PermissionState:
    """Platform permission string → PermissionState. Unknown values count as denied."""
    if status in ("granted", "denied", "undetermined", "restricted"):
        return status  # type: ignore[return-value]
    return "denied"
