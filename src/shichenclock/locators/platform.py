"""Platform location API consumed by the GPS locator, plus a fixed-coordinate backend."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PlatformFix:
    """A raw fix as reported by the platform."""

    latitude: float
    longitude: float
    accuracy: float | None  # Horizontal accuracy in meters, None if unknown


class WatchHandle(Protocol):
    def remove(self) -> None: ...


class LocationPlatform(Protocol):
    """Permission queries and one-shot/continuous fixes.

    Permission methods return one of "granted", "denied", "undetermined",
    "restricted"; other strings are treated as denied.
    """

    async def get_permission_status(self) -> str: ...

    async def request_permission(self) -> str: ...

    async def get_current_fix(self) -> PlatformFix: ...

    async def watch_position(
        self,
        callback: Callable[[PlatformFix], None],
        *,
        time_interval: float,
        distance_interval: float,
    ) -> WatchHandle: ...


class _CallbackHandle:
    def __init__(self, handle: asyncio.Handle) -> None:
        self._handle = handle

    def remove(self) -> None:
        self._handle.cancel()


class FixedLocationPlatform:
    """Serves one configured coordinate, e.g. from SHICHEN_LATITUDE/SHICHEN_LONGITUDE.

    Permission is always granted. A watch delivers the fix once, on the next
    loop iteration; a fixed point never moves the 100 m needed for another.
    """

    def __init__(self, latitude: float, longitude: float, accuracy: float | None = 10.0) -> None:
        self.fix = PlatformFix(latitude=latitude, longitude=longitude, accuracy=accuracy)

    async def get_permission_status(self) -> str:
        return "granted"

    async def request_permission(self) -> str:
        return "granted"

    async def get_current_fix(self) -> PlatformFix:
        return self.fix

    async def watch_position(
        self,
        callback: Callable[[PlatformFix], None],
        *,
        time_interval: float,
        distance_interval: float,
    ) -> WatchHandle:
        handle = asyncio.get_running_loop().call_soon(callback, self.fix)
        return _CallbackHandle(handle)
