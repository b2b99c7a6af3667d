import asyncio

import pytest

from fakes import FakePlatform, drain, wait_until
from shichenclock.errors import LocationUnavailableError, PermissionNotGrantedError
from shichenclock.locators.gps import (
    WATCH_DISTANCE_INTERVAL,
    WATCH_TIME_INTERVAL,
    GpsGeoLocator,
    precision_from_accuracy,
)
from shichenclock.locators.platform import FixedLocationPlatform, PlatformFix


class Monotonic:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


async def granted_locator(platform=None, **kwargs):
    platform = platform or FakePlatform()
    locator = GpsGeoLocator(platform, **kwargs)
    await locator.refresh_permission()
    return platform, locator


@pytest.mark.parametrize(
    "accuracy, expected",
    [(5.0, "high"), (99.9, "high"), (100.0, "medium"), (2500.0, "medium"), (None, "medium")],
)
def test_precision_from_accuracy(accuracy, expected):
    assert precision_from_accuracy(accuracy) == expected


@pytest.mark.asyncio
async def test_one_watch_shared_by_all_subscribers():
    platform, locator = await granted_locator()
    first, second = [], []
    unsub_first = locator.subscribe(first.append)
    unsub_second = locator.subscribe(second.append)
    await drain()

    assert len(platform.watches) == 1
    watch = platform.watches[0]
    assert (watch.time_interval, watch.distance_interval) == (
        WATCH_TIME_INTERVAL,
        WATCH_DISTANCE_INTERVAL,
    )
    assert locator.is_watching

    watch.callback(PlatformFix(latitude=35.68, longitude=139.69, accuracy=12.0))
    assert first[-1].longitude == 139.69
    assert second[-1].precision == "high"
    assert second[-1].accuracy_m == 12.0

    unsub_first()
    assert locator.is_watching
    unsub_second()
    assert not locator.is_watching
    assert watch.removed

    unsub_second()
    assert len(platform.watches) == 1


@pytest.mark.asyncio
async def test_late_subscriber_gets_cached_position():
    platform, locator = await granted_locator()
    unsubscribe = locator.subscribe(lambda _: None)
    await drain()
    platform.watches[0].callback(PlatformFix(1.0, 2.0, 5000.0))

    received = []
    locator.subscribe(received.append)
    assert received[0].longitude == 2.0
    assert received[0].precision == "medium"
    unsubscribe()
    locator.dispose()


@pytest.mark.asyncio
async def test_no_watch_without_permission():
    platform = FakePlatform(permission="undetermined")
    locator = GpsGeoLocator(platform)
    await locator.refresh_permission()
    locator.subscribe(lambda _: None)
    await drain()
    assert platform.watches == []


@pytest.mark.asyncio
async def test_grant_starts_watch_for_existing_subscribers():
    platform = FakePlatform(permission="undetermined")
    locator = GpsGeoLocator(platform)
    await locator.refresh_permission()
    locator.subscribe(lambda _: None)

    platform.request_result = "granted"
    assert await locator.request_permission() == "granted"
    await drain()
    assert len(platform.active_watches) == 1
    locator.dispose()
    assert platform.active_watches == []


@pytest.mark.asyncio
async def test_revoked_permission_stops_watch_and_drops_position():
    platform, locator = await granted_locator()
    locator.subscribe(lambda _: None)
    await drain()
    platform.watches[0].callback(PlatformFix(1.0, 2.0, 5.0))
    assert locator.current_position is not None

    platform.permission = "denied"
    assert await locator.refresh_permission() == "denied"

    assert not locator.is_watching
    assert locator.current_position is None
    status = locator.get_status()
    assert status.permission_state == "denied"
    assert status.current_precision == "low"
    assert status.is_available


@pytest.mark.asyncio
async def test_unknown_platform_permission_counts_as_denied():
    platform = FakePlatform(permission="limited-while-using")
    locator = GpsGeoLocator(platform)
    assert await locator.refresh_permission() == "denied"


@pytest.mark.asyncio
async def test_unsubscribe_before_watch_opens():
    platform, locator = await granted_locator()
    unsubscribe = locator.subscribe(lambda _: None)
    unsubscribe()
    await drain()
    assert platform.active_watches == []
    assert not locator.is_watching


@pytest.mark.asyncio
async def test_one_shot_fix_is_fresh_for_two_minutes():
    clock = Monotonic(1000.0)
    _, locator = await granted_locator(monotonic=clock)

    current = await locator.get_current_position()
    assert current.precision == "high"
    assert locator.get_status().current_precision == "high"

    clock.now = 1119.0
    assert locator.get_status().current_precision == "high"
    clock.now = 1120.0
    assert locator.get_status().current_precision == "low"


@pytest.mark.asyncio
async def test_freshness_counts_from_when_watching_stopped():
    clock = Monotonic(1000.0)
    platform, locator = await granted_locator(monotonic=clock)
    unsubscribe = locator.subscribe(lambda _: None)
    await drain()
    platform.watches[0].callback(PlatformFix(1.0, 2.0, 5.0))

    clock.now = 1500.0
    assert locator.get_status().current_precision == "high"
    unsubscribe()

    clock.now = 1619.0
    assert locator.get_status().current_precision == "high"
    clock.now = 1621.0
    assert locator.get_status().current_precision == "low"


@pytest.mark.asyncio
async def test_current_position_requires_permission():
    platform = FakePlatform(permission="denied")
    locator = GpsGeoLocator(platform)
    await locator.refresh_permission()
    with pytest.raises(PermissionNotGrantedError):
        await locator.get_current_position()


@pytest.mark.asyncio
async def test_platform_failure_surfaces_as_unavailable():
    platform, locator = await granted_locator()
    platform.fix_error = RuntimeError("no satellites")
    with pytest.raises(LocationUnavailableError) as excinfo:
        await locator.get_current_position()
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_permission_errors_are_not_raised():
    platform, locator = await granted_locator()

    platform.status_error = RuntimeError("binder died")
    assert await locator.refresh_permission() == "granted"

    platform.request_error = RuntimeError("binder died")
    assert await locator.request_permission() == "denied"
    assert locator.get_status().permission_state == "granted"


@pytest.mark.asyncio
async def test_failed_watch_start_is_logged_not_raised(caplog):
    platform = FakePlatform()
    platform.watch_error = RuntimeError("provider disabled")
    _, locator = await granted_locator(platform)
    locator.subscribe(lambda _: None)
    await drain()
    assert not locator.is_watching
    assert "Failed to start GPS watching" in caplog.text


@pytest.mark.asyncio
async def test_status_listener_sees_external_permission_change():
    platform, locator = await granted_locator(status_poll_interval=0.01)
    statuses = []
    unsubscribe = locator.on_status_change(statuses.append)
    assert statuses[0].permission_state == "granted"

    platform.permission = "restricted"
    await wait_until(lambda: statuses[-1].permission_state == "restricted")

    count = len(statuses)
    await asyncio.sleep(0.05)
    assert len(statuses) == count
    unsubscribe()
    locator.dispose()


@pytest.mark.asyncio
async def test_fixed_platform_feeds_the_locator():
    platform = FixedLocationPlatform(39.9, 116.4, accuracy=250.0)
    locator = GpsGeoLocator(platform)
    await locator.refresh_permission()
    received = []
    unsubscribe = locator.subscribe(received.append)
    await drain()

    assert received[0].longitude == 116.4
    assert received[0].precision == "medium"
    unsubscribe()
