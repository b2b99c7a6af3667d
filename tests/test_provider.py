import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeLocator, position
from shichenclock.provider import SolarTimeProvider, seconds_until_next_minute

CET = timezone(timedelta(hours=1))
NOON = datetime(2026, 1, 18, 12, 0, 0, tzinfo=CET)


@pytest.mark.parametrize(
    "second, microsecond, expected",
    [(0, 0, 60.1), (30, 0, 30.1), (59, 900_000, 0.2), (59, 999_999, 0.1)],
)
def test_seconds_until_next_minute(second, microsecond, expected):
    now = NOON.replace(second=second, microsecond=microsecond)
    assert seconds_until_next_minute(now) == pytest.approx(expected, abs=1e-5)


def test_current_data_is_ready_before_subscribing():
    provider = SolarTimeProvider(FakeLocator("gps", "high"), clock=lambda: NOON)
    data = provider.get_current_data()
    assert data.precision == "low"
    assert data.longitude == 15.0
    assert data.earthly_branch == "wu"
    assert not provider.is_running


@pytest.mark.asyncio
async def test_subscribe_delivers_current_data():
    provider = SolarTimeProvider(FakeLocator("gps", "high"), clock=lambda: NOON)
    received = []
    unsubscribe = provider.subscribe(received.append)
    assert received == [provider.get_current_data()]
    unsubscribe()


@pytest.mark.asyncio
async def test_position_push_recomputes_synchronously():
    locator = FakeLocator("gps", "high")
    provider = SolarTimeProvider(locator, clock=lambda: NOON)
    received = []
    unsubscribe = provider.subscribe(received.append)

    locator.push(position(0.0, "high", latitude=51.5))

    latest = received[-1]
    assert latest.precision == "high"
    assert latest.solar_offset_minutes == pytest.approx(-60.0)
    assert (latest.solar_hour, latest.solar_minute) == (11, 0)
    assert latest.earthly_branch == "wu"
    assert latest.branch_progress == 0.0
    assert provider.get_current_data() == latest
    unsubscribe()


@pytest.mark.asyncio
async def test_uses_locator_position_known_at_start():
    locator = FakeLocator("gps", "high")
    locator.position = position(30.0, "high")
    provider = SolarTimeProvider(locator, clock=lambda: NOON)
    received = []
    unsubscribe = provider.subscribe(received.append)
    assert received[-1].solar_offset_minutes == pytest.approx(60.0)
    assert received[-1].earthly_branch == "wei"
    unsubscribe()


@pytest.mark.asyncio
async def test_one_location_subscription_for_many_listeners():
    locator = FakeLocator("gps", "high")
    provider = SolarTimeProvider(locator, clock=lambda: NOON)
    unsub_first = provider.subscribe(lambda _: None)
    unsub_second = provider.subscribe(lambda _: None)
    assert locator.subscribe_calls == 1

    unsub_first()
    unsub_first()
    assert provider.is_running
    assert len(locator.subscribers) == 1

    unsub_second()
    assert not provider.is_running
    assert locator.subscribers == []


@pytest.mark.asyncio
async def test_minute_timer_fires_near_the_boundary():
    almost = NOON.replace(second=59, microsecond=950_000)
    provider = SolarTimeProvider(FakeLocator("gps", "high"), clock=lambda: almost)
    received = []
    unsubscribe = provider.subscribe(received.append)

    await asyncio.sleep(0.4)
    assert len(received) >= 2

    unsubscribe()
    count = len(received)
    await asyncio.sleep(0.4)
    assert len(received) == count


@pytest.mark.asyncio
async def test_dispose_stops_everything():
    locator = FakeLocator("gps", "high")
    provider = SolarTimeProvider(locator, clock=lambda: NOON)
    received = []
    provider.subscribe(received.append)
    provider.dispose()

    assert not provider.is_running
    locator.push(position(0.0))
    assert len(received) == 1
