import time
from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeLocator, position
from shichenclock.calculator import (
    calculate_true_solar_time,
    civil_now,
    standard_utc_offset_minutes,
    timezone_longitude_estimate,
)
from shichenclock.provider import SolarTimeProvider

pytestmark = pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")


@pytest.fixture
def berlin(monkeypatch):
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.mark.parametrize("month", [1, 4, 7, 10])
def test_astimezone_result_uses_system_rules(berlin, month):
    civil = datetime(2024, month, 15, 10, 0, tzinfo=timezone.utc).astimezone()
    assert standard_utc_offset_minutes(civil) == 60
    assert calculate_true_solar_time(civil, 15.0)[1] == pytest.approx(0.0)


def test_naive_summer_time_is_read_in_system_zone(berlin):
    summer = datetime(2024, 7, 15, 12, 0)
    assert calculate_true_solar_time(summer, 15.0)[1] == pytest.approx(0.0)
    assert timezone_longitude_estimate(summer) == 30.0


def test_civil_now_without_zone(berlin):
    now = civil_now()
    assert now.tzinfo is not None
    assert standard_utc_offset_minutes(now) == 60
    assert calculate_true_solar_time(now, 13.4)[1] == pytest.approx(-6.4)


def test_explicit_fixed_offset_is_taken_as_given(berlin):
    civil = datetime(2024, 7, 15, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert standard_utc_offset_minutes(civil) == 120


@pytest.mark.asyncio
async def test_provider_default_clock_ignores_dst(berlin):
    locator = FakeLocator("gps", "high")
    provider = SolarTimeProvider(locator)
    received = []
    unsubscribe = provider.subscribe(received.append)

    locator.push(position(15.0, "high"))
    assert received[-1].solar_offset_minutes == pytest.approx(0.0)
    unsubscribe()
