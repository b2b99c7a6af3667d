"""Solar time computation layer: mean solar time, shichen mapping and hour explorer helpers."""

import math
import time
from datetime import datetime, timedelta, timezone, tzinfo

from shichenclock.branches import (
    BRANCH_INFO,
    EARTHLY_BRANCHES,
    MINUTES_PER_DAY,
    SHICHEN_MINUTES,
    SOVEREIGN_HEXAGRAMS,
)
from shichenclock.models import EarthlyBranch, GeoPosition, ShichenData, SolarTimeData

DEGREES_PER_HOUR = 15.0  # 360° in 24h
MINUTES_PER_DEGREE = 4.0


def civil_now(tz: tzinfo | None = None) -> datetime:
    """Current civil time as an aware datetime, in ``tz`` or the system zone.

    Without ``tz`` the result carries a fixed offset named after the system
    zone; the calculator reads DST rules for it from the system zone.
    """
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def _utc_offset_minutes_at(tz: tzinfo | None, naive: datetime) -> float:
    """UTC offset in minutes that ``tz`` applies to the wall time ``naive``."""
    if tz is None:
        offset = naive.astimezone().utcoffset()
    elif hasattr(tz, "localize"):
        # pytz zones only resolve the right offset through localize()
        offset = tz.localize(naive).utcoffset()
    else:
        offset = naive.replace(tzinfo=tz).utcoffset()
    if offset is None:
        return 0.0
    return offset.total_seconds() / 60


def _rules_zone(tz: tzinfo | None) -> tzinfo | None:
    """Zone whose rules apply to ``tz``. None stands for the system zone.

    ``datetime.astimezone()`` attaches a fixed offset named after the system
    zone ("CEST"), which has no DST rules of its own.
    """
    if isinstance(tz, timezone) and tz.tzname(None) in time.tzname:
        return None
    return tz


def standard_utc_offset_minutes(civil_time: datetime) -> float:
    """Standard (non-DST) UTC offset of ``civil_time``'s zone for its year.

    DST always moves clocks forward, so the smaller of the Jan 2 and Jul 2
    offsets is standard time on both hemispheres. Naive datetimes, and
    the fixed offsets ``astimezone()`` attaches, are read in the system zone.
    """
    tz = _rules_zone(civil_time.tzinfo)
    winter = _utc_offset_minutes_at(tz, datetime(civil_time.year, 1, 2))
    summer = _utc_offset_minutes_at(tz, datetime(civil_time.year, 7, 2))
    return min(winter, summer)


def calculate_true_solar_time(
    civil_time: datetime, longitude: float
) -> tuple[datetime, float]:
    """Convert civil clock time to local mean solar time.

    The timezone central meridian is taken from the standard offset, so the
    result does not jump at DST transitions. The longitude correction is
    then added to the civil clock as given (DST included).

    Example: -74° in America/New_York (standard -300 min)
      central meridian -75°, offset +1° → solar clock 4 minutes ahead.

    Args:
        civil_time: Clock time. Aware, or naive meaning the system zone.
        longitude: Observer longitude in degrees, east positive.

    Returns:
        (solar_time, offset_minutes). ``solar_time`` carries the same tzinfo
        as ``civil_time``; its wall fields read the solar clock. A NaN
        longitude yields a NaN offset and the civil time unchanged.
    """
    central_meridian = standard_utc_offset_minutes(civil_time) / 60 * DEGREES_PER_HOUR
    offset_minutes = (longitude - central_meridian) * MINUTES_PER_DEGREE
    if not math.isfinite(offset_minutes):
        return civil_time, offset_minutes
    return civil_time + timedelta(minutes=offset_minutes), offset_minutes


def get_shichen_from_solar_time(solar_time: datetime) -> ShichenData:
    """Map a solar clock time onto its double-hour.

    Zi starts at 23:00, so the day is shifted by one hour before dividing
    into 120-minute periods. Each period includes its start minute.
    """
    total_minutes = solar_time.hour * 60 + solar_time.minute
    adjusted = (total_minutes + 60) % MINUTES_PER_DAY
    index = adjusted // SHICHEN_MINUTES
    elapsed = adjusted % SHICHEN_MINUTES
    return ShichenData(
        index=index,
        branch=EARTHLY_BRANCHES[index],
        hexagram_number=SOVEREIGN_HEXAGRAMS[index],
        progress=elapsed / SHICHEN_MINUTES,
        minutes_to_next=float(SHICHEN_MINUTES - elapsed),
    )


def timezone_longitude_estimate(civil_time: datetime) -> float:
    """Longitude implied by the current UTC offset (15° per hour)."""
    if civil_time.tzinfo is None:
        civil_time = civil_time.astimezone()
    offset = civil_time.utcoffset() or timedelta()
    return offset.total_seconds() / 3600 * DEGREES_PER_HOUR


def build_solar_time_data(
    civil_time: datetime, position: GeoPosition | None
) -> SolarTimeData:
    """Compute a full SolarTimeData snapshot.

    Args:
        civil_time: Aware civil clock time.
        position: Latest known position. None falls back to the timezone
            estimate with low precision.

    Returns:
        SolarTimeData for ``civil_time``.
    """
    if position is None:
        position = GeoPosition(
            longitude=timezone_longitude_estimate(civil_time),
            latitude=0.0,
            precision="low",
            timestamp=civil_time,
        )

    solar_time, offset_minutes = calculate_true_solar_time(civil_time, position.longitude)
    shichen = get_shichen_from_solar_time(solar_time)

    return SolarTimeData(
        civil_time=civil_time,
        solar_time=solar_time,
        solar_offset_minutes=offset_minutes,
        precision=position.precision,
        shichen=shichen,
        longitude=position.longitude,
        hour=civil_time.hour,
        minute=civil_time.minute,
        solar_hour=solar_time.hour,
        solar_minute=solar_time.minute,
        earthly_branch=shichen.branch,
        earthly_branch_index=shichen.index,
        branch_progress=shichen.progress,
    )


def branch_at_offset(index: int, offset: int) -> EarthlyBranch:
    """Branch ``offset`` double-hours away from ``index``, wrapping around the day."""
    return EARTHLY_BRANCHES[(index + offset) % len(EARTHLY_BRANCHES)]


def branch_progress(offset: int, current_progress: float) -> float:
    """Fill of a branch ``offset`` steps from the current one: past 1, future 0."""
    if offset == 0:
        return current_progress
    if offset < 0:
        return 1.0
    return 0.0


def _format_minutes(total_minutes: float) -> str:
    normalized = total_minutes % MINUTES_PER_DAY
    return f"{int(normalized // 60):02d}:{int(normalized % 60):02d}"


def civil_time_range(branch: EarthlyBranch, solar_offset_minutes: float) -> str:
    """Clock-time span of ``branch`` for a user whose solar clock runs ahead by the offset.

    Returns:
        "HH:MM-HH:MM" on the civil clock, e.g. "11:04-13:04" for wu at -4 min.
    """
    start = BRANCH_INFO[branch].solar_start_minute - solar_offset_minutes
    end = start + SHICHEN_MINUTES
    return f"{_format_minutes(start)}-{_format_minutes(end)}"
