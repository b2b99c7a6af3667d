"""One-off lookup layer: place and local moment in, solar time out."""

from datetime import datetime

import httpx
from pytz import timezone, utc
from timezonefinder import TimezoneFinder

from shichenclock.calculator import build_solar_time_data
from shichenclock.errors import GeocodingError
from shichenclock.models import GeoPosition, ObserverContext, QueryInput, SolarTimeData

_tf = TimezoneFinder()


def _geocode_nominatim(address: str, lang: str) -> tuple[float, float, str] | None:
    """Nominatim (OpenStreetMap) geocoder. Returns (lat, lng, display_name) or None."""
    params = {"q": address, "format": "json", "limit": 1, "accept-language": lang}
    headers = {"User-Agent": "shichenclock/1.0"}
    resp = httpx.get(
        "https://nominatim.openstreetmap.org/search",
        params=params,
        headers=headers,
        timeout=10,
    )
    resp.raise_for_status()
    results = resp.json()
    if not results:
        return None
    r = results[0]
    return float(r["lat"]), float(r["lon"]), r["display_name"]


def locate(lat: float, lng: float, when: str, address_display: str = "") -> ObserverContext:
    """Resolve coordinates and a local time string to an ObserverContext.

    Args:
        lat: Latitude in decimal degrees.
        lng: Longitude in decimal degrees, east positive.
        when: Local time string in "YYYY-MM-DD HH:MM" format.
        address_display: Label for the place; defaults to the coordinates.

    Returns:
        ObserverContext with the UTC datetime and the location's zone name.

    Raises:
        GeocodingError: When no timezone covers the coordinates.
        ValueError: When ``when`` is malformed.
        pytz.InvalidTimeError: When ``when`` falls in a DST gap or overlap.
    """
    dt = datetime.strptime(when, "%Y-%m-%d %H:%M")
    tz_str = _tf.timezone_at(lat=lat, lng=lng)
    if tz_str is None:
        raise GeocodingError(f"Timezone not found: lat={lat}, lng={lng}")
    local_tz = timezone(tz_str)
    utc_dt = local_tz.localize(dt, is_dst=None).astimezone(utc)

    return ObserverContext(
        lat=lat,
        lng=lng,
        utc_dt=utc_dt,
        tz_name=tz_str,
        address_display=address_display or f"{lat:.4f}, {lng:.4f}",
    )


def geocode_address(address: str, when: str, lang: str = "en") -> ObserverContext:
    """Resolve an address string and time string to an ObserverContext.

    Raises:
        GeocodingError: On API error or when the address cannot be found.
    """
    try:
        result = _geocode_nominatim(address, lang)
    except httpx.HTTPError as exc:
        raise GeocodingError(f"Geocoder request failed: {exc}") from exc
    if result is None:
        raise GeocodingError(f"Address not found: {address}")
    lat, lng, address_display = result
    return locate(lat, lng, when, address_display=address_display)


def compute_solar_time(context: ObserverContext) -> SolarTimeData:
    """Solar time and shichen at the context's place and moment.

    The civil clock is the one of the location's own zone, so the central
    meridian follows that zone's standard offset.
    """
    civil_time = context.utc_dt.astimezone(timezone(context.tz_name))
    position = GeoPosition(
        longitude=context.lng,
        latitude=context.lat,
        precision="high",
        timestamp=context.utc_dt,
    )
    return build_solar_time_data(civil_time, position)


def run(query: QueryInput) -> SolarTimeData:
    """Top-level entry point: takes a QueryInput and returns a SolarTimeData."""
    context = geocode_address(query.address, query.when)
    return compute_solar_time(context)
