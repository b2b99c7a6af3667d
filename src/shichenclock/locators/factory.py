"""
shichenclock.locators.factory
-----------------------------
Turns Settings into a live composite locator.
"""

from shichenclock.config import Settings
from shichenclock.locators.base import GeoLocator
from shichenclock.locators.composite import CompositeGeoLocator
from shichenclock.locators.gps import GpsGeoLocator
from shichenclock.locators.ip import IpGeoLocator
from shichenclock.locators.platform import FixedLocationPlatform, LocationPlatform
from shichenclock.locators.timezone import TimezoneGeoLocator


async def build_locator(
    settings: Settings, *, platform: LocationPlatform | None = None
) -> CompositeGeoLocator:
    """Assemble timezone + optional network + optional GPS sources.

    Args:
        settings: Runtime configuration.
        platform: Location API for the GPS source. Defaults to the configured
            fixed coordinate; without either, no GPS source is added.

    Returns:
        CompositeGeoLocator with GPS permission already read from the platform.
    """
    locators: list[GeoLocator] = [TimezoneGeoLocator(tz=settings.tzinfo)]

    if settings.ip_lookup:
        locators.append(IpGeoLocator(url=settings.ip_lookup_url))

    if platform is None and settings.latitude is not None and settings.longitude is not None:
        platform = FixedLocationPlatform(
            settings.latitude, settings.longitude, accuracy=settings.accuracy_m
        )
    if platform is not None:
        gps = GpsGeoLocator(platform)
        await gps.refresh_permission()
        locators.append(gps)

    return CompositeGeoLocator(locators, reevaluate_interval=settings.reevaluate_interval)
