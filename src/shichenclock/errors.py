"""Exception hierarchy."""


class ShichenClockError(Exception):
    """Base error."""


class PermissionNotGrantedError(ShichenClockError):
    """Location requested from a source whose permission is not granted."""


class LocationUnavailableError(ShichenClockError):
    """Platform or network failure while fetching a one-shot position."""


class GeocodingError(ShichenClockError):
    """Geocoder call failure."""


class ConfigError(ShichenClockError, ValueError):
    """Invalid environment configuration value."""
