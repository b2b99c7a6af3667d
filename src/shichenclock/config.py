"""Environment-driven settings. Call ``load_dotenv()`` before ``Settings.from_env()``."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import tzinfo

import pytz

from shichenclock.errors import ConfigError
from shichenclock.locators.ip import DEFAULT_LOOKUP_URL

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _float(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration."""

    timezone: str | None = None  # IANA zone for the civil clock; None = system zone
    latitude: float | None = None  # Manual fix served through the GPS locator
    longitude: float | None = None
    accuracy_m: float = 10.0
    ip_lookup: bool = False
    ip_lookup_url: str = DEFAULT_LOOKUP_URL
    reevaluate_interval: float = 0.5
    log_level: str = "WARNING"
    lang: str = "en"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Read SHICHEN_* variables.

        Raises:
            ConfigError: On malformed numbers/booleans, an unknown timezone,
                out-of-range coordinates, or only one of latitude/longitude.
        """
        env = os.environ if environ is None else environ

        tz_name = env.get("SHICHEN_TIMEZONE") or None
        if tz_name is not None:
            try:
                pytz.timezone(tz_name)
            except pytz.UnknownTimeZoneError:
                raise ConfigError(f"Unknown timezone: {tz_name}") from None

        lat = _float(env, "SHICHEN_LATITUDE")
        lng = _float(env, "SHICHEN_LONGITUDE")
        if (lat is None) != (lng is None):
            raise ConfigError("SHICHEN_LATITUDE and SHICHEN_LONGITUDE must be set together")
        if lat is not None and not -90 <= lat <= 90:
            raise ConfigError(f"SHICHEN_LATITUDE out of range: {lat}")
        if lng is not None and not -180 <= lng <= 180:
            raise ConfigError(f"SHICHEN_LONGITUDE out of range: {lng}")

        interval = _float(env, "SHICHEN_REEVALUATE_INTERVAL")
        if interval is None:
            interval = 0.5
        if interval <= 0:
            raise ConfigError("SHICHEN_REEVALUATE_INTERVAL must be positive")
        accuracy = _float(env, "SHICHEN_ACCURACY_M")
        if accuracy is None:
            accuracy = 10.0

        log_level = (env.get("SHICHEN_LOG_LEVEL") or "WARNING").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"Unknown log level: {log_level}")

        return cls(
            timezone=tz_name,
            latitude=lat,
            longitude=lng,
            accuracy_m=accuracy,
            ip_lookup=_bool(env, "SHICHEN_IP_LOOKUP", False),
            ip_lookup_url=env.get("SHICHEN_IP_LOOKUP_URL") or DEFAULT_LOOKUP_URL,
            reevaluate_interval=interval,
            log_level=log_level,
            lang=env.get("SHICHEN_LANG") or "en",
        )

    @property
    def tzinfo(self) -> tzinfo | None:
        return pytz.timezone(self.timezone) if self.timezone else None

    @property
    def has_fixed_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
