"""Data model definitions: explicit boundaries between the locate, compute and publish layers."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

LocationPrecision = Literal["high", "medium", "low"]
PermissionState = Literal["undetermined", "granted", "denied", "restricted"]
EarthlyBranch = Literal[
    "zi", "chou", "yin", "mao", "chen", "si", "wu", "wei", "shen", "you", "xu", "hai"
]

PRECISION_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class QueryInput:
    """Raw user input for a one-off lookup. Not yet validated."""

    address: str  # Free-form address ("Shibuya, Tokyo")
    when: str  # "YYYY-MM-DD HH:MM" local time string


@dataclass(frozen=True)
class ObserverContext:
    """Result of geocoding + timezone resolution. Input to solar time computation."""

    lat: float  # Latitude (decimal degrees)
    lng: float  # Longitude (decimal degrees, east positive)
    utc_dt: datetime  # UTC datetime (with tzinfo=utc)
    tz_name: str  # IANA zone of the location ("Asia/Tokyo")
    address_display: str  # Normalized address returned by geocoder (for display)


@dataclass(frozen=True)
class GeoPosition:
    """A position estimate. Superseded by newer positions, never mutated."""

    longitude: float  # Degrees, -180..180
    latitude: float  # Degrees, -90..90 (0 when unknown)
    precision: LocationPrecision
    timestamp: datetime  # When the estimate was acquired
    accuracy_m: float | None = None  # Horizontal accuracy reported by the platform


@dataclass(frozen=True)
class GeoLocatorStatus:
    permission_state: PermissionState
    is_available: bool  # Whether the source can currently deliver positions
    current_precision: LocationPrecision


@dataclass(frozen=True)
class ShichenData:
    """One double-hour and its sovereign hexagram."""

    index: int  # 0..11, 0 = zi starting at solar 23:00
    branch: EarthlyBranch
    hexagram_number: int  # 1..64
    progress: float  # 0.0 <= progress < 1.0
    minutes_to_next: float  # 0 < minutes_to_next <= 120


@dataclass(frozen=True)
class SolarTimeData:
    """The sole output of the solar time provider. Replaced wholesale on each update."""

    civil_time: datetime  # Clock time, timezone/DST as reported by the system
    solar_time: datetime  # Clock time shifted onto the local mean solar clock
    solar_offset_minutes: float  # Positive = solar clock ahead of civil clock
    precision: LocationPrecision
    shichen: ShichenData
    longitude: float
    hour: int
    minute: int
    solar_hour: int
    solar_minute: int
    # Legacy mirror of shichen fields for consumers of the plain time feed
    earthly_branch: EarthlyBranch
    earthly_branch_index: int
    branch_progress: float

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly mapping (datetimes as ISO strings)."""
        return {
            "type": "solar-time",
            "civil_time": self.civil_time.isoformat(),
            "solar_time": self.solar_time.isoformat(),
            "solar_offset_minutes": self.solar_offset_minutes,
            "precision": self.precision,
            "shichen": {
                "index": self.shichen.index,
                "branch": self.shichen.branch,
                "hexagram_number": self.shichen.hexagram_number,
                "progress": self.shichen.progress,
                "minutes_to_next": self.shichen.minutes_to_next,
            },
            "longitude": self.longitude,
            "hour": self.hour,
            "minute": self.minute,
            "solar_hour": self.solar_hour,
            "solar_minute": self.solar_minute,
            "earthly_branch": self.earthly_branch,
            "earthly_branch_index": self.earthly_branch_index,
            "branch_progress": self.branch_progress,
        }
