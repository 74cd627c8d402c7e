"""Domain models for location records and the synthetic origin."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..config import Settings, settings as default_settings


@dataclass(frozen=True, slots=True, eq=False)
class Location:
    """A place the route visits. Equality is identity: duplicate coordinates are distinct stops."""

    location_id: str
    city: str
    country: str
    latitude: float
    longitude: float
    timezone: str
    utc_offset: float
    utc_offset_rounded: int
    population: Optional[int] = None


def round_offset(offset: float) -> int:
    """Round an exact UTC offset half up (+5.5 -> 6, -3.5 -> -3)."""

    return math.floor(offset + 0.5)


def build_origin(config: Settings | None = None) -> Location:
    """Return the synthetic start/end waypoint described by the settings."""

    config = config or default_settings
    return Location(
        location_id="origin",
        city=config.origin_name,
        country=config.origin_country,
        latitude=config.origin_latitude,
        longitude=config.origin_longitude,
        timezone=config.origin_timezone,
        utc_offset=config.origin_utc_offset,
        utc_offset_rounded=round_offset(config.origin_utc_offset),
        population=0,
    )
