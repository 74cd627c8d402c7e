"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ...models.domain import Location
from ..geospatial import path_length_km


class Heading(str, Enum):
    SOUTH = "south"
    NORTH = "north"

    def flipped(self) -> "Heading":
        return Heading.NORTH if self is Heading.SOUTH else Heading.SOUTH


@dataclass(slots=True)
class TimezoneBucket:
    """All locations sharing one rounded UTC offset, routed and timed as a unit."""

    utc_offset: int
    members: List[Location]
    heading: Heading = Heading.SOUTH
    tour: List[Location] = field(default_factory=list)
    construction_distance_km: float = 0.0
    optimized_distance_km: float = 0.0
    tour_distance_km: float = 0.0
    transit_out_km: float = 0.0
    origin_leg_km: float = 0.0
    speed_kmh: float = 0.0
    speed_fallback: bool = False
    midnight_utc: Optional[datetime] = None

    @property
    def label(self) -> str:
        return f"UTC{self.utc_offset:+d}"

    @property
    def crossing_distance_km(self) -> float:
        """Distance this bucket must cover inside its one-hour window."""
        return self.origin_leg_km + self.tour_distance_km + self.transit_out_km

    @property
    def entry(self) -> Optional[Location]:
        return self.tour[0] if self.tour else None

    @property
    def exit(self) -> Optional[Location]:
        return self.tour[-1] if self.tour else None


@dataclass(slots=True)
class Schedule:
    departure_utc: datetime
    return_utc: datetime
    arrivals: List[List[datetime]]
    return_speed_kmh: float


@dataclass(slots=True)
class RouteStop:
    sequence: int
    location: Location
    utc_time: datetime
    local_time: datetime
    bucket_offset: Optional[int] = None
    is_origin: bool = False


@dataclass(slots=True)
class FlightPlan:
    origin: Location
    reference_midnight_utc: datetime
    buckets: List[TimezoneBucket]
    stops: List[RouteStop]
    return_speed_kmh: float

    @property
    def total_distance_km(self) -> float:
        return path_length_km([stop.location for stop in self.stops])

    @property
    def time_span_hours(self) -> float:
        if not self.stops:
            return 0.0
        return (self.stops[-1].utc_time - self.stops[0].utc_time).total_seconds() / 3600.0

    @property
    def average_speed_kmh(self) -> float:
        hours = self.time_span_hours
        return self.total_distance_km / hours if hours > 0 else 0.0
