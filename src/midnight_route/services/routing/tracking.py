"""Where the traveller is at a given instant."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..geospatial import interpolate
from .models import RouteStop


@dataclass(slots=True)
class Position:
    latitude: float
    longitude: float
    previous_stop: RouteStop
    next_stop: Optional[RouteStop]
    progress: float


def position_at(stops: Sequence[RouteStop], instant: datetime) -> Position:
    """Interpolate along the great circle between the stops bracketing ``instant``.

    Before departure the traveller sits at the first stop; after the return at
    the last. Legs are flown at constant angular speed, matching the timing model.
    """

    if not stops:
        raise ValueError("Cannot locate a position on an empty route.")

    times = [stop.utc_time for stop in stops]
    index = bisect_right(times, instant) - 1
    if index < 0:
        first = stops[0]
        return Position(first.location.latitude, first.location.longitude, first, stops[1] if len(stops) > 1 else None, 0.0)
    if index >= len(stops) - 1:
        last = stops[-1]
        return Position(last.location.latitude, last.location.longitude, last, None, 1.0)

    previous_stop, next_stop = stops[index], stops[index + 1]
    leg_seconds = (next_stop.utc_time - previous_stop.utc_time).total_seconds()
    if leg_seconds <= 0:
        progress = 1.0
    else:
        progress = (instant - previous_stop.utc_time).total_seconds() / leg_seconds
    lat, lon = interpolate(previous_stop.location, next_stop.location, progress)
    return Position(lat, lon, previous_stop, next_stop, progress)
