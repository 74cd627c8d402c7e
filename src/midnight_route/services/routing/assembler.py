"""Concatenate timed bucket tours into the numbered stop sequence."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...models.domain import Location
from .models import RouteStop, Schedule, TimezoneBucket


def local_time_for(location: Location, utc_time: datetime, offset: Optional[float] = None) -> datetime:
    """Wall-clock time (naive) of a UTC instant.

    Route stops are shifted by their timezone bucket's whole-hour offset so the
    bucket's first stop reads midnight even for half-hour zones; without
    ``offset`` the location's exact offset is used.
    """

    hours = location.utc_offset if offset is None else offset
    return (utc_time + timedelta(hours=hours)).replace(tzinfo=None)


def assemble_route(
    origin: Location,
    buckets: Sequence[TimezoneBucket],
    schedule: Schedule,
) -> list[RouteStop]:
    """Origin departure, every bucket's tour in order, origin return; numbered from 1."""

    if len(schedule.arrivals) != len(buckets):
        raise ValueError(
            f"Schedule covers {len(schedule.arrivals)} timezones but {len(buckets)} were routed."
        )

    stops: list[RouteStop] = []

    def _append(location: Location, utc_time: datetime, bucket_offset: Optional[int], is_origin: bool) -> None:
        stops.append(
            RouteStop(
                sequence=len(stops) + 1,
                location=location,
                utc_time=utc_time,
                local_time=local_time_for(location, utc_time, bucket_offset),
                bucket_offset=bucket_offset,
                is_origin=is_origin,
            )
        )

    _append(origin, schedule.departure_utc, None, True)
    for bucket, arrivals in zip(buckets, schedule.arrivals):
        if len(arrivals) != len(bucket.tour):
            raise ValueError(f"{bucket.label}: {len(arrivals)} arrival times for {len(bucket.tour)} stops.")
        for location, arrival in zip(bucket.tour, arrivals):
            _append(location, arrival, bucket.utc_offset, False)
    _append(origin, schedule.return_utc, None, True)
    return stops
