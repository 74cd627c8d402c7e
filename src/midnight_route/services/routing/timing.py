"""Per-timezone speed assignment and absolute timestamps.

Every bucket owns exactly one hour of wall-clock travel starting at its local
midnight. The distance it must cover in that hour is its own tour plus the
transit leg to the next bucket's first stop (the departing bucket pays for the
transit), and for the first bucket also the leg out from the origin.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Literal, Sequence

from ...config import Settings, settings as default_settings
from ...models.domain import Location
from ..geospatial import distance_km
from .models import Schedule, TimezoneBucket

ONE_HOUR = timedelta(hours=1)

MidnightStep = Literal["position", "offset"]


def resolve_reference_midnight(first_offset: float, config: Settings | None = None) -> datetime:
    """UTC instant at which the first bucket reaches local midnight.

    An explicit ``reference_midnight_utc`` wins; otherwise it is midnight of
    ``flight_date`` in the first bucket's offset.
    """

    config = config or default_settings
    if config.reference_midnight_utc is not None:
        return config.reference_midnight_utc
    local_midnight = datetime.combine(config.flight_date, time(0, 0), tzinfo=timezone.utc)
    return local_midnight - timedelta(hours=first_offset)


def assign_midnights(
    buckets: Sequence[TimezoneBucket],
    reference_midnight: datetime,
    step: MidnightStep = "position",
) -> None:
    """Set each bucket's midnight instant.

    ``position`` places bucket i exactly i UTC hours after the reference,
    whatever the actual offset gap between neighbours. ``offset`` uses the
    difference from the first bucket's offset instead.
    """

    if not buckets:
        return
    first_offset = buckets[0].utc_offset
    for position, bucket in enumerate(buckets):
        if step == "position":
            hours = position
        elif step == "offset":
            hours = first_offset - bucket.utc_offset
        else:
            raise ValueError(f"Unknown midnight step policy '{step}'")
        bucket.midnight_utc = reference_midnight + timedelta(hours=hours)


def assign_speeds(
    buckets: Sequence[TimezoneBucket],
    origin: Location,
    fallback_speed_kmh: float = default_settings.fallback_speed_kmh,
) -> None:
    """Compute transit legs and the one-hour crossing speed of every bucket.

    A bucket with nothing to cover carries the previous bucket's speed forward
    (the first bucket falls back to ``fallback_speed_kmh``) and is flagged.
    """

    for idx, bucket in enumerate(buckets):
        if not bucket.tour:
            raise ValueError(f"{bucket.label} has no tour; route buckets before timing them.")
        bucket.origin_leg_km = distance_km(origin, bucket.tour[0]) if idx == 0 else 0.0
        if idx + 1 < len(buckets):
            bucket.transit_out_km = distance_km(bucket.tour[-1], buckets[idx + 1].tour[0])
        else:
            bucket.transit_out_km = 0.0

        total = bucket.crossing_distance_km
        if total > 0:
            # Distance covered in exactly one hour is the speed in km/h.
            bucket.speed_kmh = total
            bucket.speed_fallback = False
            continue

        bucket.speed_kmh = buckets[idx - 1].speed_kmh if idx > 0 else fallback_speed_kmh
        bucket.speed_fallback = True
        logging.warning(
            f"{bucket.label} has zero crossing distance; using {bucket.speed_kmh:.1f} km/h instead"
        )


def stop_arrivals(bucket: TimezoneBucket) -> list[datetime]:
    """Arrival instants for the bucket's tour, first stop exactly at midnight."""

    if bucket.midnight_utc is None:
        raise ValueError(f"{bucket.label} has no midnight instant assigned.")
    if bucket.speed_kmh <= 0:
        raise ValueError(f"{bucket.label} has no usable speed.")

    window_end = bucket.midnight_utc + ONE_HOUR
    arrivals: list[datetime] = []
    travelled = 0.0
    for idx, location in enumerate(bucket.tour):
        if idx > 0:
            travelled += distance_km(bucket.tour[idx - 1], location)
        arrival = bucket.midnight_utc + timedelta(hours=travelled / bucket.speed_kmh)
        # Float rounding must not push a stop into the next bucket's window.
        arrivals.append(min(arrival, window_end))
    return arrivals


def schedule_route(
    buckets: Sequence[TimezoneBucket],
    origin: Location,
    *,
    reference_midnight: datetime,
    step: MidnightStep = "position",
    fallback_speed_kmh: float = default_settings.fallback_speed_kmh,
) -> Schedule:
    """Time the whole journey, including origin departure and return."""

    if not buckets:
        raise ValueError("Cannot schedule a route without timezone buckets.")

    assign_midnights(buckets, reference_midnight, step)
    assign_speeds(buckets, origin, fallback_speed_kmh)
    arrivals = [stop_arrivals(bucket) for bucket in buckets]

    first, last = buckets[0], buckets[-1]
    departure = first.midnight_utc - timedelta(hours=first.origin_leg_km / first.speed_kmh)

    return_speed = (first.speed_kmh + last.speed_kmh) / 2
    if return_speed <= 0:
        return_speed = fallback_speed_kmh
    return_leg_km = distance_km(last.tour[-1], origin)
    returned = arrivals[-1][-1] + timedelta(hours=return_leg_km / return_speed)

    return Schedule(
        departure_utc=departure,
        return_utc=returned,
        arrivals=arrivals,
        return_speed_kmh=return_speed,
    )
