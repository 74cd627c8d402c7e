"""Serializers for generated routes."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

from ...schemas.route import BucketSummary, FlightWindow, RouteSummary
from ..routing.models import FlightPlan, RouteStop, TimezoneBucket

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

WEATHER_FIELDS = [
    "temperature_c",
    "weather_condition",
    "wind_speed_mps",
    "wind_direction_deg",
    "wind_gust_mps",
]

ROUTE_FIELDS = [
    "stop_number",
    "city",
    "country",
    "lat",
    "lng",
    "timezone",
    "utc_offset",
    "utc_offset_rounded",
    "utc_time",
    "local_time",
    "population",
    *WEATHER_FIELDS,
]


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse an output timestamp as a UTC instant."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def stop_to_record(stop: RouteStop) -> dict[str, str]:
    location = stop.location
    record = {
        "stop_number": str(stop.sequence),
        "city": location.city,
        "country": location.country,
        "lat": _format_number(location.latitude),
        "lng": _format_number(location.longitude),
        "timezone": location.timezone,
        "utc_offset": _format_number(location.utc_offset),
        "utc_offset_rounded": str(location.utc_offset_rounded),
        "utc_time": format_timestamp(stop.utc_time),
        "local_time": format_timestamp(stop.local_time),
        "population": "" if location.population is None else str(location.population),
    }
    # Filled later by the weather enrichment job.
    record.update({name: "" for name in WEATHER_FIELDS})
    return record


def records_to_csv(records: Iterable[Mapping[str, str]], fieldnames: Sequence[str] = ROUTE_FIELDS) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(fieldnames), lineterminator="\n", extrasaction="ignore")
    writer.writeheader()
    for record in records:
        writer.writerow(record)
    return buffer.getvalue()


def stops_to_csv(stops: Sequence[RouteStop]) -> str:
    return records_to_csv(stop_to_record(stop) for stop in stops)


def flight_window(stops: Sequence[RouteStop], live_flight_file: str) -> FlightWindow:
    """Summarise when the route starts and ends."""

    if not stops:
        raise ValueError("Cannot build a flight window for an empty route.")
    start = stops[0].utc_time.replace(microsecond=0)
    end = stops[-1].utc_time.replace(microsecond=0)
    return FlightWindow(
        live_flight_file=live_flight_file,
        start=format_timestamp(start),
        end=format_timestamp(end),
        start_iso=start.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        end_iso=end.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        start_ms=int(start.timestamp() * 1000),
        end_ms=int(end.timestamp() * 1000),
    )


def bucket_summary(bucket: TimezoneBucket) -> BucketSummary:
    return BucketSummary(
        utc_offset=bucket.utc_offset,
        heading=bucket.heading.value,
        stop_count=len(bucket.tour),
        origin_leg_km=bucket.origin_leg_km,
        tour_distance_km=bucket.tour_distance_km,
        construction_distance_km=bucket.construction_distance_km,
        optimized_distance_km=bucket.optimized_distance_km,
        transit_out_km=bucket.transit_out_km,
        speed_kmh=bucket.speed_kmh,
        speed_fallback=bucket.speed_fallback,
        midnight_utc=bucket.midnight_utc,
        first_stop=bucket.entry.city if bucket.entry else None,
        last_stop=bucket.exit.city if bucket.exit else None,
    )


def route_summary(plan: FlightPlan) -> RouteSummary:
    return RouteSummary(
        stop_count=len(plan.stops),
        timezone_count=len(plan.buckets),
        total_distance_km=plan.total_distance_km,
        time_span_hours=plan.time_span_hours,
        average_speed_kmh=plan.average_speed_kmh,
        return_speed_kmh=plan.return_speed_kmh,
        reference_midnight_utc=plan.reference_midnight_utc,
        buckets=[bucket_summary(bucket) for bucket in plan.buckets],
    )
