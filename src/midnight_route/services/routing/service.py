"""Route generation orchestration service."""

from __future__ import annotations

import logging
import random
from datetime import time
from pathlib import Path
from typing import Optional, Sequence

from ...config import Settings, settings as default_settings
from ...data.locations_repository import load_locations
from ...models.domain import Location, build_origin
from ...persistence.filesystem import FileStorage
from ..export.geojson import route_to_geojson
from ..grouping import group_by_timezone
from ..outputs.route_formatter import flight_window, route_summary, stops_to_csv
from .assembler import assemble_route
from .models import FlightPlan
from .solver import RouterOptions, assign_headings, optimize_bucket
from .timing import MidnightStep, resolve_reference_midnight, schedule_route

# Relative slack allowed when checking speed x 1 h against the crossing distance.
_SPEED_TOLERANCE = 1e-9


class RouteGenerationError(RuntimeError):
    """The engine could not produce a fully consistent route."""


def build_rng(perturb: bool, seed: Optional[int] = None) -> Optional[random.Random]:
    """Random source for the cluster shuffle; None when perturbation is off."""

    if not perturb:
        return None
    return random.Random(seed)


def generate_flight_plan(
    locations: Sequence[Location],
    *,
    rng: Optional[random.Random] = None,
    config: Settings | None = None,
    origin: Location | None = None,
) -> FlightPlan:
    """Group, route, time and assemble the full journey."""

    config = config or default_settings
    if not locations:
        raise RouteGenerationError("No locations to route.")

    origin = origin or build_origin(config)
    buckets = group_by_timezone(locations)
    assign_headings(buckets)
    logging.info(
        f"Routing {len(locations)} locations across {len(buckets)} timezones: "
        f"{' -> '.join(bucket.label for bucket in buckets)}"
    )

    options = RouterOptions(
        max_iterations=config.two_opt_max_iterations,
        cluster_radius_km=config.cluster_radius_km,
    )
    for bucket in buckets:
        optimize_bucket(bucket, rng=rng, options=options)

    reference = resolve_reference_midnight(buckets[0].utc_offset, config)
    try:
        schedule = schedule_route(
            buckets,
            origin,
            reference_midnight=reference,
            step=config.midnight_step,
            fallback_speed_kmh=config.fallback_speed_kmh,
        )
        stops = assemble_route(origin, buckets, schedule)
    except ValueError as exc:
        raise RouteGenerationError(str(exc)) from exc

    plan = FlightPlan(
        origin=origin,
        reference_midnight_utc=reference,
        buckets=buckets,
        stops=stops,
        return_speed_kmh=schedule.return_speed_kmh,
    )
    validate_flight_plan(plan, expected_locations=len(locations), step=config.midnight_step)
    _log_plan(plan)
    return plan


def validate_flight_plan(
    plan: FlightPlan,
    expected_locations: Optional[int] = None,
    step: MidnightStep = "position",
) -> None:
    """Raise RouteGenerationError unless the route-wide ordering and timing checks pass."""

    stops = plan.stops
    if len(stops) < 3:
        raise RouteGenerationError(f"Route has only {len(stops)} stops.")
    if expected_locations is not None and len(stops) != expected_locations + 2:
        raise RouteGenerationError(
            f"Route has {len(stops)} stops for {expected_locations} locations plus origin and return."
        )
    if not (stops[0].is_origin and stops[-1].is_origin):
        raise RouteGenerationError("Route must start and end at the origin waypoint.")

    for expected, stop in enumerate(stops, start=1):
        if stop.sequence != expected:
            raise RouteGenerationError(f"Stop numbering breaks at {expected} (found {stop.sequence}).")
    for previous, current in zip(stops, stops[1:]):
        if current.utc_time < previous.utc_time:
            raise RouteGenerationError(
                f"Stop {current.sequence} ({current.location.city}) is timed before stop {previous.sequence}."
            )

    first_stop_by_bucket = {}
    for stop in stops:
        if stop.bucket_offset is not None:
            first_stop_by_bucket.setdefault(stop.bucket_offset, stop)
    first_offset = plan.buckets[0].utc_offset if plan.buckets else 0
    for position, bucket in enumerate(plan.buckets):
        first = first_stop_by_bucket.get(bucket.utc_offset)
        if first is None or first.utc_time != bucket.midnight_utc:
            raise RouteGenerationError(f"{bucket.label} does not start at its midnight instant.")
        if first.local_time.time() != time(0, 0):
            # One UTC hour per position only lands on midnight while offsets stay contiguous.
            if step == "position" and first_offset - bucket.utc_offset != position:
                logging.warning(
                    f"{bucket.label} follows a gap in offsets; its first stop reads "
                    f"{first.local_time:%H:%M} local instead of midnight"
                )
            else:
                raise RouteGenerationError(
                    f"{bucket.label} starts at {first.local_time:%H:%M:%S} local time, not midnight."
                )
        if bucket.speed_fallback:
            continue
        # Each window is one hour, so speed in km/h equals the distance covered.
        if abs(bucket.speed_kmh - bucket.crossing_distance_km) > _SPEED_TOLERANCE * max(1.0, bucket.crossing_distance_km):
            raise RouteGenerationError(f"{bucket.label} cannot cover its distance in one hour.")


def _log_plan(plan: FlightPlan) -> None:
    for idx, bucket in enumerate(plan.buckets):
        parts = []
        if idx == 0:
            parts.append(f"{bucket.origin_leg_km:.0f} km from {plan.origin.city}")
        parts.append(f"{bucket.tour_distance_km:.0f} km visiting {len(bucket.tour)} stops")
        if bucket.transit_out_km > 0:
            parts.append(f"{bucket.transit_out_km:.0f} km to next timezone")
        logging.info(
            f"{bucket.label} heading {bucket.heading.value}: {' + '.join(parts)} "
            f"= {bucket.crossing_distance_km:.0f} km -> {bucket.speed_kmh:.0f} km/h"
        )
    logging.info(
        f"Route: {len(plan.stops)} stops, {plan.total_distance_km:.0f} km over "
        f"{plan.time_span_hours:.1f} h (average {plan.average_speed_kmh:.0f} km/h)"
    )


def output_paths(destination: Path) -> dict[str, Path]:
    """Companion files written next to the route CSV."""

    return {
        "route": destination,
        "window": destination.with_name(f"{destination.stem}.window.json"),
        "summary": destination.with_name(f"{destination.stem}.summary.json"),
        "geojson": destination.with_name(f"{destination.stem}.geojson"),
    }


def run_generation(
    source: Optional[Path] = None,
    destination: Optional[Path] = None,
    *,
    perturb: Optional[bool] = None,
    seed: Optional[int] = None,
    geojson: bool = False,
    config: Settings | None = None,
    storage: FileStorage | None = None,
) -> FlightPlan:
    """Load locations, generate the route and write every output, or nothing at all."""

    config = config or default_settings
    destination = destination or config.output_file
    if storage is None:
        destination = destination.resolve()
        storage = FileStorage(root=destination.parent)
    perturb = config.perturb_clusters if perturb is None else perturb
    seed = config.random_seed if seed is None else seed

    report = load_locations(source or config.locations_file, origin_name=config.origin_name)
    if report.skipped_origin:
        logging.info(f"Skipped {report.skipped_origin} input rows naming the origin {config.origin_name}")
    plan = generate_flight_plan(report.locations, rng=build_rng(perturb, seed), config=config)

    paths = output_paths(storage.resolve(destination))
    csv_text = stops_to_csv(plan.stops)
    window = flight_window(plan.stops, paths["route"].stem)
    summary = route_summary(plan)
    path_geojson = route_to_geojson(plan.stops, config.geojson_step_km) if geojson else None

    with storage.staged() as batch:
        batch.write_text(paths["route"], csv_text)
        batch.write_json(paths["window"], window.model_dump(mode="json"))
        batch.write_json(paths["summary"], summary.model_dump(mode="json"))
        if path_geojson is not None:
            batch.write_json(paths["geojson"], path_geojson)

    logging.info(f"Written {len(plan.stops)} stops to {paths['route']}")
    return plan
