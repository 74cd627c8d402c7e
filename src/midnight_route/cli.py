"""Command-line entry point for generating and shifting routes."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from midnight_route.config import settings
from midnight_route.services.outputs.date_shift import shift_route_file
from midnight_route.services.outputs.route_formatter import route_summary
from midnight_route.services.routing.models import FlightPlan
from midnight_route.services.routing.service import run_generation


def _summary_table(plan: FlightPlan) -> Table:
    summary = route_summary(plan)
    table = Table(title=f"Route: {summary.stop_count} stops, {summary.timezone_count} timezones")
    table.add_column("Zone")
    table.add_column("Heading")
    table.add_column("Stops", justify="right")
    table.add_column("Tour km", justify="right")
    table.add_column("Transit km", justify="right")
    table.add_column("Speed km/h", justify="right")
    table.add_column("Midnight UTC")
    table.add_column("First")
    table.add_column("Last")

    for bucket in summary.buckets:
        speed = f"{bucket.speed_kmh:,.0f}" + (" *" if bucket.speed_fallback else "")
        table.add_row(
            f"UTC{bucket.utc_offset:+d}",
            bucket.heading,
            str(bucket.stop_count),
            f"{bucket.tour_distance_km:,.0f}",
            f"{bucket.transit_out_km:,.0f}",
            speed,
            bucket.midnight_utc.strftime("%Y-%m-%d %H:%M"),
            bucket.first_stop or "",
            bucket.last_stop or "",
        )
    table.caption = (
        f"{summary.total_distance_km:,.0f} km in {summary.time_span_hours:.1f} h "
        f"(average {summary.average_speed_kmh:,.0f} km/h)"
    )
    return table


def _cmd_generate(args: argparse.Namespace, console: Console) -> None:
    config = settings
    overrides = {}
    if args.date:
        overrides["flight_date"] = date.fromisoformat(args.date)
    if args.midnight_step:
        overrides["midnight_step"] = args.midnight_step
    if overrides:
        config = settings.model_copy(update=overrides)

    plan = run_generation(
        Path(args.input) if args.input else None,
        Path(args.output) if args.output else None,
        perturb=False if args.no_perturb else None,
        seed=args.seed,
        geojson=args.geojson,
        config=config,
    )
    console.print(_summary_table(plan))


def _cmd_shift(args: argparse.Namespace, console: Console) -> None:
    path = Path(args.route).resolve()
    count = shift_route_file(path, args.days)
    console.print(f"Shifted {count} stops by {args.days:+d} day(s): {path}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="midnight-route")
    ap.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    sub = ap.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Build the timed route from a location CSV")
    gen.add_argument("--input", help=f"Location CSV (default {settings.locations_file})")
    gen.add_argument("--output", help=f"Route CSV to write (default {settings.output_file})")
    gen.add_argument("--seed", type=int, default=None, help="Seed for the cluster shuffle")
    gen.add_argument("--no-perturb", action="store_true", help="Skip the cluster shuffle")
    gen.add_argument("--date", help="Flight date YYYY-MM-DD whose midnight the first timezone hits")
    gen.add_argument("--midnight-step", choices=("position", "offset"), help="Timezone spacing policy")
    gen.add_argument("--geojson", action="store_true", help="Also write the path as GeoJSON")
    gen.set_defaults(handler=_cmd_generate)

    shift = sub.add_parser("shift", help="Move an existing route by whole days")
    shift.add_argument("route", help="Route CSV to rewrite in place")
    shift.add_argument("--days", type=int, required=True, help="Days to add (negative moves back)")
    shift.set_defaults(handler=_cmd_shift)
    return ap


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    console = Console()
    try:
        args.handler(args, console)
    except Exception as exc:
        logging.error(f"{args.command} failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
