"""Data access helpers for loading the location dataset."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional

from ..config import settings
from ..models.domain import Location, round_offset

_ALIASES = {
    "location_id": ("stop_number", "id", "location_id"),
    "city": ("city", "city_ascii", "name"),
    "country": ("country",),
    "latitude": ("lat", "latitude"),
    "longitude": ("lng", "lon", "longitude"),
    "timezone": ("timezone", "tz"),
    "utc_offset": ("utc_offset", "offset"),
    "utc_offset_rounded": ("utc_offset_rounded",),
    "population": ("population",),
}


class MalformedRow(ValueError):
    """A row that cannot become a Location."""


@dataclass(slots=True)
class LoadReport:
    locations: tuple[Location, ...]
    dropped: int = 0
    skipped_origin: int = 0


def _field(row: Mapping[str, Optional[str]], name: str) -> str:
    for key in _ALIASES[name]:
        value = row.get(key)
        if value is not None and value.strip() != "":
            return value.strip()
    return ""


def _coerce_float(value: str, label: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise MalformedRow(f"Unable to parse {label} from value '{value}'") from exc
    if not math.isfinite(number):
        raise MalformedRow(f"Non-finite {label} '{value}'")
    return number


def _coerce_population(value: str) -> Optional[int]:
    if value == "":
        return None
    try:
        return int(float(value.replace(",", "")))
    except ValueError:
        return None


def parse_location(row: Mapping[str, Optional[str]], fallback_id: str) -> Location:
    """Build a Location from one CSV row, raising MalformedRow when it cannot."""

    lat_raw, lon_raw = _field(row, "latitude"), _field(row, "longitude")
    if not lat_raw or not lon_raw:
        raise MalformedRow("Missing coordinates")
    latitude = _coerce_float(lat_raw, "latitude")
    longitude = _coerce_float(lon_raw, "longitude")
    if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
        raise MalformedRow(f"Coordinates out of range: ({latitude}, {longitude})")

    offset_raw = _field(row, "utc_offset")
    utc_offset = _coerce_float(offset_raw, "utc_offset") if offset_raw else 0.0
    rounded_raw = _field(row, "utc_offset_rounded")
    if rounded_raw:
        utc_offset_rounded = int(round(_coerce_float(rounded_raw, "utc_offset_rounded")))
    else:
        utc_offset_rounded = round_offset(utc_offset)

    return Location(
        location_id=_field(row, "location_id") or fallback_id,
        city=_field(row, "city") or "Unknown",
        country=_field(row, "country") or "Unknown",
        latitude=latitude,
        longitude=longitude,
        timezone=_field(row, "timezone"),
        utc_offset=utc_offset,
        utc_offset_rounded=utc_offset_rounded,
        population=_coerce_population(_field(row, "population")),
    )


def read_locations(rows: Iterable[Mapping[str, Optional[str]]], *, origin_name: Optional[str] = None) -> LoadReport:
    """Turn raw rows into Locations, dropping malformed rows and any row naming the origin."""

    origin_key = (origin_name or "").strip().lower()
    locations: list[Location] = []
    dropped = 0
    skipped_origin = 0
    for index, row in enumerate(rows, start=1):
        try:
            location = parse_location(row, fallback_id=str(index))
        except MalformedRow as exc:
            dropped += 1
            logging.debug(f"Dropping location row {index}: {exc}")
            continue
        if origin_key and location.city.lower() == origin_key:
            skipped_origin += 1
            continue
        locations.append(location)

    if dropped:
        logging.warning(f"Dropped {dropped} malformed location rows")
    return LoadReport(locations=tuple(locations), dropped=dropped, skipped_origin=skipped_origin)


def load_locations(source: Optional[Path] = None, *, origin_name: Optional[str] = None) -> LoadReport:
    """Load locations from the configured CSV file."""

    csv_path = source or settings.locations_file
    if not csv_path.exists():
        raise FileNotFoundError(f"Location file not found: {csv_path}")

    with csv_path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Location file '{csv_path}' is missing a header row.")
        report = read_locations(reader, origin_name=origin_name if origin_name is not None else settings.origin_name)

    logging.info(f"Loaded {len(report.locations)} locations from {csv_path}")
    return report
