"""Move an already generated route to another calendar day."""

from __future__ import annotations

import csv
import io
import logging
from datetime import timedelta
from pathlib import Path

from ...persistence.filesystem import FileStorage
from .route_formatter import format_timestamp, parse_timestamp, records_to_csv

TIME_FIELDS = ("utc_time", "local_time")


def shift_timestamp(value: str, days: int) -> str:
    if not value:
        return value
    return format_timestamp(parse_timestamp(value) + timedelta(days=days))


def shift_route_dates(rows: list[dict[str, str]], days: int) -> list[dict[str, str]]:
    """Return copies of the rows with every timestamp moved by whole days."""

    shifted: list[dict[str, str]] = []
    for row in rows:
        updated = dict(row)
        for name in TIME_FIELDS:
            if name in updated:
                updated[name] = shift_timestamp(updated[name] or "", days)
        shifted.append(updated)
    return shifted


def shift_route_file(path: Path, days: int, storage: FileStorage | None = None) -> int:
    """Rewrite a route CSV in place with its dates moved; returns the row count."""

    storage = storage or FileStorage(root=path.parent)
    reader = csv.DictReader(io.StringIO(storage.read_text(path)))
    fieldnames = reader.fieldnames
    if not fieldnames:
        raise ValueError(f"Route file '{path}' is missing a header row.")
    missing = [name for name in TIME_FIELDS if name not in fieldnames]
    if missing:
        raise ValueError(f"Route file '{path}' has no {', '.join(missing)} column")

    rows = shift_route_dates(list(reader), days)
    storage.write_csv(path, records_to_csv(rows, fieldnames))
    logging.info(f"Shifted {len(rows)} stops in {path} by {days:+d} day(s)")
    return len(rows)
