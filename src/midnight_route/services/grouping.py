"""Partition locations into timezone buckets ordered along the midnight sweep."""

from __future__ import annotations

from typing import Sequence

from ..models.domain import Location
from .routing.models import TimezoneBucket


def group_by_timezone(locations: Sequence[Location]) -> list[TimezoneBucket]:
    """Bucket locations by rounded UTC offset, earliest midnight (UTC+14) first.

    Members keep their input order; routing decides the visiting order later.
    """

    groups: dict[int, list[Location]] = {}
    for location in locations:
        groups.setdefault(location.utc_offset_rounded, []).append(location)
    return [
        TimezoneBucket(utc_offset=offset, members=groups[offset])
        for offset in sorted(groups, reverse=True)
    ]
