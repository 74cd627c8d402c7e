"""Intra-timezone tour construction and improvement.

Each timezone bucket is routed independently: fixed entry/exit nodes chosen by
the serpentine heading, a nearest-neighbour construction between them, 2-opt
local search, then a cosmetic shuffle of tightly clustered stops.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Location
from ..geospatial import distance_km, path_length_km
from .models import Heading, TimezoneBucket

# Reversals must beat the current edges by more than this to count as an improvement.
_IMPROVEMENT_EPSILON_KM = 1e-9


@dataclass(slots=True)
class RouterOptions:
    max_iterations: int = settings.two_opt_max_iterations
    cluster_radius_km: float = settings.cluster_radius_km


def assign_headings(buckets: Sequence[TimezoneBucket], first: Heading = Heading.SOUTH) -> None:
    """Alternate south/north across buckets in processing order."""

    heading = first
    for bucket in buckets:
        bucket.heading = heading
        heading = heading.flipped()


def select_endpoints(members: Sequence[Location], heading: Heading) -> tuple[int, int]:
    """Return (entry_index, exit_index) into ``members`` for the given heading.

    Heading south enters at the northernmost member and leaves at the
    southernmost; heading north is the reverse. Ties keep input order.
    """

    if not members:
        raise ValueError("Cannot select endpoints of an empty bucket.")
    north_to_south = sorted(range(len(members)), key=lambda idx: -members[idx].latitude)
    northernmost, southernmost = north_to_south[0], north_to_south[-1]
    if heading is Heading.SOUTH:
        return northernmost, southernmost
    return southernmost, northernmost


def nearest_neighbor_tour(members: Sequence[Location], entry_index: int, exit_index: int) -> list[Location]:
    """Greedy tour from the entry node, appending the exit node last."""

    if len(members) <= 1:
        return list(members)
    if entry_index == exit_index:
        raise ValueError("Entry and exit must be distinct members.")

    entry = members[entry_index]
    remaining = [m for idx, m in enumerate(members) if idx not in (entry_index, exit_index)]
    tour = [entry]
    current = entry
    while remaining:
        nearest_idx = 0
        nearest_dist = float("inf")
        for idx, candidate in enumerate(remaining):
            dist = distance_km(current, candidate)
            if dist < nearest_dist:
                nearest_dist = dist
                nearest_idx = idx
        current = remaining.pop(nearest_idx)
        tour.append(current)
    tour.append(members[exit_index])
    return tour


def two_opt(tour: Sequence[Location], max_iterations: int = settings.two_opt_max_iterations) -> list[Location]:
    """Improve a tour by segment reversal, keeping the first and last positions fixed.

    A pass scans every interior pair (i, j) and reverses ``tour[i:j + 1]`` when
    that strictly shortens the two boundary edges. Passes repeat until one makes
    no change or ``max_iterations`` passes have run.
    """

    route = list(tour)
    if len(route) <= 3:
        return route

    improved = True
    passes = 0
    while improved and passes < max_iterations:
        improved = False
        passes += 1
        for i in range(1, len(route) - 2):
            for j in range(i + 1, len(route) - 1):
                current = distance_km(route[i - 1], route[i]) + distance_km(route[j], route[j + 1])
                candidate = distance_km(route[i - 1], route[j]) + distance_km(route[i], route[j + 1])
                if candidate < current - _IMPROVEMENT_EPSILON_KM:
                    route[i : j + 1] = reversed(route[i : j + 1])
                    improved = True

    if improved and 0 < max_iterations <= passes:
        logging.debug(f"2-opt stopped at the {max_iterations}-pass cap with improvements still available")
    return route


def find_clusters(tour: Sequence[Location], radius_km: float = settings.cluster_radius_km) -> list[tuple[int, int]]:
    """Return half-open (start, end) index ranges of interior runs chained within ``radius_km``.

    A run grows while the next stop lies within the radius of any stop already
    in it. Only runs of two or more stops are returned; entry and exit are
    never part of a run.
    """

    clusters: list[tuple[int, int]] = []
    i = 1
    last = len(tour) - 1
    while i < last:
        run = [tour[i]]
        j = i + 1
        while j < last and any(distance_km(member, tour[j]) <= radius_km for member in run):
            run.append(tour[j])
            j += 1
        if len(run) > 1:
            clusters.append((i, j))
        i = j
    return clusters


def perturb_clusters(
    tour: Sequence[Location],
    rng: random.Random,
    radius_km: float = settings.cluster_radius_km,
) -> list[Location]:
    """Shuffle each tight cluster in place for visual variety."""

    route = list(tour)
    if len(route) <= 3:
        return route
    for start, end in find_clusters(route, radius_km):
        segment = route[start:end]
        rng.shuffle(segment)
        route[start:end] = segment
    return route


def optimize_bucket(
    bucket: TimezoneBucket,
    *,
    rng: Optional[random.Random] = None,
    options: RouterOptions | None = None,
) -> TimezoneBucket:
    """Route one bucket, storing the tour and its distances on the bucket.

    ``rng=None`` skips the cluster shuffle.
    """

    options = options or RouterOptions()
    members = bucket.members
    if len(members) <= 1:
        bucket.tour = list(members)
        bucket.construction_distance_km = 0.0
        bucket.optimized_distance_km = 0.0
        bucket.tour_distance_km = 0.0
        return bucket

    entry_index, exit_index = select_endpoints(members, bucket.heading)
    tour = nearest_neighbor_tour(members, entry_index, exit_index)
    bucket.construction_distance_km = path_length_km(tour)

    tour = two_opt(tour, options.max_iterations)
    bucket.optimized_distance_km = path_length_km(tour)
    if rng is not None:
        tour = perturb_clusters(tour, rng, options.cluster_radius_km)

    bucket.tour = tour
    bucket.tour_distance_km = path_length_km(tour)
    logging.debug(
        f"{bucket.label}: {len(tour)} stops heading {bucket.heading.value}, "
        f"nearest-neighbour {bucket.construction_distance_km:.1f} km -> final {bucket.tour_distance_km:.1f} km"
    )
    return bucket
