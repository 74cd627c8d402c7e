"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Protocol, Sequence

EARTH_RADIUS_KM = 6371.0

# Below this central angle (radians) two points are treated as coincident.
_COINCIDENT_RAD = 1e-9


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    return EARTH_RADIUS_KM * _central_angle(lat1, lon1, lat2, lon2)


def distance_km(a: HasCoordinates, b: HasCoordinates) -> float:
    """Great-circle distance in kilometres between two located objects."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def path_length_km(points: Sequence[HasCoordinates]) -> float:
    """Sum of great-circle legs along an ordered sequence of points."""

    return sum(distance_km(points[i], points[i + 1]) for i in range(len(points) - 1))


def interpolate(a: HasCoordinates, b: HasCoordinates, t: float) -> tuple[float, float]:
    """Return the (lat, lon) a fraction ``t`` of the way along the great circle from ``a`` to ``b``.

    Coincident endpoints return ``a``. Exactly antipodal endpoints have no unique
    great circle; the arc through the pole nearest ``a`` is used.
    """

    t = min(1.0, max(0.0, t))
    d = _central_angle(a.latitude, a.longitude, b.latitude, b.longitude)
    if d < _COINCIDENT_RAD:
        return a.latitude, a.longitude

    va = _to_vector(a.latitude, a.longitude)
    sin_d = math.sin(d)
    if sin_d < _COINCIDENT_RAD:
        perpendicular = _meridian_tangent(a.latitude, a.longitude)
        angle = t * d
        x, y, z = (
            math.cos(angle) * va[i] + math.sin(angle) * perpendicular[i] for i in range(3)
        )
        return _to_lat_lon(x, y, z)

    vb = _to_vector(b.latitude, b.longitude)
    wa = math.sin((1.0 - t) * d) / sin_d
    wb = math.sin(t * d) / sin_d
    x, y, z = (wa * va[i] + wb * vb[i] for i in range(3))
    return _to_lat_lon(x, y, z)


def densify(a: HasCoordinates, b: HasCoordinates, step_km: float) -> list[tuple[float, float]]:
    """Points along the arc from ``a`` to ``b`` no more than ``step_km`` apart, endpoints included."""

    if step_km <= 0:
        raise ValueError("step_km must be positive")
    length = distance_km(a, b)
    segments = max(1, math.ceil(length / step_km))
    return [interpolate(a, b, i / segments) for i in range(segments + 1)]


def _central_angle(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a just outside [0, 1]; sqrt(1 - a) would then be NaN.
    a = min(1.0, max(0.0, a))
    return 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _to_vector(lat: float, lon: float) -> tuple[float, float, float]:
    phi, lam = math.radians(lat), math.radians(lon)
    return (math.cos(phi) * math.cos(lam), math.cos(phi) * math.sin(lam), math.sin(phi))


def _to_lat_lon(x: float, y: float, z: float) -> tuple[float, float]:
    lat = math.degrees(math.atan2(z, math.sqrt(x * x + y * y)))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon


def _meridian_tangent(lat: float, lon: float) -> tuple[float, float, float]:
    """Unit vector tangent to the meridian at (lat, lon), pointing poleward."""

    phi, lam = math.radians(lat), math.radians(lon)
    sign = 1.0 if lat >= 0 else -1.0
    return (
        -sign * math.sin(phi) * math.cos(lam),
        -sign * math.sin(phi) * math.sin(lam),
        sign * math.cos(phi),
    )
