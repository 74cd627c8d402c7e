"""GeoJSON export of the animated route path."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from shapely.geometry import LineString, MultiLineString, Point, mapping

from ..geospatial import densify
from ..outputs.route_formatter import format_timestamp
from ..routing.models import RouteStop


def route_path_segments(stops: Sequence[RouteStop], step_km: float) -> List[List[tuple[float, float]]]:
    """Densify the stop sequence along great circles, split where it crosses the antimeridian.

    Args:
        stops: Ordered route stops
        step_km: Maximum spacing between consecutive path points

    Returns:
        List of (lon, lat) coordinate runs, each safe to draw as a flat line
    """
    segments: List[List[tuple[float, float]]] = []
    current: List[tuple[float, float]] = []
    for idx in range(len(stops) - 1):
        arc = densify(stops[idx].location, stops[idx + 1].location, step_km)
        if idx > 0:
            arc = arc[1:]
        for lat, lon in arc:
            if current and abs(lon - current[-1][0]) > 180.0:
                segments.append(current)
                current = []
            current.append((lon, lat))
    if current:
        segments.append(current)
    return [segment for segment in segments if len(segment) >= 2]


def route_to_geojson(stops: Sequence[RouteStop], step_km: float) -> Dict[str, Any]:
    """Convert a finished route into a FeatureCollection.

    The first feature is the travelled path; one Point feature follows per stop.
    """
    if len(stops) < 2:
        raise ValueError("A route path needs at least two stops")

    segments = route_path_segments(stops, step_km)
    if not segments:
        path_geometry = LineString()
    elif len(segments) == 1:
        path_geometry = LineString(segments[0])
    else:
        path_geometry = MultiLineString(segments)

    features: List[Dict[str, Any]] = [
        {
            "type": "Feature",
            "geometry": mapping(path_geometry),
            "properties": {
                "kind": "path",
                "stop_count": len(stops),
                "start": format_timestamp(stops[0].utc_time),
                "end": format_timestamp(stops[-1].utc_time),
            },
        }
    ]
    for stop in stops:
        location = stop.location
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(Point(location.longitude, location.latitude)),
                "properties": {
                    "kind": "origin" if stop.is_origin else "stop",
                    "stop_number": stop.sequence,
                    "city": location.city,
                    "country": location.country,
                    "utc_offset_rounded": location.utc_offset_rounded,
                    "utc_time": format_timestamp(stop.utc_time),
                    "local_time": format_timestamp(stop.local_time),
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}
