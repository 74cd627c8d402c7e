"""Export services."""

from .geojson import route_path_segments, route_to_geojson

__all__ = [
    "route_path_segments",
    "route_to_geojson",
]
