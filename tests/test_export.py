from datetime import datetime, timedelta, timezone

import pytest

from midnight_route.models.domain import Location, round_offset
from midnight_route.services.export import route_path_segments, route_to_geojson
from midnight_route.services.routing.models import RouteStop

START = datetime(2025, 12, 24, 10, 0, tzinfo=timezone.utc)


def _location(city: str, lat: float, lon: float, offset: float = 0.0) -> Location:
    return Location(
        location_id=city,
        city=city,
        country="Testland",
        latitude=lat,
        longitude=lon,
        timezone="",
        utc_offset=offset,
        utc_offset_rounded=round_offset(offset),
    )


def _route(*points: tuple[str, float, float]) -> list[RouteStop]:
    stops = []
    last = len(points) - 1
    for idx, (city, lat, lon) in enumerate(points):
        utc_time = START + timedelta(minutes=10 * idx)
        stops.append(
            RouteStop(
                sequence=idx + 1,
                location=_location(city, lat, lon),
                utc_time=utc_time,
                local_time=utc_time.replace(tzinfo=None),
                bucket_offset=None if idx in (0, last) else 0,
                is_origin=idx in (0, last),
            )
        )
    return stops


def test_route_to_geojson_single_path_and_points():
    stops = _route(("Base", 0.0, 0.0), ("East", 0.0, 10.0), ("Further", 0.0, 20.0), ("Base", 0.0, 0.0))
    collection = route_to_geojson(stops, step_km=250.0)

    assert collection["type"] == "FeatureCollection"
    features = collection["features"]
    assert len(features) == 1 + len(stops)

    path = features[0]
    assert path["geometry"]["type"] == "LineString"
    assert path["properties"]["stop_count"] == 4
    assert path["properties"]["start"] == "2025-12-24 10:00:00"
    coords = path["geometry"]["coordinates"]
    assert coords[0] == pytest.approx((0.0, 0.0), abs=1e-9)
    assert len(coords) > len(stops)

    points = features[1:]
    assert [feature["properties"]["kind"] for feature in points] == ["origin", "stop", "stop", "origin"]
    assert points[1]["geometry"]["coordinates"] == pytest.approx((10.0, 0.0))
    assert points[1]["properties"]["stop_number"] == 2


def test_route_path_splits_at_antimeridian():
    stops = _route(("Suva", -18.0, 170.0), ("West", -17.0, 179.0), ("East", -17.0, -179.0), ("Suva", -18.0, 170.0))
    segments = route_path_segments(stops, step_km=100.0)

    assert len(segments) >= 2
    for segment in segments:
        assert len(segment) >= 2
        for first, second in zip(segment, segment[1:]):
            assert abs(first[0] - second[0]) <= 180.0

    collection = route_to_geojson(stops, step_km=100.0)
    assert collection["features"][0]["geometry"]["type"] == "MultiLineString"


def test_route_to_geojson_needs_two_stops():
    with pytest.raises(ValueError):
        route_to_geojson(_route(("Base", 0.0, 0.0)), step_km=250.0)
