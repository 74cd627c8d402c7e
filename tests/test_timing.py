from datetime import date, datetime, timedelta, timezone

import pytest

from midnight_route.config import Settings
from midnight_route.models.domain import Location, build_origin, round_offset
from midnight_route.services.geospatial import distance_km
from midnight_route.services.grouping import group_by_timezone
from midnight_route.services.routing.solver import assign_headings, optimize_bucket
from midnight_route.services.routing.timing import (
    ONE_HOUR,
    assign_midnights,
    resolve_reference_midnight,
    schedule_route,
    stop_arrivals,
)

REFERENCE = datetime(2025, 12, 24, 23, 0, tzinfo=timezone.utc)


def _location(lid: str, lat: float, lon: float, offset: float) -> Location:
    return Location(
        location_id=lid,
        city=lid,
        country="Testland",
        latitude=lat,
        longitude=lon,
        timezone=f"UTC{offset:+g}",
        utc_offset=offset,
        utc_offset_rounded=round_offset(offset),
    )


def _routed(locations):
    buckets = group_by_timezone(locations)
    assign_headings(buckets)
    for bucket in buckets:
        optimize_bucket(bucket)
    return buckets


def _europe():
    return [
        _location("Berlin", 52.52, 13.40, 1),
        _location("Rome", 41.90, 12.50, 1),
        _location("London", 51.51, -0.13, 0),
        _location("Lisbon", 38.72, -9.14, 0),
        _location("Praia", 14.93, -23.51, -1),
    ]


def test_speed_covers_tour_and_transit_in_one_hour():
    origin = build_origin(Settings())
    buckets = _routed(_europe())
    schedule_route(buckets, origin, reference_midnight=REFERENCE)

    first = buckets[0]
    assert first.origin_leg_km == pytest.approx(distance_km(origin, first.tour[0]))
    assert first.speed_kmh == pytest.approx(first.origin_leg_km + first.tour_distance_km + first.transit_out_km)
    for current, following in zip(buckets, buckets[1:]):
        assert current.transit_out_km == pytest.approx(distance_km(current.tour[-1], following.tour[0]))
    for bucket in buckets[1:]:
        assert bucket.origin_leg_km == 0.0
        assert bucket.speed_kmh == pytest.approx(bucket.tour_distance_km + bucket.transit_out_km)
    assert buckets[-1].transit_out_km == 0.0
    assert not any(bucket.speed_fallback for bucket in buckets)


def test_each_bucket_starts_at_its_midnight_and_fits_in_the_hour():
    origin = build_origin(Settings())
    buckets = _routed(_europe())
    schedule = schedule_route(buckets, origin, reference_midnight=REFERENCE)

    assert [bucket.midnight_utc for bucket in buckets] == [
        REFERENCE,
        REFERENCE + ONE_HOUR,
        REFERENCE + 2 * ONE_HOUR,
    ]
    for bucket, arrivals in zip(buckets, schedule.arrivals):
        assert arrivals[0] == bucket.midnight_utc
        assert arrivals == sorted(arrivals)
        assert arrivals[-1] <= bucket.midnight_utc + ONE_HOUR

    # Leaving the last stop of a bucket at its speed reaches the next bucket's midnight.
    for bucket, arrivals, following in zip(buckets, schedule.arrivals, buckets[1:]):
        reached = arrivals[-1] + timedelta(hours=bucket.transit_out_km / bucket.speed_kmh)
        assert abs((reached - following.midnight_utc).total_seconds()) < 1e-3


def test_departure_and_return_timing():
    origin = build_origin(Settings())
    buckets = _routed(_europe())
    schedule = schedule_route(buckets, origin, reference_midnight=REFERENCE)

    first, last = buckets[0], buckets[-1]
    expected_departure = REFERENCE - timedelta(hours=first.origin_leg_km / first.speed_kmh)
    assert abs((schedule.departure_utc - expected_departure).total_seconds()) < 1e-3
    assert schedule.return_speed_kmh == pytest.approx((first.speed_kmh + last.speed_kmh) / 2)
    return_leg = distance_km(last.tour[-1], origin)
    expected_return = schedule.arrivals[-1][-1] + timedelta(hours=return_leg / schedule.return_speed_kmh)
    assert abs((schedule.return_utc - expected_return).total_seconds()) < 1e-3
    assert schedule.return_utc > schedule.arrivals[-1][-1]


def test_offset_step_follows_offset_gaps():
    locations = [_location("Moscow", 55.75, 37.62, 3), _location("Accra", 5.60, -0.19, 0)]

    by_position = _routed(locations)
    assign_midnights(by_position, REFERENCE, "position")
    assert by_position[1].midnight_utc == REFERENCE + ONE_HOUR

    by_offset = _routed(locations)
    assign_midnights(by_offset, REFERENCE, "offset")
    assert by_offset[1].midnight_utc == REFERENCE + 3 * ONE_HOUR


def test_unknown_midnight_step_is_rejected():
    buckets = _routed(_europe())
    with pytest.raises(ValueError):
        assign_midnights(buckets, REFERENCE, "hourly")


def test_zero_distance_bucket_carries_previous_speed(caplog):
    locations = [
        _location("A", 10.0, 10.0, 1),
        _location("B", 20.0, 10.0, 1),
        _location("C", 10.0, 10.0, 0),
    ]
    buckets = _routed(locations)
    with caplog.at_level("WARNING"):
        schedule_route(buckets, build_origin(Settings()), reference_midnight=REFERENCE)

    assert buckets[0].transit_out_km == pytest.approx(0.0, abs=1e-9)
    assert buckets[1].crossing_distance_km == 0.0
    assert buckets[1].speed_fallback is True
    assert buckets[1].speed_kmh == buckets[0].speed_kmh
    assert "zero crossing distance" in caplog.text


def test_first_bucket_without_distance_uses_fallback_speed():
    origin = _location("Base", 10.0, 10.0, 1)
    buckets = _routed([_location("Only", 10.0, 10.0, 1)])
    schedule = schedule_route(buckets, origin, reference_midnight=REFERENCE, fallback_speed_kmh=1234.0)

    assert buckets[0].speed_kmh == 1234.0
    assert buckets[0].speed_fallback is True
    assert schedule.departure_utc == REFERENCE
    assert schedule.return_utc == REFERENCE
    assert schedule.return_speed_kmh == 1234.0


def test_stop_arrivals_requires_midnight():
    buckets = _routed(_europe())
    with pytest.raises(ValueError):
        stop_arrivals(buckets[0])


def test_schedule_route_rejects_empty_input():
    with pytest.raises(ValueError):
        schedule_route([], build_origin(Settings()), reference_midnight=REFERENCE)


def test_resolve_reference_midnight_from_flight_date():
    config = Settings(flight_date=date(2025, 12, 25), reference_midnight_utc=None)
    assert resolve_reference_midnight(14, config) == datetime(2025, 12, 24, 10, 0, tzinfo=timezone.utc)
    assert resolve_reference_midnight(-11, config) == datetime(2025, 12, 25, 11, 0, tzinfo=timezone.utc)


def test_resolve_reference_midnight_explicit_override_is_utc():
    config = Settings(reference_midnight_utc=datetime(2026, 1, 1, 5, 30))
    assert resolve_reference_midnight(3, config) == datetime(2026, 1, 1, 5, 30, tzinfo=timezone.utc)
