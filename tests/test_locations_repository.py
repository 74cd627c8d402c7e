import logging
from pathlib import Path

import pytest

from midnight_route.data.locations_repository import (
    MalformedRow,
    load_locations,
    parse_location,
    read_locations,
)


def _row(**overrides) -> dict:
    row = {
        "city": "Tokyo",
        "country": "Japan",
        "lat": "35.6895",
        "lng": "139.6917",
        "timezone": "Asia/Tokyo",
        "utc_offset": "9",
        "population": "37400068",
    }
    row.update(overrides)
    return row


def test_parse_location_reads_standard_columns():
    location = parse_location(_row(), fallback_id="7")

    assert location.location_id == "7"
    assert location.city == "Tokyo"
    assert location.latitude == pytest.approx(35.6895)
    assert location.longitude == pytest.approx(139.6917)
    assert location.utc_offset == 9.0
    assert location.utc_offset_rounded == 9
    assert location.population == 37400068


def test_parse_location_accepts_column_aliases():
    row = {"name": "Quito", "country": "Ecuador", "latitude": "-0.18", "longitude": "-78.47", "offset": "-5"}
    location = parse_location(row, fallback_id="1")

    assert location.city == "Quito"
    assert location.longitude == pytest.approx(-78.47)
    assert location.utc_offset_rounded == -5
    assert location.population is None


def test_parse_location_derives_rounded_offset_half_up():
    assert parse_location(_row(utc_offset="5.5"), "1").utc_offset_rounded == 6
    assert parse_location(_row(utc_offset="-3.5"), "1").utc_offset_rounded == -3
    assert parse_location(_row(utc_offset="5.5", utc_offset_rounded="5"), "1").utc_offset_rounded == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"lat": ""},
        {"lng": "east"},
        {"lat": "91"},
        {"lng": "-181"},
        {"lat": "nan"},
        {"utc_offset": "nine"},
    ],
)
def test_parse_location_rejects_malformed_rows(overrides):
    with pytest.raises(MalformedRow):
        parse_location(_row(**overrides), fallback_id="1")


def test_read_locations_drops_malformed_and_origin_rows(caplog):
    rows = [
        _row(),
        _row(city="North Pole", lat="90", lng="0", utc_offset="14"),
        _row(city="Broken", lat="abc"),
        _row(city="Sydney", lat="-33.87", lng="151.21", utc_offset="11"),
    ]
    with caplog.at_level(logging.WARNING):
        report = read_locations(rows, origin_name="North Pole")

    assert [location.city for location in report.locations] == ["Tokyo", "Sydney"]
    assert report.dropped == 1
    assert report.skipped_origin == 1
    assert "Dropped 1 malformed" in caplog.text


def test_load_locations_from_csv(tmp_path: Path):
    source = tmp_path / "locations.csv"
    source.write_text(
        "\ufeffcity,country,lat,lng,timezone,utc_offset,population\n"
        "North Pole,Arctic,90,0,UTC+14,14,0\n"
        "Kiritimati,Kiribati,1.87,-157.36,Pacific/Kiritimati,14,5586\n"
        '"St. John\'s",Canada,47.56,-52.71,America/St_Johns,-3.5,"110,525"\n',
        encoding="utf-8",
    )
    report = load_locations(source, origin_name="North Pole")

    assert [location.city for location in report.locations] == ["Kiritimati", "St. John's"]
    assert report.locations[1].utc_offset_rounded == -3
    assert report.locations[1].population == 110525
    assert report.skipped_origin == 1


def test_load_locations_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_locations(tmp_path / "nope.csv")


def test_load_locations_requires_header(tmp_path: Path):
    source = tmp_path / "empty.csv"
    source.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_locations(source)
