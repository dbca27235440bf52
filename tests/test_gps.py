from types import SimpleNamespace

import pytest

from wilaiety.services.geo import (
    facilities_geojson,
    format_gps,
    haversine_distance,
    is_valid_gps_input,
    nearest_division,
    parse_gps,
)


def test_parse_gps_valid_pair():
    """A "lat,lng" string parses into a float pair."""
    assert parse_gps("20.9420,-17.0470") == (20.942, -17.047)
    assert parse_gps(" 20.9 , -17.0 ") == (20.9, -17.0)


@pytest.mark.parametrize("value", [None, "", "abc,def", "20.9", "1,2,3", "nan,1", "inf,2", "20.9,"])
def test_parse_gps_rejects(value):
    """Anything but exactly two finite numbers is absent."""
    assert parse_gps(value) is None


def test_format_gps_uses_capture_precision():
    assert format_gps(20.123456789, -17.987654321) == "20.1235,-17.9877"
    assert format_gps(20.5, -17.0) == "20.5000,-17.0000"


def test_parse_gps_reads_leading_numbers():
    """Trailing text after each number is ignored, like a browser parseFloat."""
    assert parse_gps("20.94N,-17.04W") == (20.94, -17.04)
    assert parse_gps("20.5°, -17.25°") == (20.5, -17.25)
    assert parse_gps("N20.94,-17.04") is None


def test_form_rule_for_typed_coordinates():
    assert is_valid_gps_input("36.7538, 3.0588")
    assert is_valid_gps_input("-1,2")
    assert is_valid_gps_input("")
    assert not is_valid_gps_input("abc")
    assert not is_valid_gps_input("36.7538;3.0588")


def test_haversine_one_degree_of_longitude_at_equator():
    assert haversine_distance(0, 0, 0, 0) == 0
    assert haversine_distance(0, 0, 0, 1) == pytest.approx(111195, rel=0.01)


def test_nearest_division_skips_divisions_without_coordinates():
    far = SimpleNamespace(name="far", gps_coordinates="18.0735,-15.9582")
    near = SimpleNamespace(name="near", gps_coordinates="20.9425,-17.0362")
    blank = SimpleNamespace(name="blank", gps_coordinates=None)
    division, distance = nearest_division(20.94, -17.04, [blank, far, near])
    assert division is near
    assert distance < 1000
    assert nearest_division(20.94, -17.04, [blank]) is None


def test_geojson_uses_lng_lat_order_and_skips_unparseable():
    ok = SimpleNamespace(
        id="1", name="A", short_name="A", region="R", sector="صحية", status="نشط",
        image_url=None, gps_coordinates="20.5,-17.25",
    )
    bad = SimpleNamespace(
        id="2", name="B", short_name="B", region="R", sector="صحية", status="نشط",
        image_url=None, gps_coordinates="not gps",
    )
    feed = facilities_geojson([ok, bad], "fr")
    assert feed["type"] == "FeatureCollection"
    assert len(feed["features"]) == 1
    feature = feed["features"][0]
    assert feature["geometry"]["coordinates"] == [-17.25, 20.5]
    assert feature["properties"]["sector_label"] == "Santé"
    assert feature["properties"]["status_label"] == "Actif"
