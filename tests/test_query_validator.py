from __future__ import annotations

import pytest

from config import Configuration
from services.query_validator import ValidationError, parse_categories, parse_discovery_query


def test_defaults_applied_when_absent() -> None:
    q = parse_discovery_query({"lat": "35.0", "lng": "139.0"})
    assert q.latitude == 35.0
    assert q.longitude == 139.0
    assert q.radius_meters == 1000
    assert q.limit == 20
    assert q.language_tag == "ja"
    assert q.category_filter is None


def test_string_and_number_inputs_are_coerced() -> None:
    q = parse_discovery_query({"lat": 35, "lng": "139.5", "radius": "250", "limit": 5, "lang": "en"})
    assert q.longitude == 139.5
    assert q.radius_meters == 250
    assert q.limit == 5
    assert q.language_tag == "en"


def test_blank_values_fall_back_to_defaults() -> None:
    q = parse_discovery_query({"lat": "1", "lng": "2", "radius": "", "lang": "  "})
    assert q.radius_meters == 1000
    assert q.language_tag == "ja"


def test_configured_defaults_are_used() -> None:
    cfg = Configuration(default_radius_m=300, default_limit=7, lang_default="en")
    q = parse_discovery_query({"lat": "1", "lng": "2"}, cfg)
    assert (q.radius_meters, q.limit, q.language_tag) == (300, 7, "en")


@pytest.mark.parametrize(
    "raw,field",
    [
        ({"lng": "139"}, "lat"),
        ({"lat": "35"}, "lng"),
        ({"lat": "abc", "lng": "139"}, "lat"),
        ({"lat": "35", "lng": "139", "radius": "0"}, "radius"),
        ({"lat": "35", "lng": "139", "radius": "5001"}, "radius"),
        ({"lat": "35", "lng": "139", "radius": "12.5"}, "radius"),
        ({"lat": "35", "lng": "139", "limit": "41"}, "limit"),
        ({"lat": "35", "lng": "139", "limit": 0}, "limit"),
        ({"lat": "35", "lng": "139", "limit": True}, "limit"),
        ({"lat": "91", "lng": "139"}, "lat"),
        ({"lat": "35", "lng": "nan"}, "lng"),
    ],
)
def test_invalid_fields_are_rejected_by_name(raw, field) -> None:
    with pytest.raises(ValidationError) as info:
        parse_discovery_query(raw)
    assert info.value.field == field


def test_bounds_are_inclusive() -> None:
    low = parse_discovery_query({"lat": "0", "lng": "0", "radius": "1", "limit": "1"})
    high = parse_discovery_query({"lat": "0", "lng": "0", "radius": "5000", "limit": "40"})
    assert (low.radius_meters, low.limit) == (1, 1)
    assert (high.radius_meters, high.limit) == (5000, 40)


def test_category_filter_split_and_cleaned() -> None:
    q = parse_discovery_query({"lat": "1", "lng": "2", "category": "ramen_restaurant, ,sushi_restaurant,,ramen_restaurant"})
    assert q.category_filter == ("ramen_restaurant", "sushi_restaurant")


def test_category_filter_of_only_blanks_is_none() -> None:
    assert parse_categories(" , ,") is None
    assert parse_categories(["cafe", "bakery,cafe"]) == ("cafe", "bakery")


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_discovery_query({})
