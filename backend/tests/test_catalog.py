"""Tests for the static route, diagnostic and category tables."""

import pytest

from driveledger.catalog import (
    available_routes,
    data_categories,
    diagnostic_info,
    get_category,
    get_route,
)
from driveledger.errors import UnknownCategoryError, UnknownRouteError


def test_diagnostic_lookup_known_code():
    info = diagnostic_info("P0420")

    assert info is not None
    assert info.reward_impact == -15
    assert info.severity == "Medium"
    assert diagnostic_info("P0300").reward_impact == -25
    assert diagnostic_info("P0171").reward_impact == -10


@pytest.mark.parametrize("code", ["", None, "P9999", "   "])
def test_diagnostic_lookup_unknown_or_empty_is_none(code):
    assert diagnostic_info(code) is None


def test_route_profiles():
    urban = get_route("URBAN")

    assert urban.name == "Urban City Drive"
    assert urban.max_speed == 60
    assert urban.estimated_minutes == 25
    assert get_route("HIGHWAY").max_speed == 110
    assert get_route("MOUNTAIN").max_speed == 70
    assert get_route("RURAL").max_speed == 80


def test_unknown_route_raises():
    with pytest.raises(UnknownRouteError) as excinfo:
        get_route("OFFROAD")
    assert "URBAN" in excinfo.value.message


def test_route_profiles_are_immutable():
    with pytest.raises(Exception):
        get_route("URBAN").max_speed = 200


def test_available_routes_listing_order():
    routes = available_routes()

    assert [r["id"] for r in routes] == ["URBAN", "HIGHWAY", "MOUNTAIN", "RURAL"]
    assert routes[1]["distance_km"] == 45.0
    assert routes[2]["elevation_change"] == "high"


def test_data_categories():
    categories = {c["id"]: c for c in data_categories()}

    assert set(categories) == {"LOCATION", "PERFORMANCE", "DIAGNOSTIC", "FUEL", "COMPLETE"}
    assert categories["FUEL"]["base_value"] == 0.04
    assert categories["COMPLETE"]["fields"] == ["*"]
    assert get_category("DIAGNOSTIC").base_value == 0.07


def test_unknown_category_raises():
    with pytest.raises(UnknownCategoryError):
        get_category("WEATHER")
