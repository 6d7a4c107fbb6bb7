"""Static lookup tables: diagnostic codes, route profiles and data categories."""

from typing import Any, Dict, List, Optional

from .errors import UnknownCategoryError, UnknownRouteError
from .schema import DataCategory, DiagnosticEntry, RouteProfile


DIAGNOSTIC_CODES: Dict[str, DiagnosticEntry] = {
    entry.code: entry
    for entry in (
        DiagnosticEntry(
            code="P0420",
            description="Catalyst System Efficiency Below Threshold",
            severity="Medium",
            impact="May affect emissions and fuel efficiency",
            reward_impact=-15,
        ),
        DiagnosticEntry(
            code="P0171",
            description="System Too Lean (Bank 1)",
            severity="Medium",
            impact="May cause rough idling and reduced fuel efficiency",
            reward_impact=-10,
        ),
        DiagnosticEntry(
            code="P0300",
            description="Random/Multiple Cylinder Misfire Detected",
            severity="High",
            impact="Can damage catalytic converter if ignored",
            reward_impact=-25,
        ),
    )
}

ROUTE_ORDER = ["URBAN", "HIGHWAY", "MOUNTAIN", "RURAL"]

ROUTES: Dict[str, RouteProfile] = {
    "URBAN": RouteProfile(
        route_type="URBAN",
        name="Urban City Drive",
        description="Dense city traffic with stops and moderate speeds",
        average_speed=35,
        max_speed=60,
        traffic_density="high",
        distance_km=12.5,
        estimated_minutes=25,
        fuel_consumption="moderate",
        elevation_change="low",
    ),
    "HIGHWAY": RouteProfile(
        route_type="HIGHWAY",
        name="Highway Cruise",
        description="Fast highway driving with consistent speeds",
        average_speed=85,
        max_speed=110,
        traffic_density="low",
        distance_km=45.0,
        estimated_minutes=35,
        fuel_consumption="efficient",
        elevation_change="moderate",
    ),
    "MOUNTAIN": RouteProfile(
        route_type="MOUNTAIN",
        name="Mountain Pass",
        description="Winding roads with elevation changes and variable speeds",
        average_speed=45,
        max_speed=70,
        traffic_density="very low",
        distance_km=28.0,
        estimated_minutes=40,
        fuel_consumption="high",
        elevation_change="high",
    ),
    "RURAL": RouteProfile(
        route_type="RURAL",
        name="Country Roads",
        description="Relaxed driving through farmland and villages",
        average_speed=55,
        max_speed=80,
        traffic_density="very low",
        distance_km=32.0,
        estimated_minutes=35,
        fuel_consumption="moderate",
        elevation_change="moderate",
    ),
}

DATA_CATEGORIES: Dict[str, DataCategory] = {
    "LOCATION": DataCategory(
        id="LOCATION",
        name="Location Data",
        description="GPS coordinates and movement patterns",
        privacy_impact="High",
        base_value=0.05,
        fields=("lat", "lon", "timestamp"),
    ),
    "PERFORMANCE": DataCategory(
        id="PERFORMANCE",
        name="Vehicle Performance",
        description="Engine parameters, speed, and performance metrics",
        privacy_impact="Low",
        base_value=0.03,
        fields=("speed_kmph", "engine_rpm", "timestamp"),
    ),
    "DIAGNOSTIC": DataCategory(
        id="DIAGNOSTIC",
        name="Diagnostic Information",
        description="Engine health, error codes, and maintenance data",
        privacy_impact="Low",
        base_value=0.07,
        fields=("engine_temp_c", "dtc_code", "timestamp"),
    ),
    "FUEL": DataCategory(
        id="FUEL",
        name="Fuel Consumption",
        description="Fuel usage patterns and efficiency data",
        privacy_impact="Medium",
        base_value=0.04,
        fields=("fuel_level_pct", "speed_kmph", "timestamp"),
    ),
    "COMPLETE": DataCategory(
        id="COMPLETE",
        name="Complete Vehicle Data",
        description="Full vehicle dataset including all parameters",
        privacy_impact="Very High",
        base_value=0.15,
        fields=("*",),
    ),
}


def diagnostic_info(code: Optional[str]) -> Optional[DiagnosticEntry]:
    """Look up a trouble code. Unknown or empty codes give None."""
    if not code:
        return None
    return DIAGNOSTIC_CODES.get(code.strip())


def get_route(route_type: str) -> RouteProfile:
    """Return the profile for a route type or raise UnknownRouteError."""
    route = ROUTES.get(route_type)
    if route is None:
        raise UnknownRouteError(
            f"Invalid route type. Choose from: {', '.join(ROUTE_ORDER)}"
        )
    return route


def get_category(data_type: str) -> DataCategory:
    """Return the category for a data type or raise UnknownCategoryError."""
    category = DATA_CATEGORIES.get(data_type)
    if category is None:
        raise UnknownCategoryError(
            f"Invalid data type: {data_type}. Available types: {', '.join(DATA_CATEGORIES)}"
        )
    return category


def available_routes() -> List[Dict[str, Any]]:
    """Route table in display order."""
    return [
        {
            "id": key,
            "name": route.name,
            "description": route.description,
            "distance_km": route.distance_km,
            "estimated_minutes": route.estimated_minutes,
            "average_speed": route.average_speed,
            "max_speed": route.max_speed,
            "traffic_density": route.traffic_density,
            "fuel_consumption": route.fuel_consumption,
            "elevation_change": route.elevation_change,
        }
        for key, route in ((k, ROUTES[k]) for k in ROUTE_ORDER)
    ]


def data_categories() -> List[Dict[str, Any]]:
    """Marketplace category table in declaration order."""
    return [
        {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "privacy_impact": category.privacy_impact,
            "base_value": category.base_value,
            "fields": list(category.fields),
        }
        for category in DATA_CATEGORIES.values()
    ]
