"""
geoquery Test Configuration

Shared pytest fixtures for all tests.
"""

import pytest

from geoquery.geo import GeoPoint

from tests.helpers import SAN_FRANCISCO, SF_LANDMARKS, random_points_in_circle


@pytest.fixture
def sf_points():
    """The six San Francisco landmarks as (name, GeoPoint)."""
    return [
        (name, SAN_FRANCISCO.destination(km * 1000.0, bearing))
        for name, km, bearing in SF_LANDMARKS
    ]


@pytest.fixture
def fifty_points():
    """Fifty seeded points within 10 km of San Francisco."""
    points = random_points_in_circle(SAN_FRANCISCO, 9500.0, 50, seed=7)
    return [(f"point_{i:02d}", point) for i, point in enumerate(points)]


@pytest.fixture
def antimeridian_points():
    """Points near (0, 179) on both sides of the antimeridian."""
    return [
        ("west_side_near", GeoPoint(0.0, 179.5)),
        ("west_side_north", GeoPoint(1.0, 179.0)),
        ("on_antimeridian", GeoPoint(0.0, 180.0)),
        ("east_side_near", GeoPoint(0.0, -179.8)),
        ("east_side_south", GeoPoint(-0.5, -179.5)),
        ("far_west", GeoPoint(0.0, 175.0)),
        ("far_east", GeoPoint(0.0, -177.0)),
    ]
