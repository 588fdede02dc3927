"""
Tests for the H3 and S2 grid systems and their coverings
"""

import random

import pytest

from geoquery.common import InvalidQueryError
from geoquery.geo import GeoBoundingBox, GeoPoint
from geoquery.grid import (
    GridType,
    H3GridSystem,
    S2GridSystem,
    expand_covering,
    get_grid_system,
)
from geoquery.geo import BoxRegion, CircleRegion

from tests.helpers import SAN_FRANCISCO, random_points_in_circle


def random_points_in_box(box: GeoBoundingBox, count: int, seed: int = 11):
    rng = random.Random(seed)
    points = []
    for _ in range(count):
        lat = rng.uniform(box.south, box.north)
        lng = box.west + rng.uniform(0, box.longitude_span)
        points.append(GeoPoint(lat, lng))
    return points


# (grid type, precision for ~5 km circles, precision for ~200 km circles)
GRID_CASES = [
    (GridType.H3, 7, 4),
    (GridType.S2, 12, 7),
]


class TestGridRegistry:
    """Test grid system lookup"""

    def test_lookup_by_enum(self):
        """Test lookup by GridType"""
        assert isinstance(get_grid_system(GridType.H3), H3GridSystem)
        assert isinstance(get_grid_system(GridType.S2), S2GridSystem)

    def test_lookup_by_tag(self):
        """Test lookup by string tag returns the same instance"""
        assert get_grid_system("h3") is get_grid_system(GridType.H3)

    def test_unknown_grid(self):
        """Test unknown tags are rejected"""
        with pytest.raises(InvalidQueryError):
            get_grid_system("geohash")


class TestH3GridSystem:
    """Test H3 grid specifics"""

    @pytest.fixture
    def grid(self):
        return H3GridSystem()

    def test_point_to_cell(self, grid):
        """Test point to cell at a resolution"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 9)
        assert grid.is_valid_cell(cell)
        assert grid.precision_of(cell) == 9

    def test_cell_center_round_trip(self, grid):
        """Test a cell's center maps back to the cell"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 7)
        assert grid.point_to_cell(grid.cell_to_point(cell), 7) == cell

    def test_neighbors(self, grid):
        """Test hexagons have six neighbors"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 7)
        neighbors = grid.neighbors(cell)
        assert len(neighbors) == 6
        assert cell not in neighbors

    def test_invalid_precision(self, grid):
        """Test resolutions outside 0-15 are rejected"""
        with pytest.raises(InvalidQueryError):
            grid.point_to_cell(SAN_FRANCISCO, 16)
        with pytest.raises(InvalidQueryError):
            grid.point_to_cell(SAN_FRANCISCO, -1)

    def test_invalid_cell(self, grid):
        """Test invalid cell ids"""
        assert not grid.is_valid_cell("not-a-cell")
        with pytest.raises(InvalidQueryError):
            grid.cell_to_point("not-a-cell")

    def test_bounds_contain_center(self, grid):
        """Test cell bounds contain the cell center"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 6)
        assert grid.cell_bounds(cell).contains(grid.cell_to_point(cell))

    def test_bounds_antimeridian_cell(self, grid):
        """Test a cell on the antimeridian has wrapping bounds"""
        cell = grid.point_to_cell(GeoPoint(0.0, 180.0), 3)
        bounds = grid.cell_bounds(cell)
        assert bounds.contains(grid.cell_to_point(cell))
        assert bounds.longitude_span < 180.0

    def test_bounds_polar_cell(self, grid):
        """Test the cell holding a pole spans every longitude"""
        cell = grid.point_to_cell(GeoPoint(90.0, 0.0), 2)
        bounds = grid.cell_bounds(cell)
        assert bounds.north == 90.0
        assert bounds.longitude_span == 360.0

    def test_edge_length(self, grid):
        """Test average edge length shrinks with resolution"""
        assert grid.average_cell_edge_km(7) < grid.average_cell_edge_km(6)

    def test_estimate_cell_count(self, grid):
        """Test the estimate grows with the region"""
        small = grid.estimate_cell_count(CircleRegion(SAN_FRANCISCO, 1000.0), 7)
        large = grid.estimate_cell_count(CircleRegion(SAN_FRANCISCO, 10000.0), 7)
        assert 1 <= small < large


class TestS2GridSystem:
    """Test S2 grid specifics"""

    @pytest.fixture
    def grid(self):
        return S2GridSystem()

    def test_point_to_cell(self, grid):
        """Test point to token at a level"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 12)
        assert grid.is_valid_cell(cell)
        assert grid.precision_of(cell) == 12

    def test_cell_center_round_trip(self, grid):
        """Test a cell's center maps back to the cell"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 12)
        assert grid.point_to_cell(grid.cell_to_point(cell), 12) == cell

    def test_neighbors(self, grid):
        """Test S2 cells have four edge neighbors"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 12)
        neighbors = grid.neighbors(cell)
        assert len(neighbors) == 4
        assert all(grid.precision_of(n) == 12 for n in neighbors)

    def test_invalid_precision(self, grid):
        """Test levels outside 0-30 are rejected"""
        with pytest.raises(InvalidQueryError):
            grid.point_to_cell(SAN_FRANCISCO, 31)

    def test_invalid_token(self, grid):
        """Test invalid tokens"""
        assert not grid.is_valid_cell("zz")
        assert not grid.is_valid_cell("")

    def test_bounds_contain_center(self, grid):
        """Test cell bounds contain the cell center"""
        cell = grid.point_to_cell(SAN_FRANCISCO, 10)
        assert grid.cell_bounds(cell).contains(grid.cell_to_point(cell))


@pytest.mark.parametrize("grid_type,city_precision,wide_precision", GRID_CASES)
class TestCoverings:
    """Test covering guarantees shared by every grid"""

    def test_circle_covers_every_point(self, grid_type, city_precision, wide_precision):
        """Test every point in a circle falls in a covering cell"""
        grid = get_grid_system(grid_type)
        covering = grid.cover_circle(SAN_FRANCISCO, 5000.0, city_precision, 500)
        assert covering.is_complete
        cells = set(covering.cells)
        for point in random_points_in_circle(SAN_FRANCISCO, 5000.0, 300):
            assert grid.point_to_cell(point, city_precision) in cells

    def test_circle_edge_points_covered(self, grid_type, city_precision, wide_precision):
        """Test points just inside the circle boundary are covered"""
        grid = get_grid_system(grid_type)
        covering = grid.cover_circle(SAN_FRANCISCO, 5000.0, city_precision, 500)
        cells = set(covering.cells)
        for bearing in range(0, 360, 5):
            point = SAN_FRANCISCO.destination(4999.0, bearing)
            assert grid.point_to_cell(point, city_precision) in cells

    def test_box_covers_every_point(self, grid_type, city_precision, wide_precision):
        """Test every point in a box falls in a covering cell"""
        grid = get_grid_system(grid_type)
        box = GeoBoundingBox(GeoPoint(37.74, -122.47), GeoPoint(37.80, -122.39))
        covering = grid.cover_box(box, city_precision, 500)
        assert covering.is_complete
        cells = set(covering.cells)
        for point in random_points_in_box(box, 300):
            assert grid.point_to_cell(point, city_precision) in cells

    def test_antimeridian_circle(self, grid_type, city_precision, wide_precision):
        """Test a circle crossing the antimeridian covers both sides"""
        grid = get_grid_system(grid_type)
        center = GeoPoint(0.0, 179.0)
        covering = grid.cover_circle(center, 200000.0, wide_precision, 500)
        assert covering.is_complete
        cells = set(covering.cells)
        for point in random_points_in_circle(center, 200000.0, 300):
            assert grid.point_to_cell(point, wide_precision) in cells
        longitudes = [grid.cell_to_point(cell).longitude for cell in cells]
        assert any(lng > 0 for lng in longitudes)
        assert any(lng < 0 for lng in longitudes)

    def test_antimeridian_box(self, grid_type, city_precision, wide_precision):
        """Test a wrapping box covers both sides"""
        grid = get_grid_system(grid_type)
        box = GeoBoundingBox(GeoPoint(-1.0, 178.5), GeoPoint(1.0, -178.5))
        covering = grid.cover_box(box, wide_precision, 500)
        assert covering.is_complete
        cells = set(covering.cells)
        for point in random_points_in_box(box, 300):
            assert grid.point_to_cell(point, wide_precision) in cells

    def test_polar_circle(self, grid_type, city_precision, wide_precision):
        """Test a circle around the north pole covers every longitude"""
        grid = get_grid_system(grid_type)
        center = GeoPoint(89.5, 0.0)
        covering = grid.cover_circle(center, 150000.0, wide_precision, 500)
        assert covering.is_complete
        cells = set(covering.cells)
        for point in random_points_in_circle(center, 150000.0, 300):
            assert grid.point_to_cell(point, wide_precision) in cells
        assert grid.point_to_cell(GeoPoint(90.0, 0.0), wide_precision) in cells

    def test_budget_truncation(self, grid_type, city_precision, wide_precision):
        """Test a covering larger than the budget is truncated and flagged"""
        grid = get_grid_system(grid_type)
        covering = grid.cover_circle(SAN_FRANCISCO, 20000.0, city_precision, 5)
        assert len(covering) == 5
        assert not covering.is_complete
        assert grid.point_to_cell(SAN_FRANCISCO, city_precision) in covering.cells

    def test_truncation_keeps_closest(self, grid_type, city_precision, wide_precision):
        """Test truncated coverings keep the cells nearest the center"""
        grid = get_grid_system(grid_type)
        full = grid.cover_circle(SAN_FRANCISCO, 20000.0, city_precision, 500)
        truncated = grid.cover_circle(SAN_FRANCISCO, 20000.0, city_precision, 10)
        assert full.cells[:10] == truncated.cells

    def test_deterministic(self, grid_type, city_precision, wide_precision):
        """Test identical inputs give identical coverings"""
        grid = get_grid_system(grid_type)
        first = grid.cover_circle(SAN_FRANCISCO, 5000.0, city_precision, 100)
        second = grid.cover_circle(SAN_FRANCISCO, 5000.0, city_precision, 100)
        assert first == second

    def test_zero_radius(self, grid_type, city_precision, wide_precision):
        """Test a zero-radius circle still covers its center cell"""
        grid = get_grid_system(grid_type)
        covering = grid.cover_circle(SAN_FRANCISCO, 0.0, city_precision, 100)
        assert grid.point_to_cell(SAN_FRANCISCO, city_precision) in covering.cells

    def test_invalid_budget(self, grid_type, city_precision, wide_precision):
        """Test non-positive budgets are rejected"""
        grid = get_grid_system(grid_type)
        with pytest.raises(InvalidQueryError):
            expand_covering(grid, CircleRegion(SAN_FRANCISCO, 100.0), city_precision, 0)

    def test_box_region_expansion(self, grid_type, city_precision, wide_precision):
        """Test expand_covering accepts box regions directly"""
        grid = get_grid_system(grid_type)
        box = GeoBoundingBox(GeoPoint(37.76, -122.43), GeoPoint(37.78, -122.41))
        covering = expand_covering(grid, BoxRegion(box), city_precision, 100)
        assert grid.point_to_cell(box.center, city_precision) in covering.cells


@pytest.mark.parametrize("grid_type,city_precision,wide_precision", GRID_CASES)
class TestCellHierarchy:
    """Test parent and children navigation"""

    def test_parent(self, grid_type, city_precision, wide_precision):
        """Test parents are one level coarser and chain consistently"""
        grid = get_grid_system(grid_type)
        cell = grid.point_to_cell(SAN_FRANCISCO, city_precision)

        parent = grid.parent(cell)

        assert grid.precision_of(parent) == city_precision - 1
        assert cell in grid.children(parent)
        assert grid.parent(cell, wide_precision) == grid.parent(parent, wide_precision)
        assert grid.parent(cell, city_precision) == cell

    def test_s2_parent_contains_point(self, grid_type, city_precision, wide_precision):
        """Test S2 parents hold every point of their children"""
        if grid_type is not GridType.S2:
            pytest.skip("H3 children are not nested inside their parent")
        grid = get_grid_system(grid_type)
        cell = grid.point_to_cell(SAN_FRANCISCO, city_precision)

        assert grid.parent(cell, wide_precision) == grid.point_to_cell(
            SAN_FRANCISCO, wide_precision
        )
        assert grid.point_to_cell(SAN_FRANCISCO, city_precision + 1) in grid.children(cell)

    def test_children_round_trip(self, grid_type, city_precision, wide_precision):
        """Test every child points back to its parent"""
        grid = get_grid_system(grid_type)
        cell = grid.point_to_cell(SAN_FRANCISCO, city_precision)

        children = grid.children(cell)

        assert len(children) == (7 if grid_type is GridType.H3 else 4)
        assert len(set(children)) == len(children)
        for child in children:
            assert grid.precision_of(child) == city_precision + 1
            assert grid.parent(child) == cell
        assert grid.children(cell, city_precision) == [cell]

    def test_grandchildren(self, grid_type, city_precision, wide_precision):
        """Test children two levels down"""
        grid = get_grid_system(grid_type)
        cell = grid.point_to_cell(SAN_FRANCISCO, city_precision)
        expected = 49 if grid_type is GridType.H3 else 16

        assert len(grid.children(cell, city_precision + 2)) == expected

    def test_invalid_levels(self, grid_type, city_precision, wide_precision):
        """Test parents below the root and children past the finest level are rejected"""
        grid = get_grid_system(grid_type)
        cell = grid.point_to_cell(SAN_FRANCISCO, city_precision)
        root = grid.point_to_cell(SAN_FRANCISCO, grid.min_precision)
        finest = grid.point_to_cell(SAN_FRANCISCO, grid.max_precision)

        with pytest.raises(InvalidQueryError):
            grid.parent(root)
        with pytest.raises(InvalidQueryError):
            grid.children(finest)
        with pytest.raises(InvalidQueryError):
            grid.parent(cell, city_precision + 1)
        with pytest.raises(InvalidQueryError):
            grid.children(cell, city_precision - 1)
