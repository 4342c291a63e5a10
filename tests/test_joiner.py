"""Tests for joining a solved assignment back onto records."""

import numpy as np
import pytest

from py_tessellate.core.cost_matrix import build_cost_matrix
from py_tessellate.core.errors import (
    AttributeCollisionError,
    CardinalityMismatchError,
    DuplicateIdentifierError,
    GeometryError,
)
from py_tessellate.core.hungarian import Assignment, solve_assignment
from py_tessellate.core.joiner import join_results
from py_tessellate.core.models import GridCell, Point, Region


def square(x, y, size=1.0):
    return [(x, y), (x + size, y), (x + size, y + size), (x, y + size)]


@pytest.fixture
def regions():
    return [
        Region.from_geometry("north", square(0, 10), {"name": "North", "population": 120}),
        Region.from_geometry("south", square(0, 0), {"name": "South", "population": 80}),
        Region.from_geometry("east", square(10, 5), {"name": "East", "population": 45}),
    ]


@pytest.fixture
def cells():
    return [
        GridCell("c0", square(0, 0), Point(0.5, 0.5)),
        GridCell("c1", square(10, 5), Point(10.5, 5.5)),
        GridCell("c2", square(0, 10), Point(0.5, 10.5)),
    ]


def solve(regions, cells):
    matrix = build_cost_matrix(
        [(r.id, r.centroid) for r in regions],
        [(c.id, c.centroid) for c in cells],
    )
    return solve_assignment(matrix.values), matrix


class TestJoin:
    """Test MergedResult construction."""

    def test_pairs_by_identifier(self, regions, cells):
        """Test that each region gets the cell it was solved onto."""
        assignment, matrix = solve(regions, cells)

        results = join_results(assignment, matrix, regions, cells)

        pairs = {r.region_id: r.cell_id for r in results}
        assert pairs == {"north": "c2", "south": "c0", "east": "c1"}
        assert all(r.distance == pytest.approx(0.0) for r in results)

    def test_output_follows_region_order(self, regions, cells):
        """Test that output order is the input region order."""
        assignment, matrix = solve(regions, cells)

        results = join_results(assignment, matrix, regions, cells)

        assert [r.region_id for r in results] == ["north", "south", "east"]

    def test_record_flattening(self, regions, cells):
        """Test that records carry region attributes plus assignment columns."""
        assignment, matrix = solve(regions, cells)

        record = join_results(assignment, matrix, regions, cells)[0].as_record()

        assert record["name"] == "North"
        assert record["population"] == 120
        assert record["region_id"] == "north"
        assert record["cell_id"] == "c2"
        assert record["centroid_x"] == pytest.approx(0.5)
        assert record["centroid_y"] == pytest.approx(10.5)
        assert record["area"] == pytest.approx(1.0)
        assert (record["cell_x"], record["cell_y"]) == (0.5, 10.5)

    def test_region_order_differs_from_matrix_order(self, regions, cells):
        """Test that the join resolves rows by identifier, not list position."""
        assignment, matrix = solve(regions, cells)

        results = join_results(assignment, matrix, list(reversed(regions)), cells)

        assert [r.region_id for r in results] == ["east", "south", "north"]
        assert {r.region_id: r.cell_id for r in results}["north"] == "c2"

    def test_identical_centroids(self):
        """Test two regions sharing a centroid produce two distinct records."""
        twins = [
            Region("left-twin", square(0, 0), {"name": "A"}, centroid=Point(0.5, 0.5)),
            Region("right-twin", square(0, 0), {"name": "B"}, centroid=Point(0.5, 0.5)),
        ]
        cells = [GridCell(7, None, Point(0.5, 1.5)), GridCell(8, None, Point(0.5, 2.5))]
        assignment, matrix = solve(twins, cells)

        results = join_results(assignment, matrix, twins, cells)

        assert len(results) == 2
        assert {r.region_id for r in results} == {"left-twin", "right-twin"}
        assert {r.cell_id for r in results} == {7, 8}
        assert {r.attributes["name"] for r in results} == {"A", "B"}


class TestJoinErrors:
    """Test that inconsistent inputs are rejected before any output."""

    def test_non_permutation(self, regions, cells):
        """Test that a non-bijective assignment is rejected."""
        _, matrix = solve(regions, cells)
        broken = Assignment(row_to_col=np.array([0, 0, 1]), total_cost=0.0)

        with pytest.raises(CardinalityMismatchError):
            join_results(broken, matrix, regions, cells)

    def test_missing_region(self, regions, cells):
        """Test that a dropped region is reported."""
        assignment, matrix = solve(regions, cells)

        with pytest.raises(CardinalityMismatchError):
            join_results(assignment, matrix, regions[:2], cells)

    def test_unknown_region_identifier(self, regions, cells):
        """Test that a region absent from the matrix tables is reported."""
        assignment, matrix = solve(regions, cells)
        stranger = Region.from_geometry("west", square(-10, 0))

        with pytest.raises(CardinalityMismatchError, match="region"):
            join_results(assignment, matrix, regions[:2] + [stranger], cells)

    def test_duplicate_cell_records(self, regions, cells):
        """Test that repeated cell ids in the record list are reported."""
        assignment, matrix = solve(regions, cells)
        duplicated = [cells[0], cells[1], GridCell("c0", None, Point(0, 0))]

        with pytest.raises(DuplicateIdentifierError) as exc_info:
            join_results(assignment, matrix, regions, duplicated)

        assert exc_info.value.side == "cell"
        assert (exc_info.value.first, exc_info.value.second) == (0, 2)

    def test_reserved_attribute(self, cells):
        """Test that a region attribute named like an output column is rejected."""
        clashing = [
            Region.from_geometry("north", square(0, 10), {"distance": 3}),
            Region.from_geometry("south", square(0, 0)),
            Region.from_geometry("east", square(10, 5)),
        ]
        assignment, matrix = solve(clashing, cells)

        with pytest.raises(AttributeCollisionError) as exc_info:
            join_results(assignment, matrix, clashing, cells)

        assert exc_info.value.columns == ("distance",)

    def test_region_without_centroid(self, regions, cells):
        """Test that an unresolved region centroid is rejected instead of joined."""
        assignment, matrix = solve(regions, cells)
        unresolved = [Region("north", square(0, 10), {"name": "North"})] + regions[1:]

        with pytest.raises(GeometryError, match="north"):
            join_results(assignment, matrix, unresolved, cells)

    def test_cell_without_centroid(self, regions, cells):
        """Test that an unresolved cell centroid is rejected."""
        assignment, matrix = solve(regions, cells)
        unresolved = cells[:2] + [GridCell("c2", square(0, 10))]

        with pytest.raises(GeometryError, match="c2"):
            join_results(assignment, matrix, regions, unresolved)
