"""Tests for centroid and area extraction."""

import numpy as np
import pytest
from shapely.geometry import GeometryCollection, LineString, MultiPolygon, Polygon
from shapely.geometry import Point as ShapelyPoint

from py_tessellate.core.centroids import extract_centroids, polygon_centroid, ring_self_intersects
from py_tessellate.core.errors import GeometryError


SQUARE = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]


class TestSimplePolygons:
    """Test the area-weighted centroid on simple polygons."""

    def test_square(self):
        """Test centroid and area of an axis-aligned square."""
        result = polygon_centroid(SQUARE)

        assert result.point.x == pytest.approx(1.0)
        assert result.point.y == pytest.approx(1.0)
        assert result.area == pytest.approx(4.0)
        assert not result.fallback

    def test_closed_ring(self):
        """Test that a repeated closing vertex is ignored."""
        result = polygon_centroid(SQUARE + [SQUARE[0]])

        assert result.point == pytest.approx((1.0, 1.0))
        assert result.area == pytest.approx(4.0)

    def test_clockwise_ring(self):
        """Test that orientation does not change the result."""
        result = polygon_centroid(list(reversed(SQUARE)))

        assert result.point == pytest.approx((1.0, 1.0))
        assert result.area == pytest.approx(4.0)

    def test_area_weighted_not_vertex_mean(self):
        """Test an L-shape where the area centroid differs from the vertex mean."""
        l_shape = [(0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4)]

        result = polygon_centroid(l_shape)

        # 4x1 rectangle at (2, 0.5) plus 1x3 rectangle at (0.5, 2.5): area 7
        assert result.area == pytest.approx(7.0)
        assert result.point.x == pytest.approx(9.5 / 7.0)
        assert result.point.y == pytest.approx(9.5 / 7.0)
        assert not result.fallback

    def test_triangle(self):
        """Test that a triangle centroid is the mean of its corners."""
        result = polygon_centroid([(0, 0), (3, 0), (0, 3)])

        assert result.point == pytest.approx((1.0, 1.0))
        assert result.area == pytest.approx(4.5)

    def test_polygon_with_hole(self):
        """Test that holes subtract their area and shift the centroid."""
        exterior = [(0, 0), (4, 0), (4, 4), (0, 4)]
        hole = [(2, 1), (3, 1), (3, 3), (2, 3)]

        result = polygon_centroid([exterior, hole])

        # 16 * (2, 2) - 2 * (2.5, 2) over area 14
        assert result.area == pytest.approx(14.0)
        assert result.point.x == pytest.approx((32.0 - 5.0) / 14.0)
        assert result.point.y == pytest.approx(2.0)

    def test_large_coordinates(self):
        """Test precision with projected coordinates far from the origin."""
        offset = 5_000_000.0
        ring = [(x + offset, y + offset) for x, y in SQUARE]

        result = polygon_centroid(ring)

        assert result.point.x == pytest.approx(offset + 1.0, abs=1e-6)
        assert result.point.y == pytest.approx(offset + 1.0, abs=1e-6)

    def test_shapely_polygon(self):
        """Test shapely input matches shapely's own centroid."""
        polygon = Polygon([(0, 0), (5, 0), (6, 3), (2, 4), (0, 2)], holes=[[(1, 1), (2, 1), (2, 2)]])

        result = polygon_centroid(polygon)

        assert result.point.x == pytest.approx(polygon.centroid.x)
        assert result.point.y == pytest.approx(polygon.centroid.y)
        assert result.area == pytest.approx(polygon.area)
        assert not result.fallback


class TestFallback:
    """Test vertex-mean fallback for multi-part and degenerate geometries."""

    def test_collinear_ring(self):
        """Test that a zero-area ring falls back without NaN."""
        result = polygon_centroid([(0, 0), (1, 1), (2, 2)])

        assert result.fallback
        assert result.area == 0.0
        assert result.point == pytest.approx((1.0, 1.0))
        assert np.isfinite(result.point.x) and np.isfinite(result.point.y)

    def test_self_intersecting_ring(self):
        """Test that a crossing ring with non-zero area still falls back."""
        ring = [(0, 0), (4, 0), (0, 4), (2, 4)]

        result = polygon_centroid(ring)

        assert result.fallback
        assert result.point == pytest.approx((1.5, 2.0))

    def test_invalid_shapely_polygon(self):
        """Test that shapely's validity flag triggers the fallback."""
        bowtie = Polygon([(0, 0), (4, 0), (0, 4), (2, 4)])

        result = polygon_centroid(bowtie)

        assert result.fallback

    def test_multipolygon(self):
        """Test that multi-part input uses the mean of all vertices."""
        parts = MultiPolygon([
            Polygon([(0, 0), (2, 0), (2, 2), (0, 2)]),
            Polygon([(10, 0), (12, 0), (12, 2), (10, 2)]),
        ])

        result = polygon_centroid(parts)

        assert result.fallback
        assert result.point == pytest.approx((6.0, 1.0))
        assert result.area == pytest.approx(8.0)


class TestSelfIntersection:
    """Test the raw-ring crossing check."""

    def test_simple_ring(self):
        """Test that a convex ring does not self-intersect."""
        assert not ring_self_intersects(np.array(SQUARE))

    def test_bowtie(self):
        """Test that a bow-tie ring is detected."""
        assert ring_self_intersects(np.array([(0, 0), (2, 2), (2, 0), (0, 2)], dtype=float))

    def test_concave_ring(self):
        """Test that a concave but simple ring is not flagged."""
        l_shape = np.array([(0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4)], dtype=float)

        assert not ring_self_intersects(l_shape)


class TestMalformedGeometry:
    """Test GeometryError conditions."""

    @pytest.mark.parametrize("ring", [
        [(0, 0), (1, 1)],
        [(0, 0), (1, 1), (0, 0)],
        [(0, 0), (0, 0), (0, 0), (1, 1)],
    ])
    def test_too_few_vertices(self, ring):
        """Test that fewer than 3 distinct vertices is an error."""
        with pytest.raises(GeometryError):
            polygon_centroid(ring)

    def test_non_finite(self):
        """Test that NaN coordinates are rejected."""
        with pytest.raises(GeometryError):
            polygon_centroid([(0, 0), (1, np.nan), (1, 1)])

    def test_missing_geometry(self):
        """Test that None and empty inputs are rejected."""
        with pytest.raises(GeometryError):
            polygon_centroid(None)
        with pytest.raises(GeometryError):
            polygon_centroid([])

    def test_empty_shapely_polygon(self):
        """Test that an empty shapely polygon is rejected."""
        with pytest.raises(GeometryError):
            polygon_centroid(Polygon())

    @pytest.mark.parametrize("geometry", [
        ShapelyPoint(1, 1),
        LineString([(0, 0), (1, 1), (2, 0)]),
        GeometryCollection([Polygon(SQUARE), LineString([(0, 0), (1, 1)])]),
        5.0,
        "POLYGON ((0 0, 1 0, 1 1, 0 0))",
    ])
    def test_unsupported_geometry_types(self, geometry):
        """Test that points, lines and scalars are not treated as polygons."""
        with pytest.raises(GeometryError, match="Unsupported geometry type"):
            polygon_centroid(geometry)

    def test_stray_point_reports_position(self):
        """Test that a non-polygon in a collection is reported with its position."""
        with pytest.raises(GeometryError, match="position 1"):
            extract_centroids([Polygon(SQUARE), ShapelyPoint(0, 0)])


class TestExtractCentroids:
    """Test collection-level extraction."""

    def test_preserves_order(self):
        """Test that results follow input order."""
        squares = [[(x, 0), (x + 1, 0), (x + 1, 1), (x, 1)] for x in range(0, 20, 2)]

        results = extract_centroids(squares)

        assert [r.point.x for r in results] == pytest.approx([x + 0.5 for x in range(0, 20, 2)])

    def test_threaded_matches_inline(self):
        """Test that a thread pool gives the same results as inline extraction."""
        rng = np.random.default_rng(11)
        triangles = [rng.uniform(0, 100, size=(3, 2)) for _ in range(50)]

        inline = extract_centroids(triangles, max_workers=1)
        threaded = extract_centroids(triangles, max_workers=4)

        assert inline == threaded

    def test_error_names_position(self):
        """Test that the failing geometry's position is reported."""
        geometries = [SQUARE, SQUARE, [(0, 0), (1, 1)]]

        with pytest.raises(GeometryError, match="position 2"):
            extract_centroids(geometries, max_workers=2)
