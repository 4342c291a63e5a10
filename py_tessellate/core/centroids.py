"""
Centroid and area extraction for polygon collections.

Simple polygons (holes allowed) use the area-weighted shoelace centroid.
Multi-part, zero-area and self-intersecting polygons fall back to the mean of
their vertices and are flagged, so callers never see NaN coordinates.

Geometries may be shapely Polygon/MultiPolygon objects or plain coordinate
rings; shapely itself is never imported here.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence

import numpy as np
import structlog

from .errors import GeometryError
from .models import Point

logger = structlog.get_logger()

# Rows of edges compared at once in the self-intersection test
_EDGE_CHUNK = 512

# Shapely geometry types that can hold polygon parts
_POLYGON_TYPES = {"Polygon", "MultiPolygon", "GeometryCollection"}


class CentroidResult(NamedTuple):
    """Representative point and area of one polygon."""
    point: Point
    area: float
    fallback: bool  # True when the vertex mean was used


def _clean_ring(coords) -> np.ndarray:
    """Return an (m, 2) float array without the closing vertex."""
    try:
        ring = np.asarray(coords, dtype=float)
    except (TypeError, ValueError) as exc:
        raise GeometryError(f"Ring is not a sequence of coordinates: {exc}") from exc

    if ring.ndim != 2 or ring.shape[1] < 2:
        raise GeometryError(f"Ring must be a sequence of (x, y) pairs, got shape {ring.shape}")
    ring = ring[:, :2]

    if not np.all(np.isfinite(ring)):
        raise GeometryError("Ring contains non-finite coordinates")

    if len(ring) > 1 and np.array_equal(ring[0], ring[-1]):
        ring = ring[:-1]

    if len(np.unique(ring, axis=0)) < 3:
        raise GeometryError(f"Polygon ring needs at least 3 distinct vertices, got {len(ring)}")
    return ring


def _geometry_parts(geometry: Any):
    """
    Split a geometry into parts, each a list of rings (exterior first).

    Returns:
        Tuple of (parts, invalid) where invalid is True if a shapely geometry
        reported itself as not valid
    """
    if geometry is None:
        raise GeometryError("Geometry is missing")

    geom_type = getattr(geometry, "geom_type", None)
    if geom_type is not None and geom_type not in _POLYGON_TYPES:
        raise GeometryError(f"Unsupported geometry type {geom_type}")

    if hasattr(geometry, "geoms"):
        parts = []
        for part in geometry.geoms:
            parts.extend(_geometry_parts(part)[0])
        invalid = getattr(geometry, "is_valid", True) is False
        return parts, invalid

    if hasattr(geometry, "exterior"):
        if getattr(geometry, "is_empty", False):
            raise GeometryError("Geometry is empty")
        rings = [geometry.exterior.coords] + [hole.coords for hole in geometry.interiors]
        invalid = getattr(geometry, "is_valid", True) is False
        return [[_clean_ring(r) for r in rings]], invalid

    if isinstance(geometry, (str, bytes)) or not isinstance(geometry, (Sequence, np.ndarray)):
        raise GeometryError(f"Unsupported geometry type {type(geometry).__name__}")
    if len(geometry) == 0:
        raise GeometryError("Geometry has no vertices")

    # A single ring is a sequence of pairs; otherwise a list of rings
    if np.ndim(geometry[0]) == 1:
        return [[_clean_ring(geometry)]], None
    return [[_clean_ring(r) for r in geometry]], None


def _signed_area_and_centroid(ring: np.ndarray):
    # Shift to the first vertex to limit cancellation on large coordinates
    origin = ring[0]
    x = ring[:, 0] - origin[0]
    y = ring[:, 1] - origin[1]
    xn = np.roll(x, -1)
    yn = np.roll(y, -1)
    cross = x * yn - xn * y

    area = cross.sum() / 2.0
    if area == 0:
        return 0.0, None
    cx = ((x + xn) * cross).sum() / (6.0 * area) + origin[0]
    cy = ((y + yn) * cross).sum() / (6.0 * area) + origin[1]
    return area, np.array([cx, cy])


def _orientation(ax, ay, bx, by, cx, cy):
    return (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)


def ring_self_intersects(ring: np.ndarray) -> bool:
    """Check for proper crossings between non-adjacent edges of a closed ring."""
    m = len(ring)
    if m < 4:
        return False

    start = ring
    end = np.roll(ring, -1, axis=0)
    idx = np.arange(m)

    for lo in range(0, m, _EDGE_CHUNK):
        hi = min(lo + _EDGE_CHUNK, m)
        a = start[lo:hi, None, :]
        b = end[lo:hi, None, :]
        c = start[None, :, :]
        d = end[None, :, :]

        o1 = _orientation(a[..., 0], a[..., 1], b[..., 0], b[..., 1], c[..., 0], c[..., 1])
        o2 = _orientation(a[..., 0], a[..., 1], b[..., 0], b[..., 1], d[..., 0], d[..., 1])
        o3 = _orientation(c[..., 0], c[..., 1], d[..., 0], d[..., 1], a[..., 0], a[..., 1])
        o4 = _orientation(c[..., 0], c[..., 1], d[..., 0], d[..., 1], b[..., 0], b[..., 1])
        crossing = (o1 * o2 < 0) & (o3 * o4 < 0)

        i = idx[lo:hi, None]
        j = idx[None, :]
        # Each pair once, adjacent edges (sharing a vertex) excluded
        non_adjacent = (j > i + 1) & ~((i == 0) & (j == m - 1))
        if np.any(crossing & non_adjacent):
            return True
    return False


def polygon_centroid(geometry: Any) -> CentroidResult:
    """
    Compute the centroid and area of a polygon.

    Args:
        geometry: shapely Polygon/MultiPolygon, a single ring of (x, y)
                  pairs, or a list of rings [exterior, hole, ...]

    Returns:
        CentroidResult with a finite point and non-negative area

    Raises:
        GeometryError: if any ring has fewer than 3 distinct vertices or
                       non-finite coordinates, or the input is not a polygon
    """
    parts, invalid = _geometry_parts(geometry)
    if not parts:
        raise GeometryError("Geometry has no polygon parts")

    part_areas = []
    weighted = np.zeros(2)
    degenerate = False
    for rings in parts:
        exterior_area, exterior_centroid = _signed_area_and_centroid(rings[0])
        net_area = abs(exterior_area)
        if exterior_centroid is None:
            degenerate = True
        else:
            weighted += abs(exterior_area) * exterior_centroid

        for hole in rings[1:]:
            hole_area, hole_centroid = _signed_area_and_centroid(hole)
            net_area -= abs(hole_area)
            if hole_centroid is not None:
                weighted -= abs(hole_area) * hole_centroid
        part_areas.append(net_area)

    if invalid is None:
        invalid = any(ring_self_intersects(r) for rings in parts for r in rings)

    area = max(float(sum(part_areas)), 0.0)

    if len(parts) == 1 and not degenerate and not invalid and part_areas[0] > 0:
        cx, cy = weighted / part_areas[0]
        return CentroidResult(Point(float(cx), float(cy)), area, False)

    vertices = np.vstack([r for rings in parts for r in rings])
    mean = vertices.mean(axis=0)
    return CentroidResult(Point(float(mean[0]), float(mean[1])), area, True)


def extract_centroids(geometries: Iterable[Any], max_workers: Optional[int] = 1) -> List[CentroidResult]:
    """
    Compute centroids for a collection of polygons, preserving order.

    Args:
        geometries: Polygons accepted by polygon_centroid
        max_workers: Thread count; 1 (or None) runs inline

    Returns:
        One CentroidResult per geometry

    Raises:
        GeometryError: for the first malformed polygon, naming its position
    """
    geometries = list(geometries)
    results: List[Optional[CentroidResult]] = [None] * len(geometries)

    if max_workers and max_workers > 1 and len(geometries) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            iterator = pool.map(polygon_centroid, geometries)
            for i in range(len(geometries)):
                try:
                    results[i] = next(iterator)
                except GeometryError as exc:
                    raise GeometryError(f"Geometry at position {i}: {exc}") from exc
    else:
        for i, geometry in enumerate(geometries):
            try:
                results[i] = polygon_centroid(geometry)
            except GeometryError as exc:
                raise GeometryError(f"Geometry at position {i}: {exc}") from exc

    fallbacks = sum(1 for r in results if r.fallback)
    if fallbacks:
        logger.warning("Centroid fallback to vertex mean", count=fallbacks, total=len(results))
    logger.debug("Extracted centroids", count=len(results), workers=max_workers)
    return results
