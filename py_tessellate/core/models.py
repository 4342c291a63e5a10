"""Value records shared by the assignment pipeline.

Regions and grid cells are immutable once built. Identifiers are supplied by
the caller (or by position) and are never derived from coordinates, so two
entities with the same centroid remain distinct.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Hashable, List, Mapping, NamedTuple, Optional, Sequence

from .errors import CardinalityMismatchError


class Point(NamedTuple):
    """A 2-D location. (lon, lat) in degrees for the geodesic metric."""
    x: float
    y: float


# Columns written by MergedResult.as_record(); region attributes may not use them.
RESERVED_COLUMNS = (
    "region_id",
    "centroid_x",
    "centroid_y",
    "area",
    "cell_id",
    "cell_x",
    "cell_y",
    "distance",
)


def _as_point(value) -> Optional[Point]:
    if value is None or isinstance(value, Point):
        return value
    if hasattr(value, "x") and hasattr(value, "y"):
        return Point(float(value.x), float(value.y))
    x, y = value
    return Point(float(x), float(y))


@dataclass(frozen=True)
class Region:
    """An original geographic entity to be placed on the grid."""
    id: Hashable
    geometry: Any
    attributes: Mapping[str, Any] = field(default_factory=dict)
    centroid: Optional[Point] = None
    area: Optional[float] = None
    centroid_fallback: bool = False

    def __post_init__(self):
        # Copy so later mutation of the caller's dict cannot leak in
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "centroid", _as_point(self.centroid))

    @classmethod
    def from_geometry(cls, id: Hashable, geometry: Any,
                      attributes: Optional[Mapping[str, Any]] = None) -> "Region":
        """Build a region with centroid and area derived from its polygon."""
        from .centroids import polygon_centroid

        result = polygon_centroid(geometry)
        return cls(
            id=id,
            geometry=geometry,
            attributes=attributes or {},
            centroid=result.point,
            area=result.area,
            centroid_fallback=result.fallback,
        )


@dataclass(frozen=True)
class GridCell:
    """A candidate destination cell produced by a grid generator."""
    id: Hashable
    geometry: Any
    centroid: Optional[Point] = None

    def __post_init__(self):
        object.__setattr__(self, "centroid", _as_point(self.centroid))


@dataclass(frozen=True)
class MergedResult:
    """One region paired with the grid cell it was assigned to."""
    region_id: Hashable
    attributes: Mapping[str, Any]
    region_geometry: Any
    region_centroid: Point
    region_area: Optional[float]
    cell_id: Hashable
    cell_geometry: Any
    cell_centroid: Point
    distance: float

    def as_record(self) -> Dict[str, Any]:
        """Flatten into a single row: region attributes plus assignment columns."""
        record = dict(self.attributes)
        record.update(
            region_id=self.region_id,
            centroid_x=self.region_centroid.x,
            centroid_y=self.region_centroid.y,
            area=self.region_area,
            cell_id=self.cell_id,
            cell_x=self.cell_centroid.x,
            cell_y=self.cell_centroid.y,
            distance=self.distance,
        )
        return record


def cells_from_candidate_grid(points: Sequence, polygons: Sequence,
                              ids: Optional[Sequence[Hashable]] = None) -> List[GridCell]:
    """
    Build grid cells from a generator's (centroids, polygons) pair.

    Args:
        points: Cell centre points, as (x, y) pairs, an (n, 2) array or
                point-like objects
        polygons: Cell geometries in the same order
        ids: Optional identifiers; positions 0..n-1 are used when omitted

    Returns:
        List of GridCell in input order
    """
    coords = [_as_point(p) for p in points]
    polygons = list(polygons)
    if len(coords) != len(polygons):
        raise CardinalityMismatchError("Grid centroids and polygons differ in count",
                                       len(coords), len(polygons))
    ids = list(range(len(coords))) if ids is None else list(ids)
    if len(ids) != len(coords):
        raise CardinalityMismatchError("Grid ids and centroids differ in count",
                                       len(coords), len(ids))

    return [GridCell(id=cid, geometry=poly, centroid=pt)
            for cid, poly, pt in zip(ids, polygons, coords)]
