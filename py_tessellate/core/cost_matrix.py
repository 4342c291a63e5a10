"""Pairwise distance matrix between region and grid cell centroids."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial.distance import cdist

from .errors import CardinalityMismatchError, DuplicateIdentifierError

logger = structlog.get_logger()

# Mean Earth radius (IUGG), metres
EARTH_RADIUS_M = 6371008.8


class DistanceMetric(str, Enum):
    """How centroid distances are measured."""
    PLANAR = "planar"      # Euclidean, in coordinate units
    GEODESIC = "geodesic"  # Great-circle metres over (lon, lat) degrees


@dataclass(frozen=True, eq=False)
class CostMatrix:
    """Square distance matrix with index -> identifier tables for both axes."""
    values: np.ndarray
    row_ids: Tuple[Hashable, ...]
    col_ids: Tuple[Hashable, ...]
    metric: DistanceMetric = DistanceMetric.PLANAR
    _row_lookup: Dict[Hashable, int] = field(default=None, repr=False, compare=False)
    _col_lookup: Dict[Hashable, int] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_row_lookup", _index_table(self.row_ids, "row"))
        object.__setattr__(self, "_col_lookup", _index_table(self.col_ids, "column"))

    @property
    def size(self) -> int:
        return len(self.row_ids)

    def row_index(self, identifier: Hashable) -> int:
        return self._row_lookup[identifier]

    def col_index(self, identifier: Hashable) -> int:
        return self._col_lookup[identifier]

    def cost(self, row_id: Hashable, col_id: Hashable) -> float:
        return float(self.values[self.row_index(row_id), self.col_index(col_id)])


def _index_table(ids: Sequence[Hashable], side: str) -> Dict[Hashable, int]:
    table: Dict[Hashable, int] = {}
    for position, identifier in enumerate(ids):
        if identifier in table:
            raise DuplicateIdentifierError(side, identifier, table[identifier], position)
        table[identifier] = position
    return table


def planar_distances(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Euclidean distances between every row of a and every row of b."""
    return cdist(a, b, metric="euclidean")


def haversine_distances(a: np.ndarray, b: np.ndarray, radius: float = EARTH_RADIUS_M) -> np.ndarray:
    """
    Great-circle distances between (lon, lat) points given in degrees.

    Args:
        a: (n, 2) array of lon/lat
        b: (m, 2) array of lon/lat
        radius: Sphere radius; the result is in the same unit

    Returns:
        (n, m) distance array
    """
    lon1 = np.radians(a[:, 0])[:, None]
    lat1 = np.radians(a[:, 1])[:, None]
    lon2 = np.radians(b[:, 0])[None, :]
    lat2 = np.radians(b[:, 1])[None, :]

    h = (np.sin((lat2 - lat1) / 2.0) ** 2
         + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2.0) ** 2)
    # Rounding can push h slightly past 1 for antipodal points
    return 2.0 * radius * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def build_cost_matrix(rows: Sequence[Tuple[Hashable, Sequence[float]]],
                      cols: Sequence[Tuple[Hashable, Sequence[float]]],
                      metric="planar",
                      earth_radius: float = EARTH_RADIUS_M) -> CostMatrix:
    """
    Build the n x n centroid distance matrix.

    Identifiers are attached by position only; coordinates are never used as
    keys, so coincident centroids stay separate entries.

    Args:
        rows: Ordered (identifier, point) pairs for regions
        cols: Ordered (identifier, point) pairs for grid cells
        metric: DistanceMetric or its name
        earth_radius: Sphere radius for the geodesic metric

    Returns:
        CostMatrix

    Raises:
        CardinalityMismatchError: if the sides differ in length
        DuplicateIdentifierError: if an identifier repeats on one side
        ValueError: for an unknown metric
    """
    metric = DistanceMetric(metric)
    if len(rows) != len(cols):
        raise CardinalityMismatchError("Row and column point sets differ in size",
                                       len(rows), len(cols))

    row_ids = tuple(identifier for identifier, _ in rows)
    col_ids = tuple(identifier for identifier, _ in cols)

    n = len(rows)
    row_points = np.array([point for _, point in rows], dtype=float).reshape(n, 2)
    col_points = np.array([point for _, point in cols], dtype=float).reshape(n, 2)

    if metric is DistanceMetric.GEODESIC:
        values = haversine_distances(row_points, col_points, earth_radius)
    else:
        values = planar_distances(row_points, col_points)

    matrix = CostMatrix(values=values, row_ids=row_ids, col_ids=col_ids, metric=metric)
    logger.debug("Built cost matrix", size=n, metric=metric.value)
    return matrix
