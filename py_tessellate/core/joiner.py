"""Join a solved assignment back onto the full region and cell records."""

from typing import Dict, Hashable, List, Sequence, TypeVar

import structlog

from .cost_matrix import CostMatrix
from .errors import AttributeCollisionError, CardinalityMismatchError, DuplicateIdentifierError, GeometryError
from .hungarian import Assignment
from .models import RESERVED_COLUMNS, GridCell, MergedResult, Region

logger = structlog.get_logger()

T = TypeVar("T", Region, GridCell)

RESERVED_COLUMNS_SET = frozenset(RESERVED_COLUMNS)


def _by_id(records: Sequence[T], side: str) -> Dict[Hashable, T]:
    table: Dict[Hashable, T] = {}
    positions: Dict[Hashable, int] = {}
    for position, record in enumerate(records):
        if record.id in table:
            raise DuplicateIdentifierError(side, record.id, positions[record.id], position)
        table[record.id] = record
        positions[record.id] = position
    return table


def _check_coverage(ids: Sequence[Hashable], table: Dict[Hashable, T], side: str) -> None:
    missing = [identifier for identifier in ids if identifier not in table]
    if missing:
        raise CardinalityMismatchError(
            f"{len(missing)} {side} identifier(s) in the cost matrix have no record, "
            f"first {missing[0]!r}",
            len(ids), len(ids) - len(missing),
        )


def _check_centroids(records: Sequence[T], side: str) -> None:
    for record in records:
        if record.centroid is None:
            raise GeometryError(f"{side.capitalize()} {record.id!r} has no centroid; derive it before joining")


def join_results(assignment: Assignment, cost_matrix: CostMatrix,
                 regions: Sequence[Region], cells: Sequence[GridCell]) -> List[MergedResult]:
    """
    Build one MergedResult per region from the solved permutation.

    Pairing goes row index -> column index -> cell identifier -> cell record;
    coordinates are never compared. All checks run before any record is
    built, so the result is either complete or an error is raised.

    Args:
        assignment: Solved row -> column permutation
        cost_matrix: Matrix the assignment was solved on
        regions: Region records (order of the output)
        cells: GridCell records

    Returns:
        List of MergedResult, one per region, in region order

    Raises:
        CardinalityMismatchError: if sizes disagree, the assignment is not a
                                  permutation, or an identifier has no record
        DuplicateIdentifierError: if a record list repeats an identifier
        AttributeCollisionError: if a region attribute uses a reserved column
        GeometryError: if a region or cell has no centroid
    """
    n = cost_matrix.size
    if assignment.size != n:
        raise CardinalityMismatchError("Assignment size differs from cost matrix", n, assignment.size)
    if len(regions) != n:
        raise CardinalityMismatchError("Region count differs from cost matrix", n, len(regions))
    if len(cells) != n:
        raise CardinalityMismatchError("Grid cell count differs from cost matrix", n, len(cells))
    if not assignment.is_permutation():
        distinct = len(set(assignment.row_to_col.tolist()))
        raise CardinalityMismatchError("Assignment is not a permutation", n, distinct)

    region_by_id = _by_id(regions, "region")
    cell_by_id = _by_id(cells, "cell")
    _check_coverage(cost_matrix.row_ids, region_by_id, "region")
    _check_coverage(cost_matrix.col_ids, cell_by_id, "cell")
    _check_centroids(regions, "region")
    _check_centroids(cells, "cell")

    for region in regions:
        clash = RESERVED_COLUMNS_SET.intersection(region.attributes)
        if clash:
            raise AttributeCollisionError(region.id, clash)

    results = []
    for region in regions:
        row = cost_matrix.row_index(region.id)
        col = int(assignment.row_to_col[row])
        cell = cell_by_id[cost_matrix.col_ids[col]]
        results.append(MergedResult(
            region_id=region.id,
            attributes=region.attributes,
            region_geometry=region.geometry,
            region_centroid=region.centroid,
            region_area=region.area,
            cell_id=cell.id,
            cell_geometry=cell.geometry,
            cell_centroid=cell.centroid,
            distance=float(cost_matrix.values[row, col]),
        ))

    logger.debug("Joined assignment", records=len(results))
    return results

