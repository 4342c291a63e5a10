"""
Region-to-grid assignment pipeline.

Centroids are extracted for any record that lacks one, the distance matrix is
built once, the Hungarian solver runs once, and the pairing is joined back
onto the region and cell records.
"""

import dataclasses
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import structlog

from .centroids import extract_centroids
from .cost_matrix import EARTH_RADIUS_M, CostMatrix, DistanceMetric, build_cost_matrix
from .errors import CardinalityMismatchError, InfeasibleAssignmentError
from .hungarian import Assignment, CancelCheck, TieBreak, solve_assignment
from .joiner import join_results
from .models import GridCell, MergedResult, Region

logger = structlog.get_logger()


@dataclass
class AssignmentOptions:
    """Options for one assignment run."""
    distance_metric: DistanceMetric = DistanceMetric.PLANAR
    tie_break: TieBreak = TieBreak.LOWEST_INDEX
    max_workers: int = 1  # threads for centroid extraction
    earth_radius: float = EARTH_RADIUS_M  # geodesic metric only

    def __post_init__(self):
        self.distance_metric = DistanceMetric(self.distance_metric)
        self.tie_break = TieBreak(self.tie_break)
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.earth_radius <= 0:
            raise ValueError(f"earth_radius must be positive, got {self.earth_radius}")


@dataclass(frozen=True, eq=False)
class TessellationResult:
    """Merged records in region order, with the solved assignment."""
    records: List[MergedResult]
    assignment: Assignment
    cost_matrix: CostMatrix

    @property
    def total_cost(self) -> float:
        return self.assignment.total_cost

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[MergedResult]:
        return iter(self.records)

    def as_records(self) -> List[dict]:
        return [record.as_record() for record in self.records]


def _with_region_centroids(regions: Sequence[Region], max_workers: int) -> List[Region]:
    # A caller-supplied centroid is kept; only the area is derived then
    pending = [i for i, region in enumerate(regions)
               if region.centroid is None or (region.area is None and region.geometry is not None)]
    if not pending:
        return list(regions)

    results = extract_centroids([regions[i].geometry for i in pending], max_workers)
    filled = list(regions)
    for i, result in zip(pending, results):
        if regions[i].centroid is not None:
            filled[i] = dataclasses.replace(regions[i], area=result.area)
            continue
        filled[i] = dataclasses.replace(
            regions[i],
            centroid=result.point,
            area=result.area,
            centroid_fallback=result.fallback,
        )
    return filled


def _with_cell_centroids(cells: Sequence[GridCell], max_workers: int) -> List[GridCell]:
    pending = [i for i, cell in enumerate(cells) if cell.centroid is None]
    if not pending:
        return list(cells)

    results = extract_centroids([cells[i].geometry for i in pending], max_workers)
    filled = list(cells)
    for i, result in zip(pending, results):
        filled[i] = dataclasses.replace(cells[i], centroid=result.point)
    return filled


def assign_regions(regions: Sequence[Region], cells: Sequence[GridCell],
                   options: Optional[AssignmentOptions] = None,
                   cancel_check: Optional[CancelCheck] = None) -> TessellationResult:
    """
    Assign every region to exactly one grid cell, minimising total distance.

    Args:
        regions: Source regions; centroids are derived when missing
        cells: Candidate grid cells, same count as regions
        options: AssignmentOptions (defaults: planar, lowest_index)
        cancel_check: Optional callable polled between solver phases

    Returns:
        TessellationResult with one MergedResult per region

    Raises:
        CardinalityMismatchError: if the counts differ (checked first)
        InfeasibleAssignmentError: if there are no regions
        DuplicateIdentifierError: if identifiers repeat on either side
        GeometryError: if a geometry needed for a centroid is malformed
        AssignmentCancelledError: if cancel_check requests it
    """
    options = options or AssignmentOptions()
    regions = list(regions)
    cells = list(cells)

    if len(regions) != len(cells):
        raise CardinalityMismatchError("Region and grid cell counts differ",
                                       len(regions), len(cells))
    if not regions:
        raise InfeasibleAssignmentError("No regions to assign (n = 0)")

    n = len(regions)
    logger.info("Starting assignment", regions=n,
                metric=options.distance_metric.value,
                tie_break=options.tie_break.value)
    start = time.perf_counter()

    regions = _with_region_centroids(regions, options.max_workers)
    cells = _with_cell_centroids(cells, options.max_workers)

    matrix = build_cost_matrix(
        [(region.id, region.centroid) for region in regions],
        [(cell.id, cell.centroid) for cell in cells],
        metric=options.distance_metric,
        earth_radius=options.earth_radius,
    )
    assignment = solve_assignment(matrix.values, options.tie_break, cancel_check)
    records = join_results(assignment, matrix, regions, cells)

    logger.info("Assignment complete", regions=n,
                total_cost=round(assignment.total_cost, 6),
                elapsed_ms=round((time.perf_counter() - start) * 1000, 1))
    return TessellationResult(records=records, assignment=assignment, cost_matrix=matrix)
