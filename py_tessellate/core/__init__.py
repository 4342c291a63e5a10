"""
Core assignment engine: centroids, cost matrix, Hungarian solver and joiner.
"""

from .centroids import CentroidResult, extract_centroids, polygon_centroid
from .cost_matrix import CostMatrix, DistanceMetric, build_cost_matrix
from .engine import AssignmentOptions, TessellationResult, assign_regions
from .errors import (
    AssignmentCancelledError,
    AttributeCollisionError,
    CardinalityMismatchError,
    DuplicateIdentifierError,
    GeometryError,
    InfeasibleAssignmentError,
    TessellationError,
)
from .hungarian import Assignment, TieBreak, solve_assignment
from .joiner import join_results
from .models import GridCell, MergedResult, Point, Region, cells_from_candidate_grid

__all__ = ['CentroidResult', 'extract_centroids', 'polygon_centroid',
           'CostMatrix', 'DistanceMetric', 'build_cost_matrix',
           'AssignmentOptions', 'TessellationResult', 'assign_regions',
           'AssignmentCancelledError', 'AttributeCollisionError', 'CardinalityMismatchError',
           'DuplicateIdentifierError', 'GeometryError', 'InfeasibleAssignmentError',
           'TessellationError', 'Assignment', 'TieBreak', 'solve_assignment',
           'join_results', 'GridCell', 'MergedResult', 'Point', 'Region',
           'cells_from_candidate_grid']
