"""
Exact solver for the square assignment problem (Hungarian / Kuhn-Munkres).

The solver works on dual potentials u (rows) and v (columns) with reduced
cost c[i, j] - u[i] - v[j] >= 0; an edge is "zero" (tight) when that reduced
cost is 0.

1. Row and column reduction give the starting potentials.
2. Rows are inserted one at a time. Each phase grows an alternating tree of
   zero edges from the new free row; the columns in the tree are the covered
   lines.
3. When no zero edge leaves the tree, the minimum uncovered reduced cost is
   moved into the potentials (added to tree rows, subtracted from tree
   columns), which creates at least one new zero without breaking existing
   ones.
4. Once the tree reaches an unmatched column, the matching is flipped along
   the alternating path (augmentation), so every phase adds one pair.

After n phases the matching is perfect and optimal. Each phase is O(n^2),
so the whole solve is O(n^3) time and O(n^2) space.

Ties are resolved by scan order: rows are inserted in ascending index and
the lowest column wins among equal reduced costs (argmin returns the first
minimum). TieBreak.HIGHEST_INDEX inserts rows in descending order instead.
Comparisons are on raw floats without epsilon snapping.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np
import structlog

from .errors import (
    AssignmentCancelledError,
    CardinalityMismatchError,
    InfeasibleAssignmentError,
)

logger = structlog.get_logger()

CancelCheck = Callable[[], bool]


class TieBreak(str, Enum):
    """Preference order among equal-cost optimal matchings."""
    LOWEST_INDEX = "lowest_index"    # lowest row index picks first
    HIGHEST_INDEX = "highest_index"  # highest row index picks first


@dataclass(frozen=True, eq=False)
class Assignment:
    """A permutation of column indices over rows plus its total cost."""
    row_to_col: np.ndarray
    total_cost: float

    @property
    def size(self) -> int:
        return len(self.row_to_col)

    @property
    def col_to_row(self) -> np.ndarray:
        inverse = np.empty_like(self.row_to_col)
        inverse[self.row_to_col] = np.arange(self.size)
        return inverse

    def pairs(self) -> List[Tuple[int, int]]:
        return [(int(i), int(j)) for i, j in enumerate(self.row_to_col)]

    def is_permutation(self) -> bool:
        return np.array_equal(np.sort(self.row_to_col), np.arange(self.size))


def _check_cancel(cancel_check: Optional[CancelCheck], phase: str, rounds: int) -> None:
    if cancel_check is not None and cancel_check():
        logger.info("Assignment cancelled", phase=phase, rounds=rounds)
        raise AssignmentCancelledError(phase, rounds)


def _validate(cost) -> np.ndarray:
    matrix = np.asarray(cost, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"Cost matrix must be 2-D, got {matrix.ndim} dimension(s)")
    rows, cols = matrix.shape
    if rows != cols:
        raise CardinalityMismatchError("Cost matrix is not square", rows, cols)
    if rows == 0:
        raise InfeasibleAssignmentError("Cannot assign an empty set (n = 0)")
    if not np.all(np.isfinite(matrix)):
        raise ValueError("Cost matrix contains non-finite values")
    return matrix


def _solve_lowest_index(cost: np.ndarray, cancel_check: Optional[CancelCheck]) -> np.ndarray:
    """Run the phases on a validated square matrix; returns row -> column."""
    n = cost.shape[0]

    # Column n is a virtual root; match_col[j] is the row matched to column j or -1
    u = np.zeros(n + 1)
    v = np.zeros(n + 1)
    u[:n] = cost.min(axis=1)
    v[:n] = (cost - u[:n, None]).min(axis=0)
    match_col = np.full(n + 1, -1, dtype=np.int64)
    parent = np.zeros(n + 1, dtype=np.int64)
    root = n

    _check_cancel(cancel_check, "reduction", 0)
    adjustments = 0

    for row in range(n):
        match_col[root] = row
        current = root
        slack = np.full(n + 1, np.inf)
        in_tree = np.zeros(n + 1, dtype=bool)

        while True:
            in_tree[current] = True
            tree_row = match_col[current]
            outside = ~in_tree[:n]

            reduced = cost[tree_row] - u[tree_row] - v[:n]
            improved = outside & (reduced < slack[:n])
            slack[:n][improved] = reduced[improved]
            parent[:n][improved] = current

            candidates = np.where(outside, slack[:n], np.inf)
            nxt = int(np.argmin(candidates))
            delta = candidates[nxt]

            if delta != 0:
                adjustments += 1
            u[match_col[in_tree]] += delta
            v[in_tree] -= delta
            slack[:n][outside] -= delta

            current = nxt
            if match_col[current] == -1:
                break

        # Flip the alternating path back to the root
        while current != root:
            previous = parent[current]
            match_col[current] = match_col[previous]
            current = previous

        _check_cancel(cancel_check, "augmentation", row + 1)

    row_to_col = np.empty(n, dtype=np.int64)
    row_to_col[match_col[:n]] = np.arange(n)
    logger.debug("Hungarian phases complete", size=n, adjustments=adjustments)
    return row_to_col


def solve_assignment(cost, tie_break="lowest_index",
                     cancel_check: Optional[CancelCheck] = None) -> Assignment:
    """
    Find the permutation minimising the sum of cost[i, sigma(i)].

    Args:
        cost: Square finite cost matrix (array-like)
        tie_break: TieBreak or its name
        cancel_check: Optional callable polled between phases; returning a
                      truthy value aborts the solve

    Returns:
        Assignment with the row -> column permutation and total cost

    Raises:
        InfeasibleAssignmentError: for an empty matrix
        CardinalityMismatchError: for a non-square matrix
        AssignmentCancelledError: when cancel_check requests it
        ValueError: for non-finite costs, bad dimensions or unknown tie-break
    """
    tie_break = TieBreak(tie_break)
    matrix = _validate(cost)
    n = matrix.shape[0]

    if n == 1:
        row_to_col = np.zeros(1, dtype=np.int64)
    elif tie_break is TieBreak.HIGHEST_INDEX:
        # Insert rows bottom-up by solving on the row-reversed matrix
        reversed_solution = _solve_lowest_index(matrix[::-1].copy(), cancel_check)
        row_to_col = reversed_solution[::-1].copy()
    else:
        row_to_col = _solve_lowest_index(matrix, cancel_check)

    row_to_col.setflags(write=False)
    total = float(matrix[np.arange(n), row_to_col].sum())
    logger.debug("Solved assignment", size=n, total_cost=total, tie_break=tie_break.value)
    return Assignment(row_to_col=row_to_col, total_cost=total)
