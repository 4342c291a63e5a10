"""Exceptions raised by the assignment engine."""

from typing import Any, Hashable


class TessellationError(Exception):
    """Base class for all engine errors."""


class GeometryError(TessellationError, ValueError):
    """A polygon is malformed (too few vertices, non-finite coordinates)."""


class CardinalityMismatchError(TessellationError, ValueError):
    """Region and grid cell collections do not pair up one to one."""

    def __init__(self, message: str, expected: int, actual: int):
        super().__init__(f"{message} (expected {expected}, got {actual})")
        self.expected = expected
        self.actual = actual


class DuplicateIdentifierError(TessellationError, ValueError):
    """Two entities on the same side share an identifier.

    Both positions are kept so the caller can deduplicate the input.
    """

    def __init__(self, side: str, identifier: Hashable, first: int, second: int):
        super().__init__(
            f"Duplicate {side} identifier {identifier!r} at positions {first} and {second}"
        )
        self.side = side
        self.identifier = identifier
        self.first = first
        self.second = second


class InfeasibleAssignmentError(TessellationError):
    """Raised for an empty problem; any n >= 1 is always solvable."""


class AssignmentCancelledError(TessellationError):
    """The cancel check asked the solver to stop between phases."""

    def __init__(self, phase: str, rounds: int):
        super().__init__(f"Assignment cancelled during {phase} after {rounds} rounds")
        self.phase = phase
        self.rounds = rounds


class AttributeCollisionError(TessellationError, ValueError):
    """A region attribute shadows a column the joiner writes itself."""

    def __init__(self, region_id: Any, columns):
        cols = ", ".join(sorted(columns))
        super().__init__(f"Region {region_id!r} has reserved attribute(s): {cols}")
        self.region_id = region_id
        self.columns = tuple(sorted(columns))
