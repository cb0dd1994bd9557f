"""
Basic data structures for rerouting.

This module provides:
- RoutingJob: One required reconnection (start vertex -> goal net)
- RoutePath: A found path as a waypoint sequence
- RoutingFailure: The expected "no route" outcome, returned, never raised
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Tuple, Union

from ..schematic.models import Point


@dataclass(frozen=True)
class RoutingJob:
    """A single reconnection produced by a grab.

    Attributes:
        start: Vertex on the moved side of a severed boundary edge
        goals: Vertices of the net the start must be reconnected to
        edge: Id of the boundary edge that was severed
    """

    start: int
    goals: FrozenSet[int]
    edge: int = -1

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"start": self.start, "goals": sorted(self.goals), "edge": self.edge}


@dataclass(frozen=True)
class RoutePath:
    """An orthogonal path from a start vertex to one goal vertex.

    ``waypoints`` holds the start position, every bend, and the goal
    position, in that order. Consecutive waypoints share an x or a y
    coordinate.
    """

    start: int
    goal: int
    waypoints: Tuple[Point, ...]
    length: int
    bends: int

    @property
    def bend_points(self) -> Tuple[Point, ...]:
        """Interior waypoints, which become new wire-point vertices."""
        return self.waypoints[1:-1]

    @property
    def is_trivial(self) -> bool:
        """Start already sits on the goal position."""
        return len(self.waypoints) < 2

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start,
            "goal": self.goal,
            "waypoints": [list(p) for p in self.waypoints],
            "length": self.length,
            "bends": self.bends,
        }


class FailureReason(str, Enum):
    """Why a routing job produced no path."""

    UNREACHABLE = "unreachable"  # Search space exhausted
    BUDGET = "budget"  # Search-node budget exhausted
    CANCELLED = "cancelled"  # Superseded by a newer gesture
    NO_GOALS = "no_goals"  # Goal set was empty


@dataclass(frozen=True)
class RoutingFailure:
    """No goal vertex was reachable from the start vertex."""

    start: int
    goals: FrozenSet[int]
    reason: FailureReason = FailureReason.UNREACHABLE
    expanded: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start,
            "goals": sorted(self.goals),
            "reason": self.reason.value,
            "expanded": self.expanded,
        }


PathResult = Union[RoutePath, RoutingFailure]
