"""
Rerouting engine for grab/move edits.

Example::

    from circe_tools.router import GrabRouter, Selection
    from circe_tools.schematic.models import Transform

    result = GrabRouter().plan(graph, Selection.of([2]), Transform(dx=2, dy=2))
    history.push(result.command)
    print(result.failures)
"""

from .grab import GrabResult, GrabRouter, Selection
from .grid import ObstacleGrid
from .pathfinder import Pathfinder
from .primitives import FailureReason, PathResult, RoutePath, RoutingFailure, RoutingJob
from .worker import RoutingTicket, RoutingWorker

__all__ = [
    "FailureReason",
    "GrabResult",
    "GrabRouter",
    "ObstacleGrid",
    "PathResult",
    "Pathfinder",
    "RoutePath",
    "RoutingFailure",
    "RoutingJob",
    "RoutingTicket",
    "RoutingWorker",
    "Selection",
]
