"""
Multi-goal orthogonal pathfinding for rerouting.

This module provides:
- SearchNode: Node for the priority queue of the search
- Pathfinder: A* search from one start vertex to the nearest vertex of a goal set

Paths move between 4-connected grid cells. Cost is lexicographic: Manhattan
length first, then number of bends. Among equal-cost paths the result is
fixed by a total order so that the same input always yields the same
waypoints:

1. fewer bends
2. goal vertex with the lowest id
3. lexicographically smallest waypoint sequence

The search settles every state whose cost can still tie the best goal, then
rebuilds the path greedily over the set of optimal states, choosing the
smallest next waypoint at each step.
"""

from __future__ import annotations

import heapq
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from ..schematic.models import Point
from .grid import ObstacleGrid
from .primitives import FailureReason, PathResult, RoutePath, RoutingFailure

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)

# Direction indexes: +x, +y, -x, -y. -1 marks the start state (no heading yet).
DIRECTIONS: Tuple[Point, ...] = ((1, 0), (0, 1), (-1, 0), (0, -1))
NO_DIRECTION = -1

# How often the cancel flag is polled, in expansions
CANCEL_POLL_INTERVAL = 256

# (x, y, direction of arrival)
State = Tuple[int, int, int]
Cost = Tuple[int, int]


def _opposite(direction: int) -> int:
    return (direction + 2) % 4


def _bend_cost(heading: int, direction: int) -> int:
    return 0 if heading == NO_DIRECTION or heading == direction else 1


@dataclass(order=True)
class SearchNode:
    """Node for the A* priority queue.

    Ordering is (f_score, bends, x, y, direction), which makes the pop order,
    and therefore the whole search, independent of insertion order.
    """

    f_score: int
    bends: int
    x: int
    y: int
    direction: int
    g_score: int = field(compare=False)

    @property
    def state(self) -> State:
        return (self.x, self.y, self.direction)

    @property
    def cost(self) -> Cost:
        return (self.g_score, self.bends)


class Pathfinder:
    """Deterministic multi-goal router over a ConnectivityGraph.

    Args:
        graph: Graph whose devices and foreign wiring form the obstacles
        margin: Free cells around the canvas bounding box the search may use
        max_expansions: Search-node budget; exhausting it yields a failure
    """

    def __init__(
        self,
        graph: ConnectivityGraph,
        margin: int = 8,
        max_expansions: int = 200_000,
    ):
        self.graph = graph
        self.margin = margin
        self.max_expansions = max_expansions

    def find_path(
        self,
        start: int,
        goals: Iterable[int],
        owned: Optional[AbstractSet[int]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PathResult:
        """Route from ``start`` to whichever goal vertex is cheapest to reach.

        Args:
            start: Vertex id the path starts at
            goals: Candidate vertex ids; reaching any of them ends the search
            owned: Extra vertex ids whose cells and wires are not obstacles
                (typically the rest of the net being reconnected)
            cancel_event: Checked periodically; when set the search stops

        Returns:
            RoutePath on success, RoutingFailure otherwise. Never raises for
            an unreachable goal.
        """
        graph = self.graph
        requested = frozenset(goals)
        live_goals = frozenset(g for g in requested if g != start and graph.has_vertex(g))
        if not live_goals:
            return RoutingFailure(start, requested, FailureReason.NO_GOALS)

        start_pos = graph.vertex(start).position
        goal_at: Dict[Point, int] = {}
        for gid in sorted(live_goals):
            goal_at.setdefault(graph.vertex(gid).position, gid)

        if start_pos in goal_at:
            return RoutePath(start, goal_at[start_pos], (start_pos,), 0, 0)

        owned_ids = set(owned or ()) | {start} | set(live_goals)
        grid = ObstacleGrid.from_graph(
            graph, owned_ids, extra_points=[start_pos], margin=self.margin
        )
        goal_xy = np.array(sorted(goal_at), dtype=np.int64)

        def heuristic(x: int, y: int) -> int:
            return int(np.min(np.abs(goal_xy[:, 0] - x) + np.abs(goal_xy[:, 1] - y)))

        settled: Dict[State, Cost] = {}
        best_seen: Dict[State, Cost] = {}
        open_set: List[SearchNode] = []

        first = SearchNode(heuristic(*start_pos), 0, start_pos[0], start_pos[1], NO_DIRECTION, 0)
        heapq.heappush(open_set, first)
        best_seen[first.state] = first.cost

        best_f: Optional[Tuple[int, int]] = None
        reached: Dict[Point, Cost] = {}
        expanded = 0

        while open_set:
            node = heapq.heappop(open_set)
            if best_f is not None and (node.f_score, node.bends) > best_f:
                break
            if node.state in settled:
                continue
            settled[node.state] = node.cost

            expanded += 1
            if expanded > self.max_expansions:
                logger.debug(
                    "Search from %d exhausted its budget of %d nodes", start, self.max_expansions
                )
                return RoutingFailure(start, requested, FailureReason.BUDGET, expanded)
            if (
                cancel_event is not None
                and expanded % CANCEL_POLL_INTERVAL == 0
                and cancel_event.is_set()
            ):
                return RoutingFailure(start, requested, FailureReason.CANCELLED, expanded)

            position = (node.x, node.y)
            if position in goal_at:
                if best_f is None:
                    best_f = (node.f_score, node.bends)
                reached.setdefault(position, node.cost)
                continue

            for direction, (dx, dy) in enumerate(DIRECTIONS):
                if node.direction != NO_DIRECTION and direction == _opposite(node.direction):
                    continue
                nx, ny = node.x + dx, node.y + dy
                if grid.is_blocked(nx, ny):
                    continue
                child = SearchNode(
                    f_score=node.g_score + 1 + heuristic(nx, ny),
                    bends=node.bends + _bend_cost(node.direction, direction),
                    x=nx,
                    y=ny,
                    direction=direction,
                    g_score=node.g_score + 1,
                )
                known = best_seen.get(child.state)
                if known is not None and known <= child.cost:
                    continue
                best_seen[child.state] = child.cost
                heapq.heappush(open_set, child)

        if best_f is None:
            logger.debug("No route from vertex %d to %s", start, sorted(live_goals))
            return RoutingFailure(start, requested, FailureReason.UNREACHABLE, expanded)

        best_cost = min(reached.values())
        goal_id = min(goal_at[pos] for pos, cost in reached.items() if cost == best_cost)
        goal_pos = graph.vertex(goal_id).position

        waypoints = _reconstruct(settled, start_pos, goal_pos, best_cost)
        logger.debug(
            "Routed vertex %d -> %d: length %d, %d bend(s), %d node(s) expanded",
            start,
            goal_id,
            best_cost[0],
            best_cost[1],
            expanded,
        )
        return RoutePath(
            start=start,
            goal=goal_id,
            waypoints=tuple(waypoints),
            length=best_cost[0],
            bends=best_cost[1],
        )


def _step(state: State, direction: int) -> State:
    dx, dy = DIRECTIONS[direction]
    return (state[0] + dx, state[1] + dy, direction)


def _is_tight(settled: Dict[State, Cost], parent: State, child: State) -> bool:
    """Whether moving parent -> child lies on a cheapest path to child."""
    if parent not in settled or child not in settled:
        return False
    length, bends = settled[parent]
    expected = (length + 1, bends + _bend_cost(parent[2], child[2]))
    return settled[child] == expected


def _useful_states(
    settled: Dict[State, Cost], terminals: Set[State]
) -> Set[State]:
    """States that lie on at least one optimal path to a terminal state."""
    useful = set(terminals)
    stack = sorted(terminals)
    while stack:
        state = stack.pop()
        x, y, direction = state
        if direction == NO_DIRECTION:
            continue
        dx, dy = DIRECTIONS[direction]
        for heading in (NO_DIRECTION, 0, 1, 2, 3):
            if heading != NO_DIRECTION and heading == _opposite(direction):
                continue
            parent = (x - dx, y - dy, heading)
            if parent not in useful and _is_tight(settled, parent, state):
                useful.add(parent)
                stack.append(parent)
    return useful


def _reconstruct(
    settled: Dict[State, Cost], start_pos: Point, goal_pos: Point, best_cost: Cost
) -> List[Point]:
    """Lexicographically smallest waypoint sequence among optimal paths."""
    terminals = {
        s for s, cost in settled.items() if (s[0], s[1]) == goal_pos and cost == best_cost
    }
    useful = _useful_states(settled, terminals)

    current: State = (start_pos[0], start_pos[1], NO_DIRECTION)
    waypoints = [start_pos]
    while current not in terminals:
        candidates: List[Tuple[Point, State]] = []
        for direction in range(4):
            if current[2] != NO_DIRECTION and direction in (current[2], _opposite(current[2])):
                continue
            walker = current
            while True:
                nxt = _step(walker, direction)
                if nxt not in useful or not _is_tight(settled, walker, nxt):
                    break
                walker = nxt
                if walker in terminals or _can_turn(settled, useful, walker):
                    candidates.append(((walker[0], walker[1]), walker))
        point, current = min(candidates)
        waypoints.append(point)
    return waypoints


def _can_turn(settled: Dict[State, Cost], useful: Set[State], state: State) -> bool:
    for direction in range(4):
        if direction in (state[2], _opposite(state[2])):
            continue
        nxt = _step(state, direction)
        if nxt in useful and _is_tight(settled, state, nxt):
            return True
    return False
