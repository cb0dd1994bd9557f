"""Tests for the obstacle grid and the multi-goal pathfinder."""

import threading

import pytest

from circe_tools.router import FailureReason, ObstacleGrid, Pathfinder, RoutePath, RoutingFailure
from circe_tools.router.grid import rasterize_segment
from circe_tools.router.pathfinder import SearchNode
from circe_tools.schematic.graph import ConnectivityGraph
from circe_tools.schematic.models import Device, Vertex, VertexRole


def _segments_are_orthogonal(waypoints):
    return all(a[0] == b[0] or a[1] == b[1] for a, b in zip(waypoints, waypoints[1:]))


class TestRasterize:
    """Segment rasterization onto grid cells."""

    def test_horizontal(self):
        assert rasterize_segment((0, 0), (3, 0)) == [(0, 0), (1, 0), (2, 0), (3, 0)]

    def test_vertical_reversed(self):
        assert rasterize_segment((2, 2), (2, -1)) == [(2, 2), (2, 1), (2, 0), (2, -1)]

    def test_single_point(self):
        assert rasterize_segment((4, 4), (4, 4)) == [(4, 4)]


class TestObstacleGrid:
    """Occupancy built from a graph."""

    def test_bounds_include_margin(self, chain_graph):
        grid = ObstacleGrid.from_graph(chain_graph, margin=2)
        assert grid.bounds == ((-2, -2), (12, 2))
        assert grid.area == 15 * 5

    def test_out_of_bounds_is_blocked(self, chain_graph):
        grid = ObstacleGrid.from_graph(chain_graph, margin=1)
        assert grid.is_blocked(100, 100)
        assert not grid.in_bounds(-2, 0)

    def test_foreign_wire_blocks_cells(self, chain_graph):
        grid = ObstacleGrid.from_graph(chain_graph, margin=1)
        assert all(grid.is_blocked(x, 0) for x in range(0, 11))
        assert not grid.is_blocked(5, 1)

    def test_owned_wire_is_free(self, chain_graph):
        grid = ObstacleGrid.from_graph(chain_graph, owned={0, 1, 2}, margin=1)
        assert grid.blocked_count == 0
        assert grid.free_fraction() == 1.0

    def test_device_body_blocks_except_ports(self, graph):
        graph.insert_device(Device("R1", "R", (0, 0)))
        grid = ObstacleGrid.from_graph(graph, margin=1)
        assert grid.is_blocked(0, 0)
        assert grid.is_blocked(1, 2)
        assert not grid.is_blocked(0, 3)
        assert not grid.is_blocked(0, -3)

    def test_empty_graph(self, graph):
        grid = ObstacleGrid.from_graph(graph, margin=3)
        assert grid.bounds == ((-3, -3), (3, 3))

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ObstacleGrid(5, 0, 4, 0)


class TestSearchNode:
    """Priority queue ordering."""

    def test_order_ignores_g_score(self):
        a = SearchNode(5, 0, 1, 1, 0, g_score=2)
        b = SearchNode(5, 0, 1, 1, 0, g_score=4)
        assert not a < b and not b < a

    def test_bends_break_f_ties(self):
        assert SearchNode(5, 0, 9, 9, 0, 1) < SearchNode(5, 1, 0, 0, 0, 1)


class TestFindPath:
    """Multi-goal search with deterministic tie-breaks."""

    def test_straight_path(self, graph):
        a = graph.add_vertex((0, 0))
        b = graph.add_vertex((6, 0))
        path = Pathfinder(graph).find_path(a, {b})
        assert isinstance(path, RoutePath)
        assert path.waypoints == ((0, 0), (6, 0))
        assert path.length == 6
        assert path.bends == 0
        assert path.bend_points == ()

    def test_one_bend_prefers_smallest_waypoints(self, graph):
        a = graph.add_vertex((7, 7))
        b = graph.add_vertex((5, 0))
        path = Pathfinder(graph).find_path(a, {b})
        # (7,7)->(5,7)->(5,0) and (7,7)->(7,0)->(5,0) tie on length and bends
        assert path.waypoints == ((7, 7), (5, 7), (5, 0))
        assert path.length == 9
        assert path.bends == 1

    def test_nearest_goal_wins(self, graph):
        start = graph.add_vertex((0, 0))
        far = graph.add_vertex((10, 0))
        near = graph.add_vertex((0, 3))
        path = Pathfinder(graph).find_path(start, {far, near})
        assert path.goal == near
        assert path.length == 3

    def test_equal_cost_goals_pick_lowest_id(self, graph):
        start = graph.add_vertex((0, 0))
        right = graph.add_vertex((4, 0))
        left = graph.add_vertex((-4, 0))
        path = Pathfinder(graph).find_path(start, {left, right})
        assert path.goal == min(left, right)

    def test_fewer_bends_beat_goal_id(self, graph):
        start = graph.add_vertex((0, 0))
        diagonal = graph.add_vertex((2, 2))  # lower id, needs a bend
        straight = graph.add_vertex((4, 0))  # same length, no bend
        path = Pathfinder(graph).find_path(start, {diagonal, straight})
        assert path.goal == straight
        assert path.bends == 0

    def test_routes_around_device(self, graph):
        start = graph.add_vertex((-4, 0))
        goal = graph.add_vertex((4, 0))
        graph.insert_device(Device("R1", "R", (0, 0)))
        path = Pathfinder(graph).find_path(start, {goal})

        assert isinstance(path, RoutePath)
        assert path.length > 8
        assert _segments_are_orthogonal(path.waypoints)
        body = set(graph.library.body_cells(graph.device("R1")))
        for a, b in zip(path.waypoints, path.waypoints[1:]):
            assert not body & set(rasterize_segment(a, b))

    def test_never_crosses_foreign_wire(self, graph):
        start = graph.add_vertex((0, 0))
        goal = graph.add_vertex((0, 6))
        w1 = graph.add_vertex((-3, 3))
        w2 = graph.add_vertex((3, 3))
        graph.add_edge(w1, w2)
        path = Pathfinder(graph).find_path(start, {goal})
        cells = set()
        for a, b in zip(path.waypoints, path.waypoints[1:]):
            cells.update(rasterize_segment(a, b))
        assert not cells & set(rasterize_segment((-3, 3), (3, 3)))

    def test_deterministic(self, graph):
        start = graph.add_vertex((0, 0))
        goals = {graph.add_vertex((9, 7)), graph.add_vertex((-6, 10))}
        graph.insert_device(Device("C1", "C", (4, 4)))
        finder = Pathfinder(graph)
        results = {finder.find_path(start, goals).waypoints for _ in range(5)}
        assert len(results) == 1

    def test_start_on_goal_is_trivial(self, graph):
        a = graph.add_vertex((2, 2))
        b = graph.add_vertex((2, 2))
        path = Pathfinder(graph).find_path(a, {b})
        assert path.is_trivial
        assert path.length == 0


class TestRoutingFailure:
    """No route is a value, never an exception."""

    @pytest.fixture
    def boxed_goal(self, graph):
        """Goal at (0,0) fenced in by a square of foreign wire."""
        goal = graph.add_vertex((0, 0))
        corners = [graph.add_vertex(p) for p in [(-2, -2), (2, -2), (2, 2), (-2, 2)]]
        for a, b in zip(corners, corners[1:] + corners[:1]):
            graph.add_edge(a, b)
        start = graph.add_vertex((8, 0))
        return graph, start, goal

    def test_unreachable(self, boxed_goal):
        graph, start, goal = boxed_goal
        result = Pathfinder(graph, margin=3).find_path(start, {goal})
        assert isinstance(result, RoutingFailure)
        assert result.reason is FailureReason.UNREACHABLE
        assert result.expanded > 0

    def test_budget(self, graph):
        a = graph.add_vertex((0, 0))
        b = graph.add_vertex((30, 30))
        result = Pathfinder(graph, max_expansions=10).find_path(a, {b})
        assert isinstance(result, RoutingFailure)
        assert result.reason is FailureReason.BUDGET

    def test_no_goals(self, graph):
        a = graph.add_vertex((0, 0))
        result = Pathfinder(graph).find_path(a, set())
        assert result.reason is FailureReason.NO_GOALS
        assert Pathfinder(graph).find_path(a, {a, 42}).reason is FailureReason.NO_GOALS

    def test_cancelled(self, graph):
        a = graph.add_vertex((0, 0))
        b = graph.add_vertex((200, 200))
        event = threading.Event()
        event.set()
        result = Pathfinder(graph).find_path(a, {b}, cancel_event=event)
        assert result.reason is FailureReason.CANCELLED

    def test_to_dict(self, boxed_goal):
        graph, start, goal = boxed_goal
        data = Pathfinder(graph, margin=3).find_path(start, {goal}).to_dict()
        assert data["start"] == start
        assert data["goals"] == [goal]
        assert data["reason"] == "unreachable"


def test_owned_cells_are_passable():
    graph = ConnectivityGraph()
    start = graph.add_vertex((0, 0))
    goal = graph.add_vertex((4, 0))
    # Wire of the same net lies across the direct line
    w1 = graph.add_vertex((2, -2))
    w2 = graph.add_vertex((2, 2))
    graph.add_edge(w1, w2)
    blocked = Pathfinder(graph).find_path(start, {goal})
    free = Pathfinder(graph).find_path(start, {goal}, owned={w1, w2})
    assert blocked.length > 4
    assert free.waypoints == ((0, 0), (4, 0))


def test_port_vertex_as_goal(graph):
    graph.insert_device(Device("R1", "R", (0, 0)))
    port = Vertex(0, (0, 3), VertexRole.PORT, device="R1", port="+")
    graph.insert_vertex(port)
    start = graph.add_vertex((0, 8))
    path = Pathfinder(graph).find_path(start, {port.id})
    assert path.waypoints == ((0, 8), (0, 3))
