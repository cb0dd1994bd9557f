"""Tests for grab rerouting."""

import threading

import pytest

from circe_tools.exceptions import GrabCollisionError, UnknownLabelError, UnknownVertexError
from circe_tools.history import CommandHistory, CommandKind
from circe_tools.operations import net_ops, wiring
from circe_tools.router import FailureReason, GrabRouter, Selection
from circe_tools.schematic.graph import ConnectivityGraph
from circe_tools.schematic.models import Transform


def _net_state(graph, vertex_ids):
    """Positions and edges of a set of vertices, for before/after comparisons."""
    vertices = {vid: graph.vertex(vid) for vid in vertex_ids}
    edges = {e for vid in vertex_ids for e in graph.edges_of(vid)}
    return vertices, edges


class TestSelection:
    """Selections expand to whole devices."""

    def test_port_selects_device(self, graph):
        graph_batch = wiring.place_device(graph, "R", (0, 0))
        graph_batch.apply(graph)
        vertices, devices = Selection.of([0]).resolve(graph)
        assert devices == {"R1"}
        assert vertices == {0, 1}

    def test_device_selects_ports(self, graph):
        wiring.place_device(graph, "NMOS", (0, 0)).apply(graph)
        vertices, devices = Selection.of(devices=["M1"]).resolve(graph)
        assert vertices == {0, 1, 2, 3}

    def test_unknown_vertex(self, graph):
        with pytest.raises(UnknownVertexError):
            Selection.of([7]).resolve(graph)

    def test_is_empty(self):
        assert Selection().is_empty
        assert not Selection.of([1]).is_empty
        assert not Selection.of(labels=[0]).is_empty

    def test_unknown_label(self, graph):
        with pytest.raises(UnknownLabelError):
            Selection.of(labels=[3]).resolve(graph)


class TestScenarioCorner:
    """Scenario 1: move the free end of an L-shaped wire."""

    def test_reroute_from_corner(self, corner_graph):
        result = GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))

        assert result.success
        assert result.pruned == []
        assert len(result.routed) == 1
        path = result.routed[0]
        assert path.start == 2
        assert path.goal == 1
        assert path.waypoints == ((7, 7), (5, 7), (5, 0))
        assert path.bends == 1

    def test_commit_applies_plan(self, corner_graph):
        history = CommandHistory(corner_graph, validate=True)
        result = GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        history.push(result.command)

        assert corner_graph.vertex(2).position == (7, 7)
        assert not corner_graph.has_edge(1)  # (5,0)-(5,5) deleted
        assert corner_graph.net_of(0) == {0, 1, 2, 3}
        assert corner_graph.vertex(3).position == (5, 7)
        assert [c.kind for c in result.command.primitives()] == [
            CommandKind.MOVE_VERTEX,
            CommandKind.REMOVE_EDGE,
            CommandKind.ADD_VERTEX,
            CommandKind.ADD_EDGE,
            CommandKind.ADD_EDGE,
        ]

    def test_plan_does_not_touch_graph(self, corner_graph, state_of):
        before = state_of(corner_graph)
        GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        assert state_of(corner_graph) == before

    def test_single_undo_step(self, corner_graph, state_of):
        history = CommandHistory(corner_graph, validate=True)
        before = state_of(corner_graph)
        history.push(
            GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=2, dy=2)).command
        )
        after = state_of(corner_graph)

        assert len(history) == 1
        history.undo()
        assert state_of(corner_graph) == before
        history.redo()
        assert state_of(corner_graph) == after


class TestPruning:
    """A-B-C chain with only A selected: B is dropped, C is kept."""

    def test_pruning_law(self, chain_graph):
        history = CommandHistory(chain_graph, validate=True)
        result = GrabRouter().plan(chain_graph, Selection.of([0]), Transform(dy=3))
        history.push(result.command)

        assert result.pruned == [1]
        assert not chain_graph.has_vertex(1)
        assert chain_graph.vertex(2).position == (10, 0)
        assert len(result.routed) == 1
        path = result.routed[0]
        assert path.goal == 2
        assert path.waypoints == ((0, 3), (0, 0), (10, 0))
        assert chain_graph.connected(0, 2)

    def test_essential_corner_is_kept(self, corner_graph):
        result = GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        assert result.pruned == []

    def test_port_is_never_pruned(self, graph):
        wiring.place_device(graph, "R", (0, 0)).apply(graph)
        wiring.draw_wire(graph, (0, 3), (0, 8)).apply(graph)
        wiring.draw_wire(graph, (0, 8), (6, 8)).apply(graph)
        # Select the far end; the corner at (0, 8) is essential, the port too
        result = GrabRouter().plan(graph, Selection.of([3]), Transform(dy=2))
        assert 0 not in result.pruned

    def test_branch_point_is_kept(self, graph):
        s = graph.add_vertex((0, 0))
        j = graph.add_vertex((5, 0))
        x = graph.add_vertex((5, 5))
        y = graph.add_vertex((5, -5))
        for other in (s, x, y):
            graph.add_edge(j, other)
        result = GrabRouter().plan(graph, Selection.of([s]), Transform(dy=2))
        assert result.pruned == []
        assert result.routed[0].goal == j
        assert result.routed[0].waypoints == ((0, 2), (0, 0), (5, 0))


class TestRoutingFailures:
    """Scenario 3: an unreachable goal leaves its net floating, nothing else."""

    @pytest.fixture
    def boxed(self):
        """G(0,0)-S1(2,0) inside a foreign ring; S2(8,0)-T(12,0) outside."""
        graph = ConnectivityGraph()
        ring = [graph.add_vertex(p) for p in [(-3, -3), (3, -3), (3, 3), (-3, 3)]]
        for a, b in zip(ring, ring[1:] + ring[:1]):
            graph.add_edge(a, b)
        g = graph.add_vertex((0, 0))
        s1 = graph.add_vertex((2, 0))
        graph.add_edge(g, s1)
        s2 = graph.add_vertex((8, 0))
        t = graph.add_vertex((12, 0))
        graph.add_edge(s2, t)
        return graph, ring, g, s1, s2, t

    def test_partial_failure_commits(self, boxed):
        graph, ring, g, s1, s2, t = boxed
        history = CommandHistory(graph, validate=True)
        ring_before = _net_state(graph, ring)

        result = GrabRouter().plan(graph, Selection.of([s1, s2]), Transform(dy=10))
        history.push(result.command)

        assert not result.success
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.start == s1
        assert failure.reason is FailureReason.UNREACHABLE
        assert result.unrouted == ((s1, frozenset({g})),)

        # The rest of the batch is applied
        assert graph.vertex(s1).position == (2, 10)
        assert graph.vertex(s2).position == (8, 10)
        assert graph.connected(s2, t)
        assert not graph.connected(s1, g)

        # Untouched net stays exactly as it was
        assert _net_state(graph, ring) == ring_before

    def test_floating_flags(self, boxed):
        graph, ring, g, s1, s2, t = boxed
        history = CommandHistory(graph)
        history.push(GrabRouter().plan(graph, Selection.of([s1, s2]), Transform(dy=10)).command)

        floating = net_ops.floating_nets(graph, history.applied())
        assert frozenset({s1}) in floating
        assert frozenset({g}) in floating
        assert graph.net_of(s2) not in floating

        history.undo()
        assert net_ops.floating_nets(graph, history.applied()) == []

    def test_cancelled(self, graph):
        s = graph.add_vertex((0, 0))
        g = graph.add_vertex((300, 0))
        graph.add_edge(s, g)
        event = threading.Event()
        event.set()
        result = GrabRouter().plan(graph, Selection.of([s]), Transform(dy=1), cancel_event=event)
        assert result.cancelled
        assert result.failures[0].reason is FailureReason.CANCELLED


class TestDeviceGrab:
    """Ports move rigidly with their device."""

    @pytest.fixture
    def resistor(self, graph):
        wiring.place_device(graph, "R", (0, 0)).apply(graph)
        wiring.draw_wire(graph, (0, 3), (6, 3)).apply(graph)
        return graph

    def test_translate_device(self, resistor):
        graph = resistor
        history = CommandHistory(graph, validate=True)
        result = GrabRouter().plan(graph, Selection.of(devices=["R1"]), Transform(dy=-4))
        history.push(result.command)

        assert graph.device("R1").position == (0, -4)
        assert graph.vertex(0).position == (0, -1)
        assert graph.vertex(1).position == (0, -7)
        assert result.routed[0].waypoints == ((0, -1), (0, 3), (6, 3))
        assert graph.connected(0, 2)

    def test_rotate_device(self, graph):
        wiring.place_device(graph, "R", (0, 0)).apply(graph)
        wiring.draw_wire(graph, (0, 3), (0, 8)).apply(graph)
        history = CommandHistory(graph, validate=True)

        transform = Transform(rotation=90, pivot=(0, 0))
        result = GrabRouter().plan(graph, Selection.of(devices=["R1"]), transform)
        history.push(result.command)

        assert graph.device("R1").rotation == 90
        assert graph.vertex(0).position == (-3, 0)
        assert graph.vertex(1).position == (3, 0)
        assert result.routed[0].waypoints == ((-3, 0), (-4, 0), (-4, 8), (0, 8))
        assert graph.connected(0, 2)

    def test_coincident_port_is_rerouted(self, graph):
        wiring.place_device(graph, "R", (0, 0)).apply(graph)
        # Wire touches port + by position only
        a = graph.add_vertex((0, 3))
        b = graph.add_vertex((6, 3))
        graph.add_edge(a, b)
        assert graph.connected(0, b)

        history = CommandHistory(graph, validate=True)
        result = GrabRouter().plan(graph, Selection.of(devices=["R1"]), Transform(dy=-4))
        history.push(result.command)

        assert len(result.jobs) == 1
        assert result.routed[0].waypoints == ((0, -1), (0, 3))
        assert graph.find_edge(0, a) is not None
        assert graph.connected(0, b)

    def test_unrelated_net_unchanged(self, resistor):
        graph = resistor
        far = [graph.add_vertex((30, 30)), graph.add_vertex((30, 40))]
        graph.add_edge(*far)
        before = _net_state(graph, far)

        history = CommandHistory(graph)
        history.push(
            GrabRouter().plan(graph, Selection.of(devices=["R1"]), Transform(dy=-4)).command
        )
        assert _net_state(graph, far) == before


class TestLandingCollisions:
    """A grab may not drop a vertex onto another net."""

    def test_landing_on_foreign_vertex_rejected(self, corner_graph, state_of):
        foreign = corner_graph.add_vertex((10, 10))
        before = state_of(corner_graph)
        with pytest.raises(GrabCollisionError) as exc_info:
            GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=5, dy=5))
        assert exc_info.value.collisions == [(2, foreign, (10, 10))]
        assert state_of(corner_graph) == before

    def test_check_landing(self, corner_graph):
        corner_graph.add_vertex((10, 10))
        router = GrabRouter()
        router.check_landing(corner_graph, Selection.of([2]), Transform(dx=5))
        with pytest.raises(GrabCollisionError):
            router.check_landing(corner_graph, Selection.of([2]), Transform(dx=5, dy=5))

    def test_landing_on_own_net_allowed(self, corner_graph):
        history = CommandHistory(corner_graph, validate=True)
        result = GrabRouter().plan(corner_graph, Selection.of([2]), Transform(dx=-5, dy=-5))
        history.push(result.command)
        assert corner_graph.vertex(2).position == (0, 0)
        assert corner_graph.connected(0, 2)


class TestLabelGrab:
    """Labels ride along with the selection and are never routed."""

    def test_label_moves_with_selection(self, corner_graph):
        lid = corner_graph.add_label((5, 5), "tap")
        selection = Selection.of([2], labels=[lid])
        result = GrabRouter().plan(corner_graph, selection, Transform(dx=2, dy=2))
        assert CommandKind.MOVE_LABEL in [c.kind for c in result.command.primitives()]
        assert len(result.routed) == 1

        result.command.apply(corner_graph)
        assert corner_graph.label(lid).position == (7, 7)
        assert net_ops.net_name_at(corner_graph, (0, 0)) == "tap"

    def test_labels_only(self, corner_graph):
        lid = corner_graph.add_label((20, 20), "tap")
        result = GrabRouter().plan(corner_graph, Selection.of(labels=[lid]), Transform(dy=1))
        assert result.jobs == []
        assert len(result.command) == 1


class TestNoOpGrabs:
    """Nothing to do produces an empty batch."""

    def test_identity_transform(self, corner_graph):
        result = GrabRouter().plan(corner_graph, Selection.of([2]), Transform())
        assert result.command.is_empty
        assert result.jobs == []

    def test_empty_selection(self, corner_graph):
        result = GrabRouter().plan(corner_graph, Selection(), Transform(dx=1))
        assert result.command.is_empty

    def test_whole_net_moves_without_jobs(self, corner_graph):
        result = GrabRouter().plan(corner_graph, Selection.of([0, 1, 2]), Transform(dx=3))
        assert result.jobs == []
        assert len(result.command) == 3

    def test_to_dict(self, corner_graph):
        data = GrabRouter(label="move").plan(
            corner_graph, Selection.of([2]), Transform(dx=2, dy=2)
        ).to_dict()
        assert data["label"] == "move"
        assert data["routed"][0]["waypoints"] == [[7, 7], [5, 7], [5, 0]]
        assert data["failures"] == []
