"""Tests for editing operations (place, wire, delete, duplicate)."""

import pytest

from circe_tools.exceptions import UnknownDeviceKindError, UnknownLabelError
from circe_tools.history import CommandHistory
from circe_tools.operations import wiring


@pytest.fixture
def apply(graph):
    """Push a batch built from the graph and return it."""
    history = CommandHistory(graph, validate=True)

    def _apply(batch):
        history.push(batch)
        return batch

    return _apply


class TestCornerPoint:
    """One-bend wire geometry."""

    def test_straight_has_no_corner(self):
        assert wiring.corner_point((0, 0), (0, 7)) is None

    def test_auto_follows_longer_axis(self):
        assert wiring.corner_point((0, 0), (6, 2)) == (6, 0)
        assert wiring.corner_point((0, 0), (2, 6)) == (0, 6)

    def test_explicit_styles(self):
        assert wiring.corner_point((0, 0), (6, 2), "vertical_first") == (0, 2)
        assert wiring.corner_point((0, 0), (2, 6), "horizontal_first") == (2, 0)

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            wiring.corner_point((0, 0), (1, 1), "diagonal")


class TestPlaceDevice:
    """Devices come with their port vertices."""

    def test_rotated_ports(self, graph, apply):
        apply(wiring.place_device(graph, "R", (4, 4), rotation=90))
        assert graph.vertex(0).position == (1, 4)
        assert graph.vertex(1).position == (7, 4)

    def test_default_params(self, graph, apply):
        apply(wiring.place_device(graph, "L", (0, 0)))
        assert graph.device("L1").params == "1u"

    def test_unknown_kind(self, graph):
        with pytest.raises(UnknownDeviceKindError) as exc_info:
            wiring.place_device(graph, "nmos", (0, 0))
        assert "NMOS" in exc_info.value.matches

    def test_batch_is_not_applied(self, graph):
        wiring.place_device(graph, "R", (0, 0))
        assert graph.devices == []


class TestDrawWire:
    """Wires attach to what is already there."""

    def test_zero_length(self, graph):
        with pytest.raises(ValueError):
            wiring.draw_wire(graph, (1, 1), (1, 1))

    def test_bend_adds_corner_vertex(self, graph, apply):
        apply(wiring.draw_wire(graph, (0, 0), (6, 2)))
        assert [v.position for v in graph.vertices] == [(0, 0), (6, 0), (6, 2)]
        assert len(graph.edges) == 2

    def test_landing_on_wire_splits_it(self, graph, apply):
        apply(wiring.draw_wire(graph, (0, 0), (10, 0)))
        apply(wiring.draw_wire(graph, (4, 6), (4, 0)))
        junction = min(graph.vertices_at((4, 0)))
        assert graph.degree(junction) == 3
        assert graph.net_of(0) == {v.id for v in graph.vertices}
        assert all(e.id != 0 for e in graph.edges)

    def test_redrawing_adds_nothing(self, graph, apply):
        apply(wiring.draw_wire(graph, (0, 0), (5, 0)))
        assert wiring.draw_wire(graph, (0, 0), (5, 0)).is_empty


class TestPlaceLabel:
    """Labels are placed as single undoable steps."""

    def test_place_label(self, chain_graph):
        history = CommandHistory(chain_graph)
        history.push(wiring.place_label(chain_graph, (5, 0), " out "))
        assert chain_graph.label(0).name == "out"
        history.undo()
        assert chain_graph.labels == []

    @pytest.mark.parametrize("name", ["", "   ", "two words"])
    def test_bad_name(self, graph, name):
        with pytest.raises(ValueError):
            wiring.place_label(graph, (0, 0), name)


class TestDelete:
    """Deletes never leave stranded wire points."""

    def test_delete_edge_removes_stranded_points(self, graph, apply):
        apply(wiring.draw_wire(graph, (0, 0), (5, 0)))
        apply(wiring.delete(graph, edge_ids=[0]))
        assert len(graph) == 0

    def test_connected_points_survive(self, chain_graph):
        batch = wiring.delete(chain_graph, edge_ids=[0])
        CommandHistory(chain_graph).push(batch)
        assert not chain_graph.has_vertex(0)
        assert chain_graph.has_vertex(1)

    def test_delete_device_keeps_far_wire(self, graph, apply):
        apply(wiring.place_device(graph, "R", (0, 0)))
        apply(wiring.draw_wire(graph, (0, 3), (0, 8)))
        apply(wiring.draw_wire(graph, (0, 8), (6, 8)))
        apply(wiring.delete(graph, devices=["R1"]))
        assert graph.devices == []
        assert [v.position for v in graph.vertices] == [(0, 8), (6, 8)]


    def test_delete_labels(self, chain_graph):
        lid = chain_graph.add_label((5, 0), "out")
        batch = wiring.delete(chain_graph, labels=[lid])
        CommandHistory(chain_graph).push(batch)
        assert chain_graph.labels == []
        assert len(chain_graph) == 3

    def test_delete_unknown_label(self, chain_graph):
        with pytest.raises(UnknownLabelError):
            wiring.delete(chain_graph, labels=[4])


class TestDuplicate:
    """Copies get fresh ids and references."""

    def test_copies_inner_wires_only(self, chain_graph):
        batch = wiring.duplicate(chain_graph, vertex_ids=[0, 1], offset=(0, 5))
        CommandHistory(chain_graph).push(batch)
        assert chain_graph.vertex(3).position == (0, 5)
        assert chain_graph.vertex(4).position == (5, 5)
        assert chain_graph.find_edge(3, 4) is not None
        assert len(chain_graph.edges) == 3

    def test_duplicate_labels(self, chain_graph):
        lid = chain_graph.add_label((5, 0), "out")
        batch = wiring.duplicate(chain_graph, vertex_ids=[0, 1], labels=[lid], offset=(0, 5))
        CommandHistory(chain_graph).push(batch)
        copy = chain_graph.labels[1]
        assert (copy.id, copy.position, copy.name) == (lid + 1, (5, 5), "out")

    def test_duplicate_device(self, graph, apply):
        apply(wiring.place_device(graph, "V", (0, 0)))
        apply(wiring.duplicate(graph, vertex_ids=[0], offset=(10, 0)))
        assert graph.device("V2").position == (10, 0)
        assert graph.ports_of("V2") == [2, 3]
