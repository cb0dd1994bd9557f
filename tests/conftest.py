"""Pytest fixtures for circe-tools tests."""

import pytest

from circe_tools.history import CommandHistory
from circe_tools.schematic.graph import ConnectivityGraph
from circe_tools.session import EditorSession


def graph_state(graph):
    """Comparable picture of a graph: vertices, edges, devices and labels."""
    return (
        tuple(graph.vertices),
        tuple((e.id, frozenset((e.a, e.b))) for e in graph.edges),
        tuple(graph.devices),
        tuple(graph.labels),
    )


@pytest.fixture
def graph():
    """Empty connectivity graph."""
    return ConnectivityGraph()


@pytest.fixture
def history(graph):
    """History over the empty graph, checking invariants after every step."""
    return CommandHistory(graph, validate=True)


@pytest.fixture
def corner_graph():
    """Scenario 1 layout: (0,0) - (5,0) - (5,5), an L with its corner at (5,0)."""
    graph = ConnectivityGraph()
    v0 = graph.add_vertex((0, 0))
    v1 = graph.add_vertex((5, 0))
    v2 = graph.add_vertex((5, 5))
    graph.add_edge(v0, v1)
    graph.add_edge(v1, v2)
    return graph


@pytest.fixture
def chain_graph():
    """Straight chain A(0,0) - B(5,0) - C(10,0)."""
    graph = ConnectivityGraph()
    a = graph.add_vertex((0, 0))
    b = graph.add_vertex((5, 0))
    c = graph.add_vertex((10, 0))
    graph.add_edge(a, b)
    graph.add_edge(b, c)
    return graph


@pytest.fixture
def session():
    """Editor session with synchronous grabs and invariant checks."""
    editor = EditorSession(background=False)
    editor.history.validate = True
    yield editor
    editor.close()


@pytest.fixture
def divider_snapshot(tmp_path):
    """Voltage divider saved as YAML: V1, R1, R2 in series to ground.

    V1 sits at (0, 0) with ports + (0, 3) and - (0, -3).
    R1 sits at (10, 6) with ports + (10, 9) and - (10, 3).
    R2 sits at (10, -6) with ports + (10, -3) and - (10, -9).
    GND1 sits at (0, -12) with its port at (0, -10).

    Port vertex ids are V1 0/1, R1 2/3, R2 4/5 and GND1 6. Wire points are
    7 at (0, 9) and 8 at (0, -9). Nets: n1 = {0, 2, 7}, n2 = {3, 4} and the
    ground net {1, 5, 6, 8}.
    """
    editor = EditorSession(background=False)
    editor.place_device("V", (0, 0))
    editor.place_device("R", (10, 6))
    editor.place_device("R", (10, -6))
    editor.place_device("GND", (0, -12))
    editor.draw_wire((0, 3), (10, 9), route="vertical_first")
    editor.draw_wire((10, 3), (10, -3))
    editor.draw_wire((0, -3), (0, -10))
    # Lands on the wire above and splits it at (0, -9)
    editor.draw_wire((10, -9), (0, -9))
    path = tmp_path / "divider.yaml"
    editor.save(path)
    editor.close()
    return path


@pytest.fixture
def state_of():
    """Function returning a comparable picture of a graph."""
    return graph_state
