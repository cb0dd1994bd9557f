"""Tests for SPICE netlist export."""

from circe_tools.history import CommandHistory
from circe_tools.operations import wiring
from circe_tools.operations.netlist import (
    DEFAULT_TITLE,
    EMPTY_PLACEHOLDER,
    MODEL_CARDS,
    generate_netlist,
    write_netlist,
)
from circe_tools.session import EditorSession


def _build(graph, *batches):
    history = CommandHistory(graph)
    for make in batches:
        history.push(make(graph))
    return graph


class TestGenerateNetlist:
    """Netlist text layout."""

    def test_empty_schematic(self, graph):
        text = generate_netlist(graph)
        assert text.endswith("\n")
        assert text.splitlines() == [DEFAULT_TITLE, *MODEL_CARDS, EMPTY_PLACEHOLDER]

    def test_ground_only_gets_placeholder(self, graph):
        _build(graph, lambda g: wiring.place_device(g, "GND", (0, 0)))
        assert generate_netlist(graph).splitlines()[-1] == EMPTY_PLACEHOLDER

    def test_divider(self, divider_snapshot):
        with EditorSession.from_file(divider_snapshot) as session:
            text = generate_netlist(session.graph)
        assert text == "\n".join(
            [
                "Netlist Created by Circe",
                ".model MOSN NMOS level=1",
                ".model MOSP PMOS level=1",
                "R1 n1 n2 1k",
                "R2 n2 0 1k",
                "V1 n1 0 0",
            ]
        ) + "\n"

    def test_custom_title_and_ground(self, divider_snapshot):
        with EditorSession.from_file(divider_snapshot) as session:
            lines = generate_netlist(session.graph, title="divider", ground_net="gnd").splitlines()
        assert lines[0] == "divider"
        assert "R2 n2 gnd 1k" in lines

    def test_mosfet_port_order(self, graph):
        _build(graph, lambda g: wiring.place_device(g, "NMOS", (0, 0)))
        assert generate_netlist(graph).splitlines()[-1] == "M1 n1 n2 n3 n4 MOSN"

    def test_tied_ports_share_a_node(self, graph):
        _build(
            graph,
            lambda g: wiring.place_device(g, "PMOS", (0, 0)),
            # Source (2,-3) to bulk (2,0)
            lambda g: wiring.draw_wire(g, (2, -3), (2, 0)),
        )
        assert generate_netlist(graph).splitlines()[-1] == "M1 n1 n2 n3 n3 MOSP"

    def test_params(self, graph):
        _build(graph, lambda g: wiring.place_device(g, "C", (0, 0), params="10n"))
        assert generate_netlist(graph).splitlines()[-1] == "C1 n1 n2 10n"


def test_write_netlist(tmp_path, graph):
    _build(graph, lambda g: wiring.place_device(g, "R", (0, 0)))
    path = write_netlist(graph, tmp_path / "out.cir")
    assert path.read_text() == generate_netlist(graph)
