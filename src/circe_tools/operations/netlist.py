"""
SPICE netlist export.

Example::

    >>> from circe_tools.operations.netlist import generate_netlist
    >>> print(generate_netlist(graph))
    Netlist Created by Circe
    .model MOSN NMOS level=1
    .model MOSP PMOS level=1
    R1 n1 0 1k
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from ..schematic.models import Device
from .net_ops import DEFAULT_GROUND_NET, vertex_net_names

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Netlist Created by Circe"

MODEL_CARDS = (
    ".model MOSN NMOS level=1",
    ".model MOSP PMOS level=1",
)

# Emitted for an empty schematic so the simulator has something to chew on
EMPTY_PLACEHOLDER = "V_0 0 n1 0"

# Node name for a port that has no vertex (should not happen in a valid graph)
UNCONNECTED = "NC"


def _port_nodes(graph: ConnectivityGraph, device: Device, names: Dict[int, str]) -> List[str]:
    device_type = graph.library.get(device.kind)
    by_port = {graph.vertex(vid).port: names[vid] for vid in graph.ports_of(device.ref)}
    nodes = []
    for port in device_type.ports:
        node = by_port.get(port.name)
        if node is None:
            logger.warning("Port %s.%s has no vertex; using %s", device.ref, port.name, UNCONNECTED)
            node = UNCONNECTED
        nodes.append(node)
    return nodes


def spice_line(
    graph: ConnectivityGraph, device: Device, names: Dict[int, str]
) -> Optional[str]:
    """Element line for one device, or None for devices with no SPICE element."""
    template = graph.library.get(device.kind).spice_template
    if template is None:
        return None
    line = template.format(
        ref=device.ref,
        nodes=" ".join(_port_nodes(graph, device, names)),
        params=device.params,
    )
    return line.rstrip()


def generate_netlist(
    graph: ConnectivityGraph,
    title: Optional[str] = None,
    ground_net: str = DEFAULT_GROUND_NET,
) -> str:
    """Render the graph as a SPICE netlist.

    Args:
        graph: Schematic to export
        title: First line of the netlist (SPICE treats it as the title)
        ground_net: Name of the net touching a ground device

    Returns:
        Netlist text ending in a newline
    """
    names = vertex_net_names(graph, ground_net)
    lines = [title or DEFAULT_TITLE, *MODEL_CARDS]

    elements = []
    for device in graph.devices:
        line = spice_line(graph, device, names)
        if line is not None:
            elements.append(line)

    if not elements:
        elements.append(EMPTY_PLACEHOLDER)
    lines.extend(elements)
    return "\n".join(lines) + "\n"


def write_netlist(
    graph: ConnectivityGraph,
    path: Union[str, Path],
    title: Optional[str] = None,
    ground_net: str = DEFAULT_GROUND_NET,
) -> Path:
    """Write the netlist to ``path`` and return the path."""
    path = Path(path)
    path.write_text(generate_netlist(graph, title, ground_net), encoding="utf-8")
    logger.info("Wrote netlist to %s", path)
    return path
