"""
Net naming and analysis operations.

Provides functions to name the nets of a ConnectivityGraph, look up the net
at a canvas point, and report floating nets.

A net label names the net it touches. It never connects anything: two labels
with the same name on separate nets leave the nets apart, though the netlist
will give both the same node name.

Nets themselves are never stored. Every function here derives them from the
graph on each call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from ..history.commands import Batch, Command
from ..schematic.models import Label, Point

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

DEFAULT_GROUND_NET = "0"


@dataclass
class NetInfo:
    """A named net with its members."""

    name: str
    vertices: FrozenSet[int]
    ports: List[Tuple[str, str]] = field(default_factory=list)  # (device ref, port name)
    wires: List[int] = field(default_factory=list)  # edge ids
    floating: bool = False
    labels: List[str] = field(default_factory=list)

    @property
    def port_count(self) -> int:
        return len(self.ports)

    @property
    def device_refs(self) -> Set[str]:
        return {ref for ref, _ in self.ports}

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "vertices": sorted(self.vertices),
            "ports": [f"{ref}.{port}" for ref, port in self.ports],
            "wires": list(self.wires),
            "floating": self.floating,
            "labels": list(self.labels),
        }

    def __repr__(self) -> str:
        return f"NetInfo({self.name!r}, {self.port_count} ports, {len(self.wires)} wires)"


def _is_ground(graph: ConnectivityGraph, net: FrozenSet[int]) -> bool:
    for vid in net:
        vertex = graph.vertex(vid)
        if vertex.is_port and graph.library.get(graph.device(vertex.device).kind).ground:
            return True
    return False


def label_nets(graph: ConnectivityGraph) -> Dict[int, List[Label]]:
    """Labels grouped by the lowest vertex id of the net each one touches.

    A label touches the net of any vertex at its position, or of a wire
    passing over it. Labels on empty canvas are left out. Each list is
    ordered by label id.
    """
    found: Dict[int, List[Label]] = {}
    for label in graph.labels:
        touching = vertices_touching(graph, label.position)
        if touching:
            key = min(graph.net_of(touching[0]))
            found.setdefault(key, []).append(label)
    return found


def net_names(
    graph: ConnectivityGraph, ground_net: str = DEFAULT_GROUND_NET
) -> List[Tuple[str, FrozenSet[int]]]:
    """Name every net.

    Nets touching a ground port share the ground name. A net carrying a
    label takes the name of its lowest-id label. The others are named
    ``n1``, ``n2``, ... in order of their lowest vertex id, skipping any
    name a label or the ground net already uses.
    """
    labelled = label_nets(graph)
    taken = {ground_net} | {labels[0].name for labels in labelled.values()}

    named: List[Tuple[str, FrozenSet[int]]] = []
    counter = 0
    for net in graph.nets():
        if _is_ground(graph, net):
            named.append((ground_net, net))
        elif min(net) in labelled:
            named.append((labelled[min(net)][0].name, net))
        else:
            counter += 1
            while f"n{counter}" in taken:
                counter += 1
            named.append((f"n{counter}", net))
    return named


def vertex_net_names(
    graph: ConnectivityGraph, ground_net: str = DEFAULT_GROUND_NET
) -> Dict[int, str]:
    """Map every vertex id to the name of its net."""
    return {vid: name for name, net in net_names(graph, ground_net) for vid in net}


def vertices_touching(graph: ConnectivityGraph, position: Point) -> List[int]:
    """Vertices at a point, or endpoints of a wire passing over it."""
    return graph.vertices_touching(position)


def net_name_at(
    graph: ConnectivityGraph, position: Point, ground_net: str = DEFAULT_GROUND_NET
) -> Optional[str]:
    """Name of the net touching a grid point, or None for empty canvas."""
    touching = vertices_touching(graph, position)
    if not touching:
        return None
    return vertex_net_names(graph, ground_net)[touching[0]]


def _unrouted_jobs(commands: Iterable[Command]) -> Iterable[Tuple[int, FrozenSet[int]]]:
    for command in commands:
        if isinstance(command, Batch):
            yield from command.unrouted
            yield from _unrouted_jobs(command.commands)


def floating_nets(
    graph: ConnectivityGraph, applied: Iterable[Command] = ()
) -> List[FrozenSet[int]]:
    """Nets to mark as floating.

    A net is floating when it holds the start or a goal of an unrouted job
    recorded on a command still in effect (and the two sides are still
    apart), or when it is a lone port with nothing connected to it.

    Args:
        graph: Current graph
        applied: Commands currently in effect, e.g. ``history.applied()``

    Returns:
        Floating nets ordered by their lowest vertex id
    """
    flagged: Dict[int, FrozenSet[int]] = {}

    def flag(net: FrozenSet[int]) -> None:
        flagged.setdefault(min(net), net)

    for start, goals in _unrouted_jobs(applied):
        if not graph.has_vertex(start):
            continue
        start_net = graph.net_of(start)
        apart = [g for g in sorted(goals) if graph.has_vertex(g) and g not in start_net]
        if not apart:
            continue
        flag(start_net)
        for goal in apart:
            flag(graph.net_of(goal))

    for net in graph.nets():
        if len(net) == 1 and graph.vertex(next(iter(net))).is_port:
            flag(net)

    return [flagged[k] for k in sorted(flagged)]


def net_table(
    graph: ConnectivityGraph,
    ground_net: str = DEFAULT_GROUND_NET,
    applied: Iterable[Command] = (),
) -> List[NetInfo]:
    """Full net report: name, members, connected ports, wires and floating flag."""
    floating = {min(net) for net in floating_nets(graph, applied)}
    labelled = label_nets(graph)
    edges_by_vertex: Dict[int, List[int]] = {}
    for edge in graph.edges:
        edges_by_vertex.setdefault(edge.a, []).append(edge.id)

    table: List[NetInfo] = []
    for name, net in net_names(graph, ground_net):
        ports = []
        wires: List[int] = []
        for vid in sorted(net):
            vertex = graph.vertex(vid)
            if vertex.is_port:
                ports.append((vertex.device, vertex.port))
            wires.extend(edges_by_vertex.get(vid, ()))
        table.append(
            NetInfo(
                name=name,
                vertices=net,
                ports=ports,
                wires=sorted(wires),
                floating=min(net) in floating,
                labels=[label.name for label in labelled.get(min(net), ())],
            )
        )
    return table
