"""
Draw model for the rendering collaborator.

The schematic is exposed as three layers in fixed z-order, bottom first:

- DEVICE: device body rectangles
- NET: wire segments, tagged with their net index and floating flag, then
  net label markers
- PORT: port markers, tagged with whether anything is connected

Wires are drawn above device bodies and below port markers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .models import Point

if TYPE_CHECKING:
    from .graph import ConnectivityGraph


class DrawLayer(IntEnum):
    """Layers by z-order; higher values are drawn on top."""

    DEVICE = 0
    NET = 1
    PORT = 2


@dataclass(frozen=True)
class DeviceShape:
    ref: str
    kind: str
    min_corner: Point
    max_corner: Point
    rotation: int = 0

    def to_dict(self) -> dict:
        return {
            "ref": self.ref,
            "kind": self.kind,
            "bounds": [list(self.min_corner), list(self.max_corner)],
            "rotation": self.rotation,
        }


@dataclass(frozen=True)
class WireSegment:
    edge_id: int
    start: Point
    end: Point
    net_index: int
    floating: bool = False

    def to_dict(self) -> dict:
        return {
            "edge": self.edge_id,
            "start": list(self.start),
            "end": list(self.end),
            "net": self.net_index,
            "floating": self.floating,
        }


@dataclass(frozen=True)
class PortMarker:
    vertex_id: int
    position: Point
    device: str
    port: str
    connected: bool = False

    def to_dict(self) -> dict:
        return {
            "vertex": self.vertex_id,
            "position": list(self.position),
            "device": self.device,
            "port": self.port,
            "connected": self.connected,
        }


@dataclass(frozen=True)
class LabelMarker:
    label_id: int
    position: Point
    name: str
    net_index: Optional[int] = None  # None when the label touches no net

    def to_dict(self) -> dict:
        return {
            "label": self.label_id,
            "position": list(self.position),
            "name": self.name,
            "net": self.net_index,
        }


DrawItem = Union[DeviceShape, WireSegment, LabelMarker, PortMarker]


@dataclass
class DrawModel:
    """Snapshot of what to draw, built from a graph.

    Args:
        graph: Graph to render
        floating: Nets to flag as floating (see ``operations.net_ops.floating_nets``)
    """

    graph: ConnectivityGraph
    floating: Iterable[FrozenSet[int]] = ()
    _net_index: Dict[int, int] = field(init=False, repr=False, default_factory=dict)
    _net_size: Dict[int, int] = field(init=False, repr=False, default_factory=dict)
    _floating_ids: FrozenSet[int] = field(init=False, repr=False, default=frozenset())

    def __post_init__(self):
        for index, net in enumerate(self.graph.nets()):
            for vid in net:
                self._net_index[vid] = index
                self._net_size[vid] = len(net)
        self._floating_ids = frozenset(vid for net in self.floating for vid in net)

    def device_layer(self) -> List[DeviceShape]:
        library = self.graph.library
        shapes = []
        for device in self.graph.devices:
            lo, hi = library.body_bounds(device)
            shapes.append(DeviceShape(device.ref, device.kind, lo, hi, device.rotation))
        return shapes

    def net_layer(self) -> List[Union[WireSegment, LabelMarker]]:
        graph = self.graph
        items: List[Union[WireSegment, LabelMarker]] = [
            WireSegment(
                edge_id=edge.id,
                start=graph.vertex(edge.a).position,
                end=graph.vertex(edge.b).position,
                net_index=self._net_index[edge.a],
                floating=edge.a in self._floating_ids,
            )
            for edge in graph.edges
        ]
        for label in graph.labels:
            touching = graph.vertices_touching(label.position)
            net = self._net_index[touching[0]] if touching else None
            items.append(LabelMarker(label.id, label.position, label.name, net))
        return items

    def port_layer(self) -> List[PortMarker]:
        markers = []
        for vertex in self.graph.vertices:
            if not vertex.is_port:
                continue
            markers.append(
                PortMarker(
                    vertex_id=vertex.id,
                    position=vertex.position,
                    device=vertex.device,
                    port=vertex.port,
                    connected=self._net_size[vertex.id] > 1,
                )
            )
        return markers

    def layer(self, which: DrawLayer) -> List[DrawItem]:
        if which == DrawLayer.DEVICE:
            return list(self.device_layer())
        if which == DrawLayer.NET:
            return list(self.net_layer())
        return list(self.port_layer())

    def layers(self) -> List[Tuple[DrawLayer, List[DrawItem]]]:
        """All layers, bottom first."""
        return [(which, self.layer(which)) for which in sorted(DrawLayer)]

    def net_index_of(self, vertex_id: int) -> Optional[int]:
        return self._net_index.get(vertex_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            which.name.lower(): [item.to_dict() for item in items]
            for which, items in self.layers()
        }
