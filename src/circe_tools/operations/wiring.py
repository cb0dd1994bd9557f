"""
Editing operations as undoable batches.

Each function reads the current graph and returns a Batch describing the
edit. Nothing is applied until the Batch is pushed onto a CommandHistory.

- place_device: device body plus one port vertex per port
- draw_wire: orthogonal wire with at most one bend
- delete: edges, vertices, device bodies, labels and stranded wire points
- duplicate: copies of vertices, the wires among them, devices and labels
- place_label: a net label on a grid point
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Set

from ..history.commands import (
    AddDevice,
    AddEdge,
    AddLabel,
    AddVertex,
    Batch,
    BatchBuilder,
    RemoveDevice,
    RemoveEdge,
    RemoveLabel,
    RemoveVertex,
)
from ..schematic.models import (
    Device,
    Edge,
    Label,
    Point,
    Vertex,
    VertexRole,
    label_name,
    normalize_rotation,
)

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)

ROUTE_STYLES = ("auto", "horizontal_first", "vertical_first")


def _add_port_vertices(builder: BatchBuilder, device: Device) -> List[int]:
    work = builder.work
    ids = []
    for name, position in work.library.port_positions(device).items():
        vertex = Vertex(
            id=work.next_vertex_id,
            position=position,
            role=VertexRole.PORT,
            device=device.ref,
            port=name,
        )
        builder.add(AddVertex(vertex))
        ids.append(vertex.id)
    return ids


def place_device(
    graph: ConnectivityGraph,
    kind: str,
    position: Point,
    rotation: int = 0,
    params: Optional[str] = None,
) -> Batch:
    """Batch that places a new device with its ports.

    Raises:
        UnknownDeviceKindError: If ``kind`` is not in the graph's library
    """
    device_type = graph.library.get(kind)
    device = Device(
        ref=graph.allocate_reference(kind),
        kind=kind,
        position=(int(position[0]), int(position[1])),
        rotation=normalize_rotation(rotation),
        params=device_type.default_params if params is None else params,
    )
    builder = BatchBuilder(graph)
    builder.add(AddDevice(device))
    _add_port_vertices(builder, device)
    return builder.build(f"place {device.ref}")


def place_label(graph: ConnectivityGraph, position: Point, name: str) -> Batch:
    """Batch that places a net label.

    The label names whichever net touches ``position`` and is allowed on
    empty canvas, where it names nothing until a wire reaches it.

    Raises:
        ValueError: For an empty name or one containing whitespace
    """
    label = Label(
        id=graph.next_label_id,
        position=(int(position[0]), int(position[1])),
        name=label_name(name),
    )
    return Batch.of(f"label {label.name}", [AddLabel(label)])


def corner_point(start: Point, end: Point, route: str = "auto") -> Optional[Point]:
    """Bend point of a one-bend orthogonal wire, or None if no bend is needed."""
    if route not in ROUTE_STYLES:
        expected = ", ".join(ROUTE_STYLES)
        raise ValueError(f"Unknown route style '{route}' (expected one of {expected})")
    if start[0] == end[0] or start[1] == end[1]:
        return None
    if route == "auto":
        dx = abs(end[0] - start[0])
        dy = abs(end[1] - start[1])
        route = "horizontal_first" if dx >= dy else "vertical_first"
    if route == "horizontal_first":
        return (end[0], start[1])
    return (start[0], end[1])


def _edge_through(graph: ConnectivityGraph, point: Point) -> Optional[Edge]:
    """Axis-aligned edge whose interior passes over ``point``."""
    x, y = point
    for edge in graph.edges:
        (x1, y1) = graph.vertex(edge.a).position
        (x2, y2) = graph.vertex(edge.b).position
        if x1 == x2 == x and min(y1, y2) < y < max(y1, y2):
            return edge
        if y1 == y2 == y and min(x1, x2) < x < max(x1, x2):
            return edge
    return None


def _wire_vertex(builder: BatchBuilder, point: Point, split: bool) -> int:
    """Existing vertex at ``point``, or a new wire point (splitting a wire it lands on)."""
    work = builder.work
    existing = work.vertices_at(point)
    if existing:
        return min(existing)

    vertex = Vertex(id=work.next_vertex_id, position=point)
    builder.add(AddVertex(vertex))

    if split:
        edge = _edge_through(work, point)
        if edge is not None:
            logger.debug("Splitting edge %d at %s", edge.id, point)
            builder.add(RemoveEdge(edge))
            builder.add(AddEdge(Edge(work.next_edge_id, edge.a, vertex.id)))
            builder.add(AddEdge(Edge(work.next_edge_id, vertex.id, edge.b)))
    return vertex.id


def draw_wire(
    graph: ConnectivityGraph, start: Point, end: Point, route: str = "auto"
) -> Batch:
    """Batch that draws a wire from ``start`` to ``end``.

    The wire has at most one bend. Endpoints attach to a vertex (port or wire
    point) already at that position, or split an existing wire whose interior
    they land on.

    Raises:
        ValueError: For a zero-length wire or an unknown route style
    """
    start = (int(start[0]), int(start[1]))
    end = (int(end[0]), int(end[1]))
    if start == end:
        raise ValueError(f"Wire from {start} to {end} has zero length")

    corner = corner_point(start, end, route)
    builder = BatchBuilder(graph)
    chain = [_wire_vertex(builder, start, split=True)]
    if corner is not None:
        chain.append(_wire_vertex(builder, corner, split=False))
    chain.append(_wire_vertex(builder, end, split=True))

    work = builder.work
    for a, b in zip(chain, chain[1:]):
        if a == b or work.find_edge(a, b) is not None:
            continue
        builder.add(AddEdge(Edge(work.next_edge_id, a, b)))
    return builder.build("wire")


def delete(
    graph: ConnectivityGraph,
    vertex_ids: Iterable[int] = (),
    edge_ids: Iterable[int] = (),
    devices: Iterable[str] = (),
    labels: Iterable[int] = (),
) -> Batch:
    """Batch that deletes a selection.

    Selecting a port deletes its whole device. Order: edges, vertices,
    device bodies, labels, then wire points left with no edges.
    """
    label_ids = sorted(set(labels))
    for lid in label_ids:
        graph.label(lid)

    refs: Set[str] = set(devices)
    vertices: Set[int] = set()
    for vid in vertex_ids:
        vertex = graph.vertex(vid)
        if vertex.is_port:
            refs.add(vertex.device)
        else:
            vertices.add(vid)
    for ref in refs:
        vertices.update(graph.ports_of(ref))

    edges: Set[int] = set()
    for eid in edge_ids:
        graph.edge(eid)
        edges.add(eid)
    for vid in vertices:
        edges.update(e.id for e in graph.edges_of(vid))

    builder = BatchBuilder(graph)
    work = builder.work
    touched: Set[int] = set()
    for eid in sorted(edges):
        edge = work.edge(eid)
        touched.update((edge.a, edge.b))
        builder.add(RemoveEdge(edge))
    for vid in sorted(vertices):
        builder.add(RemoveVertex(work.vertex(vid)))
    for ref in sorted(refs):
        builder.add(RemoveDevice(work.device(ref)))
    for lid in label_ids:
        builder.add(RemoveLabel(work.label(lid)))

    for vid in sorted(touched - vertices):
        vertex = work.vertex(vid)
        if not vertex.is_port and work.degree(vid) == 0:
            builder.add(RemoveVertex(vertex))

    return builder.build("delete")


def duplicate(
    graph: ConnectivityGraph,
    vertex_ids: Iterable[int] = (),
    devices: Iterable[str] = (),
    offset: Point = (0, 0),
    labels: Iterable[int] = (),
) -> Batch:
    """Batch that copies a selection, shifted by ``offset``.

    Devices get fresh references. Wires are copied only when both of their
    endpoints are part of the selection. Copied labels keep their names.
    """
    originals = [graph.label(lid) for lid in sorted(set(labels))]
    dx, dy = offset
    refs: Set[str] = set(devices)
    selected: Set[int] = set()
    for vid in vertex_ids:
        vertex = graph.vertex(vid)
        if vertex.is_port:
            refs.add(vertex.device)
        else:
            selected.add(vid)
    for ref in refs:
        selected.update(graph.ports_of(ref))

    builder = BatchBuilder(graph)
    work = builder.work
    mapping = {}

    for ref in sorted(refs):
        original = graph.device(ref)
        copy = Device(
            ref=work.allocate_reference(original.kind),
            kind=original.kind,
            position=(original.position[0] + dx, original.position[1] + dy),
            rotation=original.rotation,
            params=original.params,
        )
        builder.add(AddDevice(copy))
        for vid in graph.ports_of(ref):
            port = graph.vertex(vid)
            clone = Vertex(
                id=work.next_vertex_id,
                position=(port.position[0] + dx, port.position[1] + dy),
                role=VertexRole.PORT,
                device=copy.ref,
                port=port.port,
            )
            builder.add(AddVertex(clone))
            mapping[vid] = clone.id

    for vid in sorted(selected):
        if vid in mapping:
            continue
        point = graph.vertex(vid).position
        clone = Vertex(id=work.next_vertex_id, position=(point[0] + dx, point[1] + dy))
        builder.add(AddVertex(clone))
        mapping[vid] = clone.id

    for edge in graph.edges:
        if edge.a in mapping and edge.b in mapping:
            builder.add(AddEdge(Edge(work.next_edge_id, mapping[edge.a], mapping[edge.b])))

    for label in originals:
        point = (label.position[0] + dx, label.position[1] + dy)
        builder.add(AddLabel(Label(work.next_label_id, point, label.name)))

    return builder.build("duplicate")
