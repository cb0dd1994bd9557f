"""
Connectivity graph for schematic wiring.

This module provides:
- ConnectivityGraph: arena of vertices, edges, device bodies and net labels,
  with net computation over edge adjacency and position coincidence

Identity is a stable integer index into owned storage. Ids only grow, so an
id that a history command refers to is never handed out again. Nets are
never stored: ``net_of`` derives them from the current edges and positions
on every call, which keeps them consistent across undo/redo.

Example::

    >>> graph = ConnectivityGraph()
    >>> a = graph.add_vertex((0, 0))
    >>> b = graph.add_vertex((5, 0))
    >>> c = graph.add_vertex((5, 0))  # coincident with b, no edge
    >>> _ = graph.add_edge(a, b)
    >>> sorted(graph.net_of(c))
    [0, 1, 2]
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Set

from ..exceptions import (
    DeviceInUseError,
    DuplicateDeviceError,
    DuplicateEdgeError,
    DuplicateLabelError,
    DuplicateVertexError,
    GraphError,
    SelfLoopError,
    UnknownDeviceError,
    UnknownEdgeError,
    UnknownLabelError,
    UnknownVertexError,
    VertexInUseError,
)
from .devices import DEFAULT_LIBRARY, DeviceLibrary
from .models import Device, Edge, Label, Point, Vertex, VertexRole, normalize_rotation

if TYPE_CHECKING:
    from ..io.snapshot import Snapshot

logger = logging.getLogger(__name__)


class ConnectivityGraph:
    """Vertices, edges and devices of one schematic document."""

    def __init__(self, library: Optional[DeviceLibrary] = None):
        self.library = library or DEFAULT_LIBRARY

        self._vertices: Dict[int, Vertex] = {}
        self._edges: Dict[int, Edge] = {}
        self._devices: Dict[str, Device] = {}
        self._labels: Dict[int, Label] = {}

        # Indexes derived from the three stores above
        self._incident: Dict[int, Set[int]] = {}  # vertex -> edge ids
        self._pairs: Dict[FrozenSet[int], int] = {}  # endpoint pair -> edge id
        self._at: Dict[Point, Set[int]] = {}  # position -> vertex ids
        self._device_ports: Dict[str, Set[int]] = {}  # device ref -> port vertex ids

        self.next_vertex_id = 0
        self.next_edge_id = 0
        self.next_label_id = 0

        # Every reference ever inserted; new references never reuse a number
        self._issued_refs: Set[str] = set()

        # Bumped on every mutation; lets background planners detect stale input
        self.revision = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def vertex(self, vertex_id: int) -> Vertex:
        try:
            return self._vertices[vertex_id]
        except KeyError:
            raise UnknownVertexError(vertex_id) from None

    def edge(self, edge_id: int) -> Edge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise UnknownEdgeError(edge_id) from None

    def device(self, ref: str) -> Device:
        try:
            return self._devices[ref]
        except KeyError:
            raise UnknownDeviceError(ref) from None

    def label(self, label_id: int) -> Label:
        try:
            return self._labels[label_id]
        except KeyError:
            raise UnknownLabelError(label_id) from None

    def has_vertex(self, vertex_id: int) -> bool:
        return vertex_id in self._vertices

    def has_edge(self, edge_id: int) -> bool:
        return edge_id in self._edges

    def has_device(self, ref: str) -> bool:
        return ref in self._devices

    def has_label(self, label_id: int) -> bool:
        return label_id in self._labels

    @property
    def vertices(self) -> List[Vertex]:
        """All vertices ordered by id."""
        return [self._vertices[v] for v in sorted(self._vertices)]

    @property
    def edges(self) -> List[Edge]:
        """All edges ordered by id."""
        return [self._edges[e] for e in sorted(self._edges)]

    @property
    def devices(self) -> List[Device]:
        """All devices ordered by reference."""
        return [self._devices[r] for r in sorted(self._devices)]

    @property
    def labels(self) -> List[Label]:
        """All net labels ordered by id."""
        return [self._labels[i] for i in sorted(self._labels)]

    def __len__(self) -> int:
        return len(self._vertices)

    def edges_of(self, vertex_id: int) -> List[Edge]:
        """Edges incident to a vertex, ordered by id."""
        if vertex_id not in self._vertices:
            raise UnknownVertexError(vertex_id, "edges_of")
        return [self._edges[e] for e in sorted(self._incident[vertex_id])]

    def degree(self, vertex_id: int) -> int:
        if vertex_id not in self._vertices:
            raise UnknownVertexError(vertex_id, "degree")
        return len(self._incident[vertex_id])

    def neighbors(self, vertex_id: int) -> List[int]:
        """Vertices joined to ``vertex_id`` by an explicit edge."""
        return sorted(e.other(vertex_id) for e in self.edges_of(vertex_id))

    def find_edge(self, a: int, b: int) -> Optional[int]:
        """Id of the edge between ``a`` and ``b``, if any."""
        return self._pairs.get(frozenset((a, b)))

    def vertices_at(self, position: Point) -> FrozenSet[int]:
        """Ids of all vertices located exactly at ``position``."""
        return frozenset(self._at.get((position[0], position[1]), ()))

    def vertices_touching(self, position: Point) -> List[int]:
        """Vertices at a point, or the first endpoint of each wire passing over it."""
        found = set(self.vertices_at(position))
        if found:
            return sorted(found)
        x, y = position
        for edge in self._edges.values():
            (x1, y1) = self._vertices[edge.a].position
            (x2, y2) = self._vertices[edge.b].position
            if x1 == x2 == x and min(y1, y2) <= y <= max(y1, y2):
                found.add(edge.a)
            elif y1 == y2 == y and min(x1, x2) <= x <= max(x1, x2):
                found.add(edge.a)
        return sorted(found)

    def ports_of(self, ref: str) -> List[int]:
        """Port vertex ids owned by a device, ordered by id."""
        if ref not in self._devices:
            raise UnknownDeviceError(ref, "ports_of")
        return sorted(self._device_ports.get(ref, ()))

    # ------------------------------------------------------------------
    # Nets
    # ------------------------------------------------------------------

    def _closure(self, seeds: Iterable[int], exclude: Optional[Set[int]] = None) -> Set[int]:
        """Vertices reachable from ``seeds`` over edges and coincident positions."""
        blocked = exclude or set()
        seen: Set[int] = set()
        queue = deque(v for v in seeds if v not in blocked)
        seen.update(queue)

        while queue:
            current = queue.popleft()
            candidates = [self._edges[e].other(current) for e in self._incident[current]]
            candidates.extend(self._at[self._vertices[current].position])
            for nxt in candidates:
                if nxt not in seen and nxt not in blocked:
                    seen.add(nxt)
                    queue.append(nxt)
        return seen

    def net_of(self, vertex_id: int) -> FrozenSet[int]:
        """Connected component of a vertex under edges and position coincidence."""
        if vertex_id not in self._vertices:
            raise UnknownVertexError(vertex_id, "net_of")
        return frozenset(self._closure([vertex_id]))

    def nets(self) -> List[FrozenSet[int]]:
        """All nets, ordered by their lowest vertex id."""
        result: List[FrozenSet[int]] = []
        assigned: Set[int] = set()
        for vid in sorted(self._vertices):
            if vid in assigned:
                continue
            net = frozenset(self._closure([vid]))
            assigned.update(net)
            result.append(net)
        return result

    def connected(self, a: int, b: int) -> bool:
        """Whether two vertices belong to the same net."""
        return b in self.net_of(a)

    def is_essential(self, vertex_id: int) -> bool:
        """Whether a vertex must never be silently dropped.

        Ports are always essential. A wire point is essential when removing
        it would split its net into more than one piece.
        """
        vertex = self.vertex(vertex_id)
        if vertex.is_port:
            return True

        rest = self.net_of(vertex_id) - {vertex_id}
        if len(rest) < 2:
            return False
        reached = self._closure([min(rest)], exclude={vertex_id})
        return reached != rest

    # ------------------------------------------------------------------
    # Id allocation
    # ------------------------------------------------------------------

    def allocate_vertex_id(self) -> int:
        vid = self.next_vertex_id
        self.next_vertex_id += 1
        return vid

    def allocate_edge_id(self) -> int:
        eid = self.next_edge_id
        self.next_edge_id += 1
        return eid

    def allocate_label_id(self) -> int:
        lid = self.next_label_id
        self.next_label_id += 1
        return lid

    def allocate_reference(self, kind: str) -> str:
        """Fresh reference for a kind, numbered above every reference issued so far."""
        return self.library.next_reference(kind, self._issued_refs)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_vertex(
        self,
        position: Point,
        role: VertexRole = VertexRole.WIRE_POINT,
        device: Optional[str] = None,
        port: Optional[str] = None,
    ) -> int:
        """Create a vertex with a fresh id and return the id."""
        vertex = Vertex(
            id=self.next_vertex_id,
            position=(int(position[0]), int(position[1])),
            role=VertexRole(role),
            device=device,
            port=port,
        )
        self.insert_vertex(vertex)
        return vertex.id

    def insert_vertex(self, vertex: Vertex) -> None:
        """Insert a vertex carrying an explicit id (used by commands and loading)."""
        if vertex.id in self._vertices:
            raise DuplicateVertexError(vertex.id)
        if vertex.is_port:
            if vertex.device is None or vertex.port is None:
                raise GraphError(
                    f"Port vertex {vertex.id} needs a device and a port name",
                    context={"vertex": vertex.id},
                )
            if vertex.device not in self._devices:
                raise UnknownDeviceError(vertex.device, "insert_vertex")
        elif vertex.device is not None:
            raise GraphError(
                f"Wire point {vertex.id} cannot belong to device '{vertex.device}'",
                context={"vertex": vertex.id, "device": vertex.device},
            )

        self._vertices[vertex.id] = vertex
        self._incident[vertex.id] = set()
        self._at.setdefault(vertex.position, set()).add(vertex.id)
        if vertex.is_port:
            self._device_ports.setdefault(vertex.device, set()).add(vertex.id)
        self.next_vertex_id = max(self.next_vertex_id, vertex.id + 1)
        self.revision += 1

    def add_edge(self, a: int, b: int) -> int:
        """Create an edge between two existing vertices and return its id."""
        edge = Edge(id=self.next_edge_id, a=a, b=b)
        self.insert_edge(edge)
        return edge.id

    def insert_edge(self, edge: Edge) -> None:
        """Insert an edge carrying an explicit id."""
        if edge.id in self._edges:
            raise GraphError(f"Edge {edge.id} already exists", context={"edge": edge.id})
        for endpoint in (edge.a, edge.b):
            if endpoint not in self._vertices:
                raise UnknownVertexError(endpoint, "add_edge")
        if edge.a == edge.b:
            raise SelfLoopError(edge.a)
        existing = self._pairs.get(edge.key)
        if existing is not None:
            raise DuplicateEdgeError(edge.a, edge.b, existing)

        self._edges[edge.id] = edge
        self._pairs[edge.key] = edge.id
        self._incident[edge.a].add(edge.id)
        self._incident[edge.b].add(edge.id)
        self.next_edge_id = max(self.next_edge_id, edge.id + 1)
        self.revision += 1

    def remove_edge(self, edge_id: int) -> Edge:
        """Remove an edge and return it."""
        edge = self.edge(edge_id)
        del self._edges[edge_id]
        del self._pairs[edge.key]
        self._incident[edge.a].discard(edge_id)
        self._incident[edge.b].discard(edge_id)
        self.revision += 1
        return edge

    def remove_vertex(self, vertex_id: int) -> Vertex:
        """Remove a vertex that no edge references and return it."""
        vertex = self.vertex(vertex_id)
        if self._incident[vertex_id]:
            raise VertexInUseError(vertex_id, sorted(self._incident[vertex_id]))

        del self._vertices[vertex_id]
        del self._incident[vertex_id]
        self._discard_position(vertex.position, vertex_id)
        if vertex.is_port:
            self._device_ports[vertex.device].discard(vertex_id)
        self.revision += 1
        return vertex

    def move_vertex(self, vertex_id: int, position: Point) -> Vertex:
        """Move a vertex. Topology is unchanged. Returns the previous vertex."""
        old = self.vertex(vertex_id)
        new = old.moved_to(position)
        self._discard_position(old.position, vertex_id)
        self._vertices[vertex_id] = new
        self._at.setdefault(new.position, set()).add(vertex_id)
        self.revision += 1
        return old

    def _discard_position(self, position: Point, vertex_id: int) -> None:
        bucket = self._at.get(position)
        if bucket is None:
            return
        bucket.discard(vertex_id)
        if not bucket:
            del self._at[position]

    def insert_device(self, device: Device) -> None:
        """Insert a device body. Its ports are added separately."""
        if device.ref in self._devices:
            raise DuplicateDeviceError(device.ref)
        self.library.get(device.kind)
        self._devices[device.ref] = device
        self._issued_refs.add(device.ref)
        self._device_ports.setdefault(device.ref, set())
        self.revision += 1

    def add_device(
        self, kind: str, position: Point, rotation: int = 0, params: Optional[str] = None
    ) -> str:
        """Create a device body with a fresh reference and return the reference."""
        device_type = self.library.get(kind)
        device = Device(
            ref=self.allocate_reference(kind),
            kind=kind,
            position=(int(position[0]), int(position[1])),
            rotation=normalize_rotation(rotation),
            params=device_type.default_params if params is None else params,
        )
        self.insert_device(device)
        return device.ref

    def remove_device(self, ref: str) -> Device:
        """Remove a device body whose ports have all been removed."""
        device = self.device(ref)
        ports = self._device_ports.get(ref, set())
        if ports:
            raise DeviceInUseError(ref, sorted(ports))
        del self._devices[ref]
        self._device_ports.pop(ref, None)
        self.revision += 1
        return device

    def move_device(self, ref: str, position: Point, rotation: Optional[int] = None) -> Device:
        """Move/rotate a device body. Returns the previous device."""
        old = self.device(ref)
        self._devices[ref] = old.moved_to(position, rotation)
        self.revision += 1
        return old

    def insert_label(self, label: Label) -> None:
        """Insert a net label carrying an explicit id."""
        if label.id in self._labels:
            raise DuplicateLabelError(label.id)
        if not label.name:
            raise GraphError(f"Label {label.id} needs a name", context={"label": label.id})
        self._labels[label.id] = label
        self.next_label_id = max(self.next_label_id, label.id + 1)
        self.revision += 1

    def add_label(self, position: Point, name: str) -> int:
        """Create a net label and return its id."""
        label = Label(self.next_label_id, (int(position[0]), int(position[1])), name)
        self.insert_label(label)
        return label.id

    def remove_label(self, label_id: int) -> Label:
        label = self.label(label_id)
        del self._labels[label_id]
        self.revision += 1
        return label

    def move_label(self, label_id: int, position: Point) -> Label:
        """Move a net label. Returns the previous label."""
        old = self.label(label_id)
        self._labels[label_id] = old.moved_to(position)
        self.revision += 1
        return old

    # ------------------------------------------------------------------
    # Whole-graph helpers
    # ------------------------------------------------------------------

    def copy(self) -> ConnectivityGraph:
        """Independent copy sharing only immutable elements."""
        clone = ConnectivityGraph(self.library)
        clone._vertices = dict(self._vertices)
        clone._edges = dict(self._edges)
        clone._devices = dict(self._devices)
        clone._labels = dict(self._labels)
        clone._incident = {k: set(v) for k, v in self._incident.items()}
        clone._pairs = dict(self._pairs)
        clone._at = {k: set(v) for k, v in self._at.items()}
        clone._device_ports = {k: set(v) for k, v in self._device_ports.items()}
        clone.next_vertex_id = self.next_vertex_id
        clone.next_edge_id = self.next_edge_id
        clone.next_label_id = self.next_label_id
        clone._issued_refs = set(self._issued_refs)
        clone.revision = self.revision
        return clone

    def check_invariants(self) -> None:
        """Verify the structural invariants, raising GraphError on the first breach set."""
        problems: List[str] = []

        seen_pairs: Set[FrozenSet[int]] = set()
        for edge in self._edges.values():
            for endpoint in (edge.a, edge.b):
                if endpoint not in self._vertices:
                    problems.append(f"edge {edge.id} references missing vertex {endpoint}")
            if edge.key in seen_pairs:
                problems.append(f"edge {edge.id} duplicates endpoint pair {sorted(edge.key)}")
            seen_pairs.add(edge.key)
            if self._pairs.get(edge.key) != edge.id:
                problems.append(f"pair index out of sync for edge {edge.id}")

        for vid, vertex in self._vertices.items():
            expected = {e.id for e in self._edges.values() if e.touches(vid)}
            if self._incident.get(vid) != expected:
                problems.append(f"incidence index out of sync for vertex {vid}")
            if vid not in self._at.get(vertex.position, ()):
                problems.append(f"position index out of sync for vertex {vid}")
            if vertex.is_port and vertex.device not in self._devices:
                problems.append(f"port {vid} references missing device {vertex.device}")
            if vid >= self.next_vertex_id:
                problems.append(f"vertex {vid} not below next id {self.next_vertex_id}")

        for lid in self._labels:
            if lid >= self.next_label_id:
                problems.append(f"label {lid} not below next id {self.next_label_id}")

        if problems:
            raise GraphError(
                f"Graph invariants violated ({len(problems)} problem(s))",
                context={"problems": problems},
            )

    def snapshot(self) -> Snapshot:
        """Capture the full document as plain data (see ``circe_tools.io.snapshot``)."""
        from ..io.snapshot import Snapshot

        return Snapshot(
            devices=tuple(self.devices),
            vertices=tuple(self.vertices),
            edges=tuple(self.edges),
            labels=tuple(self.labels),
            next_vertex_id=self.next_vertex_id,
            next_edge_id=self.next_edge_id,
            next_label_id=self.next_label_id,
        )

    def __repr__(self) -> str:
        return (
            f"ConnectivityGraph({len(self._vertices)} vertices, "
            f"{len(self._edges)} edges, {len(self._devices)} devices, {len(self._labels)} labels)"
        )
