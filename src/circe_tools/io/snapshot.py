"""
Whole-document snapshots for loading and saving.

A Snapshot is plain data: device, vertex, edge and net label records plus
the next free ids. Loading validates the structure first and rejects a bad
document with a LoadError listing every problem; nothing is repaired. A
valid snapshot is turned into a single Batch so that even loading goes
through the command history.

Files are JSON (``.json``) or YAML (anything else) with the same layout::

    version: 1
    devices:
      - {ref: R1, kind: R, position: [0, 0], rotation: 0, params: 1k}
    vertices:
      - {id: 0, position: [0, 3], role: port, device: R1, port: "+"}
      - {id: 1, position: [0, -3], role: port, device: R1, port: "-"}
    edges: []
    labels:
      - {id: 0, position: [0, 3], name: vin}
    next_vertex_id: 2
    next_edge_id: 0
    next_label_id: 1

The next-id counters must be integers. A missing counter defaults to one
past the highest id in its section.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import yaml

from ..exceptions import LoadError
from ..history.commands import AddDevice, AddEdge, AddLabel, AddVertex, Batch
from ..schematic.devices import DEFAULT_LIBRARY, DeviceLibrary
from ..schematic.models import (
    Device,
    Edge,
    Label,
    Vertex,
    VertexRole,
    label_name,
    normalize_rotation,
)

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)

__all__ = ["SNAPSHOT_VERSION", "Snapshot", "load_snapshot", "save_snapshot"]

SNAPSHOT_VERSION = 1

JSON_SUFFIXES = (".json",)


def _point(value: Any) -> Tuple[int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"position must be a pair of integers, got {value!r}")
    return (int(value[0]), int(value[1]))


def _parse_device(data: Dict[str, Any]) -> Device:
    return Device(
        ref=str(data["ref"]),
        kind=str(data["kind"]),
        position=_point(data["position"]),
        rotation=normalize_rotation(data.get("rotation", 0)),
        params=str(data.get("params", "") or ""),
    )


def _parse_vertex(data: Dict[str, Any]) -> Vertex:
    return Vertex(
        id=int(data["id"]),
        position=_point(data["position"]),
        role=VertexRole(data.get("role", VertexRole.WIRE_POINT.value)),
        device=data.get("device"),
        port=data.get("port"),
    )


def _parse_edge(data: Dict[str, Any]) -> Edge:
    return Edge(id=int(data["id"]), a=int(data["a"]), b=int(data["b"]))


def _parse_label(data: Dict[str, Any]) -> Label:
    return Label(
        id=int(data["id"]), position=_point(data["position"]), name=label_name(data["name"])
    )


def _counter(data: Dict[str, Any], key: str, default: int, errors: List[str]) -> int:
    """Read a next-id counter; a missing counter defaults to one past the highest id."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"'{key}' must be an integer, got {value!r}")
        return default
    return value


@dataclass(frozen=True)
class Snapshot:
    """Full graph state as plain records."""

    devices: Tuple[Device, ...] = ()
    vertices: Tuple[Vertex, ...] = ()
    edges: Tuple[Edge, ...] = ()
    labels: Tuple[Label, ...] = ()
    next_vertex_id: int = 0
    next_edge_id: int = 0
    next_label_id: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.devices or self.vertices or self.edges or self.labels)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": SNAPSHOT_VERSION,
            "devices": [d.to_dict() for d in self.devices],
            "vertices": [v.to_dict() for v in self.vertices],
            "edges": [e.to_dict() for e in self.edges],
            "labels": [label.to_dict() for label in self.labels],
            "next_vertex_id": self.next_vertex_id,
            "next_edge_id": self.next_edge_id,
            "next_label_id": self.next_label_id,
        }

    @classmethod
    def from_dict(cls, data: Any, library: Optional[DeviceLibrary] = None) -> Snapshot:
        """Parse and validate a snapshot mapping.

        Raises:
            LoadError: If any record is malformed or the structure is invalid
        """
        if not isinstance(data, dict):
            raise LoadError([f"Snapshot must be a mapping, got {type(data).__name__}"])

        errors: List[str] = []
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            errors.append(f"Unsupported snapshot version {version!r}")

        parsed: Dict[str, list] = {"devices": [], "vertices": [], "edges": [], "labels": []}
        parsers = {
            "devices": _parse_device,
            "vertices": _parse_vertex,
            "edges": _parse_edge,
            "labels": _parse_label,
        }
        for section, parser in parsers.items():
            records = data.get(section) or []
            if not isinstance(records, list):
                errors.append(f"'{section}' must be a list")
                continue
            for index, record in enumerate(records):
                try:
                    if not isinstance(record, dict):
                        raise TypeError(f"expected a mapping, got {type(record).__name__}")
                    parsed[section].append(parser(record))
                except KeyError as e:
                    errors.append(f"{section}[{index}]: missing field {e}")
                except (TypeError, ValueError) as e:
                    errors.append(f"{section}[{index}]: {e}")

        vertices = parsed["vertices"]
        edges = parsed["edges"]
        labels = parsed["labels"]
        next_vertex_id = _counter(
            data, "next_vertex_id", max((v.id for v in vertices), default=-1) + 1, errors
        )
        next_edge_id = _counter(
            data, "next_edge_id", max((e.id for e in edges), default=-1) + 1, errors
        )
        next_label_id = _counter(
            data, "next_label_id", max((label.id for label in labels), default=-1) + 1, errors
        )

        if errors:
            raise LoadError(errors)

        snapshot = cls(
            devices=tuple(parsed["devices"]),
            vertices=tuple(vertices),
            edges=tuple(edges),
            labels=tuple(labels),
            next_vertex_id=next_vertex_id,
            next_edge_id=next_edge_id,
            next_label_id=next_label_id,
        )
        snapshot.check(library)
        return snapshot

    def validate(self, library: Optional[DeviceLibrary] = None) -> List[str]:
        """Return every structural problem; an empty list means the snapshot is loadable."""
        library = library or DEFAULT_LIBRARY
        errors: List[str] = []

        refs = Counter(d.ref for d in self.devices)
        errors.extend(f"Duplicate device reference '{r}'" for r, n in sorted(refs.items()) if n > 1)
        for device in self.devices:
            if device.kind not in library:
                errors.append(f"Device '{device.ref}' has unknown kind '{device.kind}'")

        ids = Counter(v.id for v in self.vertices)
        errors.extend(f"Duplicate vertex id {i}" for i, n in sorted(ids.items()) if n > 1)
        devices = {d.ref: d for d in self.devices}
        for vertex in self.vertices:
            if vertex.id < 0:
                errors.append(f"Vertex id {vertex.id} is negative")
            if vertex.is_port:
                if vertex.device not in devices:
                    errors.append(f"Port {vertex.id} references unknown device '{vertex.device}'")
                elif devices[vertex.device].kind in library:
                    names = library.get(devices[vertex.device].kind).port_names
                    if vertex.port not in names:
                        errors.append(
                            f"Port {vertex.id} names unknown port '{vertex.port}' "
                            f"on device '{vertex.device}'"
                        )
            elif vertex.device is not None:
                errors.append(f"Wire point {vertex.id} references device '{vertex.device}'")

        edge_ids = Counter(e.id for e in self.edges)
        errors.extend(f"Duplicate edge id {i}" for i, n in sorted(edge_ids.items()) if n > 1)
        pairs: Dict[frozenset, int] = {}
        for edge in self.edges:
            for endpoint in (edge.a, edge.b):
                if endpoint not in ids:
                    errors.append(f"Edge {edge.id} references unknown vertex {endpoint}")
            if edge.a == edge.b:
                errors.append(f"Edge {edge.id} connects vertex {edge.a} to itself")
            elif edge.key in pairs:
                errors.append(
                    f"Edge {edge.id} duplicates edge {pairs[edge.key]} "
                    f"between vertices {edge.a} and {edge.b}"
                )
            else:
                pairs[edge.key] = edge.id

        if ids and self.next_vertex_id <= max(ids):
            errors.append(f"next_vertex_id {self.next_vertex_id} is not above every vertex id")
        label_ids = Counter(label.id for label in self.labels)
        errors.extend(f"Duplicate label id {i}" for i, n in sorted(label_ids.items()) if n > 1)
        for label in self.labels:
            if label.id < 0:
                errors.append(f"Label id {label.id} is negative")

        if edge_ids and self.next_edge_id <= max(edge_ids):
            errors.append(f"next_edge_id {self.next_edge_id} is not above every edge id")
        if label_ids and self.next_label_id <= max(label_ids):
            errors.append(f"next_label_id {self.next_label_id} is not above every label id")

        return errors

    def check(self, library: Optional[DeviceLibrary] = None) -> None:
        """Raise LoadError if ``validate`` reports anything."""
        errors = self.validate(library)
        if errors:
            raise LoadError(errors)

    def to_command(self, label: str = "load") -> Batch:
        """Batch that recreates this document in an empty graph."""
        commands = [AddDevice(d) for d in self.devices]
        commands.extend(AddVertex(v) for v in sorted(self.vertices, key=lambda v: v.id))
        commands.extend(AddEdge(e) for e in sorted(self.edges, key=lambda e: e.id))
        commands.extend(AddLabel(label) for label in sorted(self.labels, key=lambda label: label.id))
        return Batch.of(label, commands)

    def build_graph(self, library: Optional[DeviceLibrary] = None) -> ConnectivityGraph:
        """Validate and return a fresh ConnectivityGraph holding this document."""
        from ..schematic.graph import ConnectivityGraph

        self.check(library)
        graph = ConnectivityGraph(library)
        self.to_command().apply(graph)
        graph.next_vertex_id = max(graph.next_vertex_id, self.next_vertex_id)
        graph.next_edge_id = max(graph.next_edge_id, self.next_edge_id)
        graph.next_label_id = max(graph.next_label_id, self.next_label_id)
        return graph


def _is_json(path: Path) -> bool:
    return path.suffix.lower() in JSON_SUFFIXES


def load_snapshot(path: Union[str, Path], library: Optional[DeviceLibrary] = None) -> Snapshot:
    """Load and validate a snapshot file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        LoadError: If the file cannot be parsed or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content) if _is_json(path) else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoadError([f"Invalid file content: {e}"], context={"file": str(path)}) from e

    if data is None:
        raise LoadError(["File is empty"], context={"file": str(path)})

    try:
        snapshot = Snapshot.from_dict(data, library)
    except LoadError as e:
        raise LoadError(e.errors, context={"file": str(path)}) from None

    logger.info(
        "Loaded %s: %d device(s), %d vertex(es), %d edge(s), %d label(s)",
        path,
        len(snapshot.devices),
        len(snapshot.vertices),
        len(snapshot.edges),
        len(snapshot.labels),
    )
    return snapshot


def save_snapshot(snapshot: Snapshot, path: Union[str, Path]) -> Path:
    """Write a snapshot as JSON or YAML, chosen by file suffix."""
    path = Path(path)
    data = snapshot.to_dict()
    if _is_json(path):
        content = json.dumps(data, indent=2) + "\n"
    else:
        content = yaml.safe_dump(data, sort_keys=False, default_flow_style=None)
    path.write_text(content, encoding="utf-8")
    logger.debug("Saved snapshot to %s", path)
    return path
