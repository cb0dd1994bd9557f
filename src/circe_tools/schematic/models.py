"""
Schematic Element Models

Vertex, Edge, Device, Label and Transform value types.

All positions are integer grid coordinates. Elements are frozen dataclasses:
the graph replaces an element instead of mutating it, which lets history
commands carry the exact element they added or removed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

Point = Tuple[int, int]

# Rotation steps in degrees
VALID_ROTATIONS = (0, 90, 180, 270)


class VertexRole(str, Enum):
    """Role a vertex plays in the schematic."""

    PORT = "port"
    WIRE_POINT = "wire-point"


def normalize_rotation(rotation: int) -> int:
    """Normalize a rotation in degrees to one of 0, 90, 180, 270."""
    rot = int(rotation) % 360
    if rot not in VALID_ROTATIONS:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {rotation}")
    return rot


def rotate_point(point: Point, rotation: int, pivot: Point = (0, 0)) -> Point:
    """Rotate a grid point counter-clockwise about a pivot in 90 degree steps."""
    rot = normalize_rotation(rotation)
    x = point[0] - pivot[0]
    y = point[1] - pivot[1]
    if rot == 90:
        x, y = -y, x
    elif rot == 180:
        x, y = -x, -y
    elif rot == 270:
        x, y = y, -x
    return (x + pivot[0], y + pivot[1])


def manhattan(p1: Point, p2: Point) -> int:
    """Manhattan distance between two grid points."""
    return abs(p1[0] - p2[0]) + abs(p1[1] - p2[1])


@dataclass(frozen=True)
class Vertex:
    """A point of connectivity: wire endpoint, bend, or device port."""

    id: int
    position: Point
    role: VertexRole = VertexRole.WIRE_POINT
    device: Optional[str] = None  # Owning device reference (ports only)
    port: Optional[str] = None  # Port name on the owning device

    @property
    def is_port(self) -> bool:
        return self.role is VertexRole.PORT

    def moved_to(self, position: Point) -> Vertex:
        """Return a copy of this vertex at a new position."""
        return replace(self, position=(int(position[0]), int(position[1])))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "position": [self.position[0], self.position[1]],
            "role": self.role.value,
        }
        if self.device is not None:
            data["device"] = self.device
        if self.port is not None:
            data["port"] = self.port
        return data


@dataclass(frozen=True)
class Edge:
    """An undirected wire segment between two vertices."""

    id: int
    a: int
    b: int

    @property
    def key(self) -> frozenset:
        """Unordered endpoint pair."""
        return frozenset((self.a, self.b))

    def other(self, vertex_id: int) -> int:
        """Return the endpoint opposite to ``vertex_id``."""
        if vertex_id == self.a:
            return self.b
        if vertex_id == self.b:
            return self.a
        raise ValueError(f"Vertex {vertex_id} is not an endpoint of edge {self.id}")

    def touches(self, vertex_id: int) -> bool:
        return vertex_id == self.a or vertex_id == self.b

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "a": self.a, "b": self.b}


@dataclass(frozen=True)
class Device:
    """A placed device body. Its ports are separate PORT vertices."""

    ref: str
    kind: str
    position: Point
    rotation: int = 0
    params: str = ""

    def moved_to(self, position: Point, rotation: Optional[int] = None) -> Device:
        """Return a copy of this device at a new position and rotation."""
        rot = self.rotation if rotation is None else normalize_rotation(rotation)
        return replace(self, position=(int(position[0]), int(position[1])), rotation=rot)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "ref": self.ref,
            "kind": self.kind,
            "position": [self.position[0], self.position[1]],
            "rotation": self.rotation,
            "params": self.params,
        }


@dataclass(frozen=True)
class Transform:
    """Rigid grid transform: rotate about ``pivot``, then translate.

    Translation is the baseline transform of a grab; rotation is limited to
    90 degree steps so that grid points stay on the grid.
    """

    dx: int = 0
    dy: int = 0
    rotation: int = 0
    pivot: Point = (0, 0)

    def __post_init__(self):
        object.__setattr__(self, "rotation", normalize_rotation(self.rotation))

    @property
    def is_identity(self) -> bool:
        return self.dx == 0 and self.dy == 0 and self.rotation == 0

    def apply(self, point: Point) -> Point:
        """Apply the transform to a grid point."""
        x, y = rotate_point(point, self.rotation, self.pivot)
        return (x + self.dx, y + self.dy)

    def apply_rotation(self, rotation: int) -> int:
        """Compose a device rotation with this transform's rotation."""
        return normalize_rotation(rotation + self.rotation)

    def then(self, dx: int = 0, dy: int = 0) -> Transform:
        """Return this transform with an extra translation."""
        return replace(self, dx=self.dx + dx, dy=self.dy + dy)


@dataclass(frozen=True)
class Label:
    """A net label: a name placed on a grid point.

    A label does not connect anything. It names whichever net touches its
    point (a vertex there, or a wire passing over it).
    """

    id: int
    position: Point
    name: str

    def moved_to(self, position: Point) -> Label:
        """Return a copy of this label at a new position."""
        return replace(self, position=(int(position[0]), int(position[1])))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "position": [self.position[0], self.position[1]], "name": self.name}


def label_name(name: str) -> str:
    """Check a net label name: non-empty once stripped, no inner whitespace.

    Returns:
        The stripped name

    Raises:
        ValueError: For an unusable name
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Label name must be a non-empty string, got {name!r}")
    name = name.strip()
    if len(name.split()) > 1:
        raise ValueError(f"Label name {name!r} must not contain whitespace")
    return name
