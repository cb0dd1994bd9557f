"""
Reversible graph mutations.

Every change to a ConnectivityGraph is expressed as one of a closed set of
command variants. Each variant carries the exact element it adds, removes or
moves, so its inverse is computed from the command alone and never from
outside state:

- AddVertex / RemoveVertex / MoveVertex
- AddEdge / RemoveEdge
- AddDevice / RemoveDevice / MoveDevice
- AddLabel / RemoveLabel / MoveLabel
- Batch: an ordered group applied and reverted as one unit

Applying a primitive whose recorded element no longer matches the graph
raises GraphError rather than silently changing something else.

Example::

    >>> cmd = Batch.of("wire", [AddVertex(v0), AddVertex(v1), AddEdge(e0)])
    >>> cmd.apply(graph)
    >>> cmd.inverse().apply(graph)  # graph is back where it started
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, FrozenSet, Iterable, Iterator, List, Tuple, Union

from ..exceptions import GraphError
from ..schematic.models import Device, Edge, Label, Point, Vertex

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)


class CommandKind(str, Enum):
    """Variant tag of a command."""

    ADD_VERTEX = "add_vertex"
    REMOVE_VERTEX = "remove_vertex"
    MOVE_VERTEX = "move_vertex"
    ADD_EDGE = "add_edge"
    REMOVE_EDGE = "remove_edge"
    ADD_DEVICE = "add_device"
    REMOVE_DEVICE = "remove_device"
    MOVE_DEVICE = "move_device"
    ADD_LABEL = "add_label"
    REMOVE_LABEL = "remove_label"
    MOVE_LABEL = "move_label"
    BATCH = "batch"


def _mismatch(what: str, expected: object, actual: object) -> GraphError:
    return GraphError(
        f"Recorded {what} does not match the graph",
        context={"expected": expected, "actual": actual},
    )


@dataclass(frozen=True)
class AddVertex:
    vertex: Vertex
    kind: ClassVar[CommandKind] = CommandKind.ADD_VERTEX

    def apply(self, graph: ConnectivityGraph) -> None:
        graph.insert_vertex(self.vertex)

    def inverse(self) -> RemoveVertex:
        return RemoveVertex(self.vertex)


@dataclass(frozen=True)
class RemoveVertex:
    vertex: Vertex
    kind: ClassVar[CommandKind] = CommandKind.REMOVE_VERTEX

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.vertex(self.vertex.id)
        if current != self.vertex:
            raise _mismatch("vertex", self.vertex, current)
        graph.remove_vertex(self.vertex.id)

    def inverse(self) -> AddVertex:
        return AddVertex(self.vertex)


@dataclass(frozen=True)
class MoveVertex:
    vertex_id: int
    old: Point
    new: Point
    kind: ClassVar[CommandKind] = CommandKind.MOVE_VERTEX

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.vertex(self.vertex_id).position
        if current != self.old:
            raise _mismatch(f"position of vertex {self.vertex_id}", self.old, current)
        graph.move_vertex(self.vertex_id, self.new)

    def inverse(self) -> MoveVertex:
        return MoveVertex(self.vertex_id, self.new, self.old)


@dataclass(frozen=True)
class AddEdge:
    edge: Edge
    kind: ClassVar[CommandKind] = CommandKind.ADD_EDGE

    def apply(self, graph: ConnectivityGraph) -> None:
        graph.insert_edge(self.edge)

    def inverse(self) -> RemoveEdge:
        return RemoveEdge(self.edge)


@dataclass(frozen=True)
class RemoveEdge:
    edge: Edge
    kind: ClassVar[CommandKind] = CommandKind.REMOVE_EDGE

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.edge(self.edge.id)
        if current != self.edge:
            raise _mismatch("edge", self.edge, current)
        graph.remove_edge(self.edge.id)

    def inverse(self) -> AddEdge:
        return AddEdge(self.edge)


@dataclass(frozen=True)
class AddDevice:
    device: Device
    kind: ClassVar[CommandKind] = CommandKind.ADD_DEVICE

    def apply(self, graph: ConnectivityGraph) -> None:
        graph.insert_device(self.device)

    def inverse(self) -> RemoveDevice:
        return RemoveDevice(self.device)


@dataclass(frozen=True)
class RemoveDevice:
    device: Device
    kind: ClassVar[CommandKind] = CommandKind.REMOVE_DEVICE

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.device(self.device.ref)
        if current != self.device:
            raise _mismatch("device", self.device, current)
        graph.remove_device(self.device.ref)

    def inverse(self) -> AddDevice:
        return AddDevice(self.device)


@dataclass(frozen=True)
class MoveDevice:
    old: Device
    new: Device
    kind: ClassVar[CommandKind] = CommandKind.MOVE_DEVICE

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.device(self.old.ref)
        if current != self.old:
            raise _mismatch(f"device {self.old.ref}", self.old, current)
        graph.move_device(self.new.ref, self.new.position, self.new.rotation)

    def inverse(self) -> MoveDevice:
        return MoveDevice(self.new, self.old)


@dataclass(frozen=True)
class AddLabel:
    label: Label
    kind: ClassVar[CommandKind] = CommandKind.ADD_LABEL

    def apply(self, graph: ConnectivityGraph) -> None:
        graph.insert_label(self.label)

    def inverse(self) -> RemoveLabel:
        return RemoveLabel(self.label)


@dataclass(frozen=True)
class RemoveLabel:
    label: Label
    kind: ClassVar[CommandKind] = CommandKind.REMOVE_LABEL

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.label(self.label.id)
        if current != self.label:
            raise _mismatch("label", self.label, current)
        graph.remove_label(self.label.id)

    def inverse(self) -> AddLabel:
        return AddLabel(self.label)


@dataclass(frozen=True)
class MoveLabel:
    label_id: int
    old: Point
    new: Point
    kind: ClassVar[CommandKind] = CommandKind.MOVE_LABEL

    def apply(self, graph: ConnectivityGraph) -> None:
        current = graph.label(self.label_id).position
        if current != self.old:
            raise _mismatch(f"position of label {self.label_id}", self.old, current)
        graph.move_label(self.label_id, self.new)

    def inverse(self) -> MoveLabel:
        return MoveLabel(self.label_id, self.new, self.old)


Primitive = Union[
    AddVertex,
    RemoveVertex,
    MoveVertex,
    AddEdge,
    RemoveEdge,
    AddDevice,
    RemoveDevice,
    MoveDevice,
    AddLabel,
    RemoveLabel,
    MoveLabel,
]

# (start vertex, goal vertex ids) of a reconnection that could not be routed
UnroutedJob = Tuple[int, FrozenSet[int]]


@dataclass(frozen=True)
class Batch:
    """An ordered group of commands applied and reverted as a single unit.

    If any step fails, the steps already applied are reverted before the
    error propagates, so a half-applied batch is never observable.
    """

    label: str
    commands: Tuple[Command, ...] = ()
    unrouted: Tuple[UnroutedJob, ...] = field(default=(), compare=False)
    kind: ClassVar[CommandKind] = CommandKind.BATCH

    @classmethod
    def of(
        cls,
        label: str,
        commands: Iterable[Command],
        unrouted: Iterable[UnroutedJob] = (),
    ) -> Batch:
        return cls(label, tuple(commands), tuple(unrouted))

    def apply(self, graph: ConnectivityGraph) -> None:
        applied: List[Command] = []
        try:
            for command in self.commands:
                command.apply(graph)
                applied.append(command)
        except Exception:
            logger.debug("Batch '%s' failed after %d step(s); reverting", self.label, len(applied))
            for command in reversed(applied):
                command.inverse().apply(graph)
            raise

    def inverse(self) -> Batch:
        return Batch(
            f"undo {self.label}",
            tuple(c.inverse() for c in reversed(self.commands)),
            self.unrouted,
        )

    def primitives(self) -> Iterator[Primitive]:
        """Flattened forward diff."""
        for command in self.commands:
            if isinstance(command, Batch):
                yield from command.primitives()
            else:
                yield command

    def __len__(self) -> int:
        return len(self.commands)

    @property
    def is_empty(self) -> bool:
        return not self.commands


Command = Union[Primitive, Batch]


def forward_diff(command: Command) -> List[Primitive]:
    """The primitive operations a command performs, in order."""
    if isinstance(command, Batch):
        return list(command.primitives())
    return [command]


def inverse_diff(command: Command) -> List[Primitive]:
    """The primitive operations that undo a command, in order."""
    return forward_diff(command.inverse())


def describe(command: Command) -> str:
    """Short human-readable description, e.g. for an Edit menu."""
    if isinstance(command, Batch):
        return command.label
    return command.kind.value.replace("_", " ")


class BatchBuilder:
    """Collects commands for a Batch while applying them to a scratch copy.

    Builders read ids, positions and nets from ``work``, which always reflects
    the commands added so far. The source graph is never touched.

    Example::

        builder = BatchBuilder(graph)
        builder.add(AddVertex(Vertex(builder.work.next_vertex_id, (0, 0))))
        history.push(builder.build("place"))
    """

    def __init__(self, graph: ConnectivityGraph):
        self.work = graph.copy()
        self.commands: List[Command] = []

    def add(self, command: Command) -> None:
        command.apply(self.work)
        self.commands.append(command)

    def build(self, label: str, unrouted: Iterable[UnroutedJob] = ()) -> Batch:
        return Batch.of(label, self.commands, unrouted)

    def __len__(self) -> int:
        return len(self.commands)
