"""
Command history: reversible graph mutations with undo/redo.

Example::

    from circe_tools.history import CommandHistory, Batch, AddVertex

    history = CommandHistory(graph)
    history.push(Batch.of("place", [AddVertex(vertex)]))
    history.undo()
    history.redo()
"""

from .commands import (
    AddDevice,
    AddEdge,
    AddLabel,
    AddVertex,
    Batch,
    BatchBuilder,
    Command,
    CommandKind,
    MoveDevice,
    MoveLabel,
    MoveVertex,
    RemoveDevice,
    RemoveEdge,
    RemoveLabel,
    RemoveVertex,
    describe,
    forward_diff,
    inverse_diff,
)
from .history import CommandHistory

__all__ = [
    "AddDevice",
    "AddEdge",
    "AddLabel",
    "AddVertex",
    "Batch",
    "BatchBuilder",
    "Command",
    "CommandHistory",
    "CommandKind",
    "MoveDevice",
    "MoveLabel",
    "MoveVertex",
    "RemoveDevice",
    "RemoveEdge",
    "RemoveLabel",
    "RemoveVertex",
    "describe",
    "forward_diff",
    "inverse_diff",
]
