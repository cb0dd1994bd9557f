"""
Undo/redo history for graph commands.

CommandHistory is the only path through which the editor mutates its graph.
``push`` applies a command and records it; ``undo`` applies the inverse of
the most recent command; ``redo`` re-applies the most recently undone one.
Pushing after an undo discards the redo branch.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from ..exceptions import GraphError, HistoryError
from .commands import Command, describe

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)


class CommandHistory:
    """Undo and redo stacks over one ConnectivityGraph.

    Args:
        graph: The graph every command is applied to
        max_depth: Maximum number of undoable entries (0 = unlimited)
        validate: Run ``graph.check_invariants()`` after every push/undo/redo
    """

    def __init__(self, graph: ConnectivityGraph, max_depth: int = 0, validate: bool = False):
        self.graph = graph
        self.max_depth = max_depth
        self.validate = validate
        self._undo: List[Command] = []
        self._redo: List[Command] = []
        self._listeners: List[Callable[[str, Command], None]] = []

    # Stack inspection

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_label(self) -> Optional[str]:
        return describe(self._undo[-1]) if self._undo else None

    @property
    def redo_label(self) -> Optional[str]:
        return describe(self._redo[-1]) if self._redo else None

    def applied(self) -> List[Command]:
        """Commands currently in effect, oldest first."""
        return list(self._undo)

    def __len__(self) -> int:
        return len(self._undo)

    def subscribe(self, listener: Callable[[str, Command], None]) -> None:
        """Register ``listener(action, command)``; action is push, undo or redo."""
        self._listeners.append(listener)

    # Operations

    def push(self, command: Command) -> None:
        """Apply a command, record it, and drop the redo branch.

        A command that fails to apply is not recorded and the graph is left
        unchanged; the GraphError propagates to the caller.
        """
        command.apply(self.graph)
        self._undo.append(command)
        self._redo.clear()
        if self.max_depth and len(self._undo) > self.max_depth:
            dropped = self._undo.pop(0)
            logger.debug("History full; dropped oldest entry '%s'", describe(dropped))
        self._after("push", command)

    def undo(self) -> bool:
        """Revert the most recent command. Returns False when there is nothing to undo."""
        if not self._undo:
            return False
        command = self._undo[-1]
        try:
            command.inverse().apply(self.graph)
        except GraphError as e:
            raise HistoryError(
                f"Undo of '{describe(command)}' failed to apply",
                context={"cause": e.message},
            ) from e
        self._undo.pop()
        self._redo.append(command)
        self._after("undo", command)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone command. Returns False when there is none."""
        if not self._redo:
            return False
        command = self._redo[-1]
        try:
            command.apply(self.graph)
        except GraphError as e:
            raise HistoryError(
                f"Redo of '{describe(command)}' failed to apply",
                context={"cause": e.message},
            ) from e
        self._redo.pop()
        self._undo.append(command)
        self._after("redo", command)
        return True

    def rebase(self, command: Command) -> None:
        """Apply a command as the new baseline and clear both stacks.

        Used when loading a document: the load itself goes through a command
        but is not something the user can undo.
        """
        command.apply(self.graph)
        self.clear()
        self._after("rebase", command)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def _after(self, action: str, command: Command) -> None:
        logger.debug(
            "%s '%s' (undo=%d, redo=%d)",
            action,
            describe(command),
            len(self._undo),
            len(self._redo),
        )
        if self.validate:
            self.graph.check_invariants()
        for listener in self._listeners:
            listener(action, command)
