"""
Custom exception hierarchy for circe-tools.

Provides consistent error handling with context, suggestions, and actionable guidance.
All exceptions include:
- Context information (vertex ids, device references, file paths, etc.)
- Suggestions for how to fix the issue
- Clear, formatted error messages

Graph contract violations (``GraphError`` and subclasses) indicate a caller
broke an invariant of the connectivity graph and are never raised after a
partial mutation: a failed call leaves the graph exactly as it was.

Example::

    from circe_tools.exceptions import VertexInUseError, LoadError

    # Contract violation: the graph refuses and stays unchanged
    raise VertexInUseError(4, edges=[7, 9])

    # Load validation with multiple errors
    errors = ["Edge 3 references unknown vertex 12", "Duplicate vertex id 5"]
    raise LoadError(errors, context={"file": "design.json"})
"""

from __future__ import annotations

import difflib
from typing import Any, Dict, List, Optional, Tuple


class CirceToolsError(Exception):
    """
    Base exception for all circe-tools errors.

    Provides consistent formatting with context and suggestions.

    Attributes:
        context: Dictionary of contextual information (vertex, edge, file, etc.)
        suggestions: List of actionable suggestions for fixing the error
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context and suggestions."""
        parts = [self.message]

        if self.context:
            parts.append("\n\nContext:")
            for key, value in self.context.items():
                parts.append(f"\n  {key}: {value}")

        if self.suggestions:
            parts.append("\n\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"\n  - {suggestion}")

        return "".join(parts)

    def __str__(self) -> str:
        return self._format_message()

    def __rich__(self):
        """Render for a Rich console: bold red message, dim context, suggestions."""
        from rich.text import Text

        text = Text()
        text.append(f"Error: {self.message}", style="bold red")
        if self.context:
            text.append("\n\nContext:")
            for key, value in self.context.items():
                text.append(f"\n  {key}: ", style="dim")
                text.append(str(value))
        if self.suggestions:
            text.append("\n\nSuggestions:", style="yellow")
            for suggestion in self.suggestions:
                text.append(f"\n  - {suggestion}")
        return text


class GraphError(CirceToolsError):
    """
    Connectivity graph contract violation.

    Raised by ``ConnectivityGraph`` when a caller asks for something the
    graph invariants forbid. These indicate a programming error in the
    caller, not a user mistake.
    """

    pass


class UnknownVertexError(GraphError):
    """A vertex id does not exist in the graph."""

    def __init__(self, vertex_id: int, operation: str = ""):
        self.vertex_id = vertex_id
        context: Dict[str, Any] = {"vertex": vertex_id}
        if operation:
            context["operation"] = operation
        super().__init__(f"Unknown vertex {vertex_id}", context=context)


class UnknownEdgeError(GraphError):
    """An edge id does not exist in the graph."""

    def __init__(self, edge_id: int, operation: str = ""):
        self.edge_id = edge_id
        context: Dict[str, Any] = {"edge": edge_id}
        if operation:
            context["operation"] = operation
        super().__init__(f"Unknown edge {edge_id}", context=context)


class UnknownDeviceError(GraphError):
    """A device reference does not exist in the graph."""

    def __init__(self, ref: str, operation: str = ""):
        self.ref = ref
        context: Dict[str, Any] = {"device": ref}
        if operation:
            context["operation"] = operation
        super().__init__(f"Unknown device '{ref}'", context=context)


class UnknownDeviceKindError(GraphError):
    """
    A device kind is not in the device library.

    Example::

        raise UnknownDeviceKindError("PMOSS", ["C", "GND", "NMOS", "PMOS"])
    """

    def __init__(self, kind: str, available: List[str]):
        self.kind = kind
        self.available = available
        self.matches = difflib.get_close_matches(kind.upper(), available, n=3)
        suggestions = []
        if self.matches:
            suggestions.append(f"Did you mean: {', '.join(self.matches)}?")
        suggestions.append(f"Available kinds: {', '.join(available)}")
        super().__init__(
            f"Device kind '{kind}' not found",
            context={"kind": kind},
            suggestions=suggestions,
        )


class UnknownLabelError(GraphError):
    """A net label id does not exist in the graph."""

    def __init__(self, label_id: int, operation: str = ""):
        self.label_id = label_id
        context: Dict[str, Any] = {"label": label_id}
        if operation:
            context["operation"] = operation
        super().__init__(f"Unknown label {label_id}", context=context)


class DuplicateVertexError(GraphError):
    """A vertex with the same id is already present."""

    def __init__(self, vertex_id: int):
        self.vertex_id = vertex_id
        super().__init__(
            f"Vertex {vertex_id} already exists",
            context={"vertex": vertex_id},
            suggestions=["Vertex ids are never reused; allocate a fresh id"],
        )


class DuplicateEdgeError(GraphError):
    """
    An edge between the same unordered vertex pair already exists.

    Example::

        raise DuplicateEdgeError(3, 8, existing=12)
    """

    def __init__(self, a: int, b: int, existing: Optional[int] = None):
        self.a = a
        self.b = b
        self.existing = existing
        context: Dict[str, Any] = {"endpoints": (a, b)}
        if existing is not None:
            context["existing_edge"] = existing
        super().__init__(f"Edge between {a} and {b} already exists", context=context)


class DuplicateDeviceError(GraphError):
    """A device with the same reference is already present."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Device '{ref}' already exists", context={"device": ref})


class DuplicateLabelError(GraphError):
    """A net label with the same id is already present."""

    def __init__(self, label_id: int):
        self.label_id = label_id
        super().__init__(f"Label {label_id} already exists", context={"label": label_id})


class SelfLoopError(GraphError):
    """An edge would connect a vertex to itself."""

    def __init__(self, vertex_id: int):
        self.vertex_id = vertex_id
        super().__init__(
            f"Edge would connect vertex {vertex_id} to itself",
            context={"vertex": vertex_id},
        )


class VertexInUseError(GraphError):
    """
    A vertex cannot be removed while edges still reference it.

    Removal is never cascaded: callers remove incident edges first so that
    every history diff names each removed element explicitly.
    """

    def __init__(self, vertex_id: int, edges: List[int]):
        self.vertex_id = vertex_id
        self.edges = edges
        super().__init__(
            f"Vertex {vertex_id} is still referenced by {len(edges)} edge(s)",
            context={"vertex": vertex_id, "edges": edges},
            suggestions=["Remove the incident edges before removing the vertex"],
        )


class DeviceInUseError(GraphError):
    """A device cannot be removed while its port vertices exist."""

    def __init__(self, ref: str, ports: List[int]):
        self.ref = ref
        self.ports = ports
        super().__init__(
            f"Device '{ref}' still owns {len(ports)} port vertex(es)",
            context={"device": ref, "ports": ports},
            suggestions=["Remove the port vertices before removing the device"],
        )


class LoadError(CirceToolsError):
    """
    A persisted snapshot failed structural validation.

    Collects all problems instead of failing on the first one. Raised before
    any graph state is constructed, so the caller can keep its previous
    document.

    Example::

        errors = [
            "Edge 3 references unknown vertex 12",
            "Duplicate vertex id 5",
        ]
        raise LoadError(errors, context={"file": "design.yaml"})

    Attributes:
        errors: List of individual validation error messages
    """

    def __init__(
        self,
        errors: List[str],
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.errors = errors
        message = f"Snapshot rejected with {len(errors)} error(s):\n"
        message += "\n".join(f"  {i + 1}. {e}" for i, e in enumerate(errors))
        super().__init__(message, context, suggestions)


class HistoryError(CirceToolsError):
    """
    A recorded command failed to apply cleanly.

    This means the graph no longer matches what the command's diff expects,
    which can only happen after an earlier invariant breach. It is fatal to
    the undo/redo that hit it.
    """

    pass


class EditorStateError(CirceToolsError):
    """
    An editor operation was requested in the wrong interaction state.

    Example::

        raise EditorStateError(
            "No grab in progress",
            suggestions=["Call begin_grab() before commit_grab()"],
        )
    """

    pass


class GrabCollisionError(EditorStateError):
    """
    A grab would drop selected vertices onto vertices of another net.

    Coincident vertices are connected, so committing such a move would
    merge nets the grab never touched. The move is refused and
    the gesture stays active.

    Attributes:
        collisions: (selected vertex, unselected vertex, landing point) triples
    """

    def __init__(self, collisions: List[Tuple[int, int, Tuple[int, int]]]):
        self.collisions = collisions
        shown = ", ".join(f"{v} onto {o} at {p}" for v, o, p in collisions[:5])
        super().__init__(
            f"Grab would land {len(collisions)} vertex(es) on vertices of other nets",
            context={"collisions": shown},
            suggestions=[
                "Drag the selection to a free position",
                "Draw a wire to connect the nets instead",
            ],
        )


__all__ = [
    "CirceToolsError",
    "GraphError",
    "UnknownVertexError",
    "UnknownEdgeError",
    "UnknownDeviceError",
    "UnknownDeviceKindError",
    "UnknownLabelError",
    "DuplicateVertexError",
    "DuplicateEdgeError",
    "DuplicateDeviceError",
    "DuplicateLabelError",
    "SelfLoopError",
    "VertexInUseError",
    "DeviceInUseError",
    "LoadError",
    "HistoryError",
    "EditorStateError",
    "GrabCollisionError",
]
