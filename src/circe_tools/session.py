"""
Editor session: the single owner of a schematic document.

Every graph mutation goes through ``EditorSession.execute`` (or one of the
editing helpers built on it), which pushes a command onto the history. A grab
gesture is visual-only while it is being dragged; only ``commit_grab`` plans
the reroute and mutates the graph, as one undoable step.

Example:
    >>> from circe_tools.session import EditorSession
    >>>
    >>> session = EditorSession()
    >>> ref = session.place_device("R", (0, 0))
    >>> session.draw_wire((0, 3), (6, 3))
    >>>
    >>> session.begin_grab(devices=[ref])
    >>> session.drag(0, -4)
    >>> result = session.commit_grab()
    >>> print(result.failures)
    []
    >>> session.undo()
    True
"""

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from .config import Config
from .exceptions import EditorStateError
from .history import (
    Batch,
    BatchBuilder,
    Command,
    CommandHistory,
    RemoveDevice,
    RemoveEdge,
    RemoveLabel,
    RemoveVertex,
)
from .io.snapshot import Snapshot, load_snapshot, save_snapshot
from .operations import net_ops, wiring
from .operations.netlist import generate_netlist
from .router import GrabResult, GrabRouter, RoutingTicket, RoutingWorker, Selection
from .schematic.devices import DeviceLibrary
from .schematic.draw_model import DrawModel
from .schematic.graph import ConnectivityGraph
from .schematic.models import Point, Transform

logger = logging.getLogger(__name__)

__all__ = ["EditorSession", "GrabGesture"]


@dataclass
class GrabGesture:
    """An in-progress drag: what is held and how far it has moved."""

    selection: Selection
    transform: Transform = field(default_factory=Transform)

    def preview(self, graph: ConnectivityGraph) -> Dict[int, Point]:
        """Where each held vertex would be drawn if released now."""
        vertices, _ = self.selection.resolve(graph)
        return {vid: self.transform.apply(graph.vertex(vid).position) for vid in sorted(vertices)}


class EditorSession:
    """Stateful editing API over one ConnectivityGraph.

    Args:
        graph: Document to edit (default: empty)
        config: Settings for routing, history and netlist export
        library: Device library for a new empty graph
        background: Plan grabs on a worker thread (default from config)
    """

    def __init__(
        self,
        graph: Optional[ConnectivityGraph] = None,
        config: Optional[Config] = None,
        library: Optional[DeviceLibrary] = None,
        background: Optional[bool] = None,
    ):
        self.config = config or Config()
        self.graph = graph if graph is not None else ConnectivityGraph(library)
        self.history = CommandHistory(
            self.graph,
            max_depth=self.config.history.max_depth,
            validate=self.config.history.validate_invariants,
        )
        self.router = GrabRouter(
            margin=self.config.routing.margin,
            max_expansions=self.config.routing.max_expansions,
        )
        self.background = self.config.routing.background if background is None else background

        self._worker: Optional[RoutingWorker] = None
        self._ticket: Optional[RoutingTicket] = None
        self._grab: Optional[GrabGesture] = None
        self.last_grab: Optional[GrabResult] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], config: Optional[Config] = None) -> EditorSession:
        session = cls(config=config)
        session.load(path)
        return session

    # ------------------------------------------------------------------
    # Command surface
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> None:
        """Apply a command through the history. Cancels any pending routing job."""
        self._cancel_pending()
        self.history.push(command)

    def undo(self) -> bool:
        self._cancel_pending()
        return self.history.undo()

    def redo(self) -> bool:
        self._cancel_pending()
        return self.history.redo()

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self, source: Union[str, Path, Snapshot]) -> None:
        """Replace the document with a snapshot (or snapshot file).

        The snapshot is validated before anything changes; on LoadError the
        current document is kept. A successful load resets the history.
        """
        if isinstance(source, Snapshot):
            snapshot = source
            snapshot.check(self.graph.library)
        else:
            snapshot = load_snapshot(source, self.graph.library)

        self._cancel_pending()
        self._grab = None

        builder = BatchBuilder(self.graph)
        work = builder.work
        for edge in work.edges:
            builder.add(RemoveEdge(edge))
        for vertex in work.vertices:
            builder.add(RemoveVertex(vertex))
        for device in work.devices:
            builder.add(RemoveDevice(device))
        for label in work.labels:
            builder.add(RemoveLabel(label))
        clear = builder.build("clear")

        self.history.rebase(Batch.of("load", [clear, snapshot.to_command()]))
        self.graph.next_vertex_id = max(self.graph.next_vertex_id, snapshot.next_vertex_id)
        self.graph.next_edge_id = max(self.graph.next_edge_id, snapshot.next_edge_id)
        self.graph.next_label_id = max(self.graph.next_label_id, snapshot.next_label_id)

    def snapshot(self) -> Snapshot:
        return self.graph.snapshot()

    def save(self, path: Union[str, Path]) -> Path:
        return save_snapshot(self.graph.snapshot(), path)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def place_device(
        self, kind: str, position: Point, rotation: int = 0, params: Optional[str] = None
    ) -> str:
        """Place a device and return its reference."""
        batch = wiring.place_device(self.graph, kind, position, rotation, params)
        self.execute(batch)
        return batch.commands[0].device.ref

    def draw_wire(self, start: Point, end: Point, route: str = "auto") -> Batch:
        """Draw a wire. A wire that adds nothing new is not recorded."""
        batch = wiring.draw_wire(self.graph, start, end, route)
        if not batch.is_empty:
            self.execute(batch)
        return batch

    def place_label(self, position: Point, name: str) -> int:
        """Place a net label and return its id."""
        batch = wiring.place_label(self.graph, position, name)
        self.execute(batch)
        return batch.commands[0].label.id

    def delete(
        self,
        vertex_ids: Iterable[int] = (),
        edge_ids: Iterable[int] = (),
        devices: Iterable[str] = (),
        labels: Iterable[int] = (),
    ) -> Batch:
        batch = wiring.delete(self.graph, vertex_ids, edge_ids, devices, labels)
        if not batch.is_empty:
            self.execute(batch)
        return batch

    def duplicate(
        self,
        vertex_ids: Iterable[int] = (),
        devices: Iterable[str] = (),
        offset: Point = (0, 0),
        labels: Iterable[int] = (),
    ) -> Batch:
        batch = wiring.duplicate(self.graph, vertex_ids, devices, offset, labels)
        if not batch.is_empty:
            self.execute(batch)
        return batch

    # ------------------------------------------------------------------
    # Grab gesture
    # ------------------------------------------------------------------

    @property
    def grab(self) -> Optional[GrabGesture]:
        """The active gesture, if any."""
        return self._grab

    @property
    def pending(self) -> Optional[RoutingTicket]:
        """The outstanding background routing job, if any."""
        return self._ticket

    def begin_grab(
        self,
        vertex_ids: Iterable[int] = (),
        devices: Iterable[str] = (),
        pivot: Optional[Point] = None,
        labels: Iterable[int] = (),
    ) -> GrabGesture:
        """Pick up a selection. Replaces any gesture already in progress."""
        selection = Selection.of(vertex_ids, devices, labels)
        vertices, _ = selection.resolve(self.graph)
        if not vertices and not selection.labels:
            raise EditorStateError("Nothing selected to grab")

        self._cancel_pending()
        if pivot is None and vertices:
            pivot = self.graph.vertex(min(vertices)).position
        elif pivot is None:
            pivot = self.graph.label(min(selection.labels)).position
        self._grab = GrabGesture(selection, Transform(pivot=pivot))
        return self._grab

    def drag(self, dx: int, dy: int, rotation: Optional[int] = None) -> Transform:
        """Set the gesture's total offset (and rotation). Visual only."""
        gesture = self._require_grab("drag")
        current = gesture.transform
        gesture.transform = Transform(
            dx=int(dx),
            dy=int(dy),
            rotation=current.rotation if rotation is None else rotation,
            pivot=current.pivot,
        )
        return gesture.transform

    def rotate(self, quarter_turns: int = 1) -> Transform:
        """Rotate the held selection by 90 degree steps. Visual only."""
        gesture = self._require_grab("rotate")
        current = gesture.transform
        return self.drag(current.dx, current.dy, current.rotation + 90 * quarter_turns)

    def preview(self) -> Dict[int, Point]:
        return self._require_grab("preview").preview(self.graph)

    def cancel_grab(self) -> None:
        """Drop the gesture without touching the graph."""
        self._grab = None

    def commit_grab(self) -> GrabResult:
        """Release the gesture: plan the reroute and apply it as one undoable step.

        Raises:
            GrabCollisionError: If the move would merge a foreign net. The
                gesture stays active so it can be dragged elsewhere.
        """
        gesture = self._require_grab("commit")
        self.router.check_landing(self.graph, gesture.selection, gesture.transform)
        self._grab = None
        self._cancel_pending()

        result = self.router.plan(self.graph, gesture.selection, gesture.transform)
        self._apply_grab(result)
        return result

    def release(self) -> Union[GrabResult, RoutingTicket]:
        """Commit the gesture synchronously or in the background, per ``background``."""
        if self.background:
            return self.commit_grab_async()
        return self.commit_grab()

    def commit_grab_async(self) -> RoutingTicket:
        """Release the gesture and plan it on the worker thread.

        Call ``apply_pending`` to apply the result. A newer gesture, command,
        undo or redo cancels the job and its result is discarded.
        """
        gesture = self._require_grab("commit")
        self.router.check_landing(self.graph, gesture.selection, gesture.transform)
        self._grab = None
        if self._worker is None:
            self._worker = RoutingWorker(self.router)
        self._ticket = self._worker.submit(self.graph, gesture.selection, gesture.transform)
        return self._ticket

    def apply_pending(self, timeout: Optional[float] = None) -> Optional[GrabResult]:
        """Wait for the background plan and apply it if it is still current.

        On timeout the job stays pending, so it can be waited for again.
        """
        ticket = self._ticket
        if ticket is None or self._worker is None:
            return None
        try:
            result = self._worker.collect(ticket, self.graph, timeout=timeout)
        except FutureTimeoutError:
            logger.debug("Routing job generation %d still running", ticket.generation)
            raise
        except Exception:
            self._ticket = None
            self._worker.cancel()
            raise
        self._ticket = None
        if result is None:
            logger.debug("Routing job generation %d discarded", ticket.generation)
            return None
        self._apply_grab(result)
        return result

    def _apply_grab(self, result: GrabResult) -> None:
        self.last_grab = result
        if result.command.is_empty:
            return
        self.history.push(result.command)
        if result.failures:
            logger.info("Grab committed with %d unrouted connection(s)", len(result.failures))

    def _require_grab(self, action: str) -> GrabGesture:
        if self._grab is None:
            raise EditorStateError(
                f"Cannot {action}: no grab in progress",
                suggestions=["Call begin_grab() first"],
            )
        return self._grab

    def _cancel_pending(self) -> None:
        if self._ticket is not None:
            logger.debug("Cancelling outstanding routing job generation %d", self._ticket.generation)
            self._ticket = None
        if self._worker is not None:
            self._worker.cancel()

    def close(self) -> None:
        """Stop the background worker, if one was started."""
        if self._worker is not None:
            self._worker.shutdown()
            self._worker = None
        self._ticket = None

    def __enter__(self) -> EditorSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries for collaborators
    # ------------------------------------------------------------------

    def floating_nets(self) -> List[FrozenSet[int]]:
        """Nets to mark as floating for the checking collaborator."""
        return net_ops.floating_nets(self.graph, self.history.applied())

    def nets(self) -> List[net_ops.NetInfo]:
        return net_ops.net_table(
            self.graph, self.config.netlist.ground_net, self.history.applied()
        )

    def net_name_at(self, position: Point) -> Optional[str]:
        return net_ops.net_name_at(self.graph, position, self.config.netlist.ground_net)

    def draw_model(self) -> DrawModel:
        return DrawModel(self.graph, self.floating_nets())

    def netlist(self) -> str:
        return generate_netlist(
            self.graph, self.config.netlist.title, self.config.netlist.ground_net
        )
