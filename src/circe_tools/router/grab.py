"""
Grab/move rerouting.

This module provides:
- Selection: vertex ids, device references and label ids picked up by a grab
- GrabResult: the planned compound command plus per-job routing outcomes
- GrabRouter: turns a committed drag into one atomic Batch

Planning never touches the caller's graph. It runs on a copy, applying each
step as it is planned, so later routing jobs see the wires earlier jobs
created. The resulting Batch replays the same steps on the real graph.

Steps for a selection S and transform T:

1. Boundary edges are the edges with exactly one endpoint in S. A vertex
   in S that sits on the same point as a vertex outside S is a boundary
   link too: it gets a routing job but there is no edge to delete.
2. A boundary endpoint B outside S is a prune candidate when it is a plain
   wire point with exactly one boundary edge, no coincident vertex, and at
   least one other edge, and either it is not essential or it is a straight
   pass-through point (degree 2, collinear between its neighbors).
3. The goal set of every boundary edge (A in S, B outside S) is the net of B
   taken before anything is deleted, minus S.
4. T is applied to every vertex and device in S.
5. Boundary edges are deleted, then candidates that are still non-essential
   are pruned together with their remaining edges.
6. Each job runs the Pathfinder towards those of its goals that are still
   alive and not yet joined to its start, so a job made redundant by an
   earlier one is skipped. Found paths are spliced in as new wire points
   and edges. A failed job is recorded on the Batch as unrouted
   and leaves its net floating; the rest of the batch still commits.

Selected labels move with T but are never routed. A move that would drop a
selected vertex onto a vertex of a net the vertex did not already belong to
is refused with GrabCollisionError before any of the steps above run.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Set, Tuple

from ..exceptions import GrabCollisionError
from ..history.commands import (
    AddEdge,
    AddVertex,
    Batch,
    BatchBuilder,
    Command,
    MoveDevice,
    MoveLabel,
    MoveVertex,
    RemoveEdge,
    RemoveVertex,
    UnroutedJob,
)
from ..schematic.models import Edge, Point, Transform, Vertex, VertexRole
from .pathfinder import Pathfinder
from .primitives import FailureReason, RoutePath, RoutingFailure, RoutingJob

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Vertices, devices and net labels picked up by a grab."""

    vertices: FrozenSet[int] = frozenset()
    devices: FrozenSet[str] = frozenset()
    labels: FrozenSet[int] = frozenset()

    @classmethod
    def of(
        cls,
        vertex_ids: Iterable[int] = (),
        devices: Iterable[str] = (),
        labels: Iterable[int] = (),
    ) -> Selection:
        return cls(frozenset(vertex_ids), frozenset(devices), frozenset(labels))

    @property
    def is_empty(self) -> bool:
        return not (self.vertices or self.devices or self.labels)

    def resolve(self, graph: ConnectivityGraph) -> Tuple[FrozenSet[int], FrozenSet[str]]:
        """Expand to whole devices: a selected port drags its device and all its ports.

        Raises:
            UnknownVertexError / UnknownDeviceError / UnknownLabelError for
            ids not in the graph
        """
        for lid in self.labels:
            graph.label(lid)
        devices: Set[str] = set()
        for ref in self.devices:
            graph.device(ref)
            devices.add(ref)
        for vid in self.vertices:
            vertex = graph.vertex(vid)
            if vertex.is_port:
                devices.add(vertex.device)

        vertices: Set[int] = set(self.vertices)
        for ref in devices:
            vertices.update(graph.ports_of(ref))
        return frozenset(vertices), frozenset(devices)


@dataclass
class GrabResult:
    """Outcome of planning one grab."""

    command: Batch
    jobs: List[RoutingJob] = field(default_factory=list)
    routed: List[RoutePath] = field(default_factory=list)
    failures: List[RoutingFailure] = field(default_factory=list)
    pruned: List[int] = field(default_factory=list)
    skipped: List[RoutingJob] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Every job was routed or turned out to be unnecessary."""
        return not self.failures

    @property
    def cancelled(self) -> bool:
        return any(f.reason == FailureReason.CANCELLED for f in self.failures)

    @property
    def unrouted(self) -> Tuple[UnroutedJob, ...]:
        return self.command.unrouted

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "label": self.command.label,
            "steps": len(self.command),
            "jobs": [j.to_dict() for j in self.jobs],
            "routed": [r.to_dict() for r in self.routed],
            "failures": [f.to_dict() for f in self.failures],
            "pruned": list(self.pruned),
            "skipped": [j.to_dict() for j in self.skipped],
        }


def _is_pass_through(graph: ConnectivityGraph, vertex_id: int) -> bool:
    """Degree-2 wire point lying strictly between its two neighbors on one axis."""
    if graph.degree(vertex_id) != 2:
        return False
    x, y = graph.vertex(vertex_id).position
    (x1, y1), (x2, y2) = (graph.vertex(n).position for n in graph.neighbors(vertex_id))
    if x1 == x == x2:
        return min(y1, y2) < y < max(y1, y2)
    if y1 == y == y2:
        return min(x1, x2) < x < max(x1, x2)
    return False


class GrabRouter:
    """Plans grabs as single undoable Batch commands.

    Args:
        margin: Free cells around the canvas the pathfinder may use
        max_expansions: Search-node budget per routing job
        label: Label given to the produced Batch
    """

    def __init__(self, margin: int = 8, max_expansions: int = 200_000, label: str = "grab"):
        self.margin = margin
        self.max_expansions = max_expansions
        self.label = label

    def plan(
        self,
        graph: ConnectivityGraph,
        selection: Selection,
        transform: Transform,
        cancel_event: Optional[threading.Event] = None,
    ) -> GrabResult:
        """Plan a committed grab without mutating ``graph``.

        Args:
            graph: Current document graph
            selection: What is being moved
            transform: Rigid transform applied to the selection
            cancel_event: Stops routing early when set; the result is then
                marked cancelled and must be discarded

        Returns:
            GrabResult whose ``command`` reproduces the plan when pushed

        Raises:
            GrabCollisionError: If the move would merge a foreign net
        """
        selected, devices = selection.resolve(graph)
        if transform.is_identity or not (selected or selection.labels):
            return GrabResult(command=Batch.of(self.label, []))

        collisions = self._collisions(graph, selected, transform)
        if collisions:
            raise GrabCollisionError(collisions)

        boundary = self._boundary_edges(graph, selected)
        candidates = self._prune_candidates(graph, selected, boundary)

        jobs: List[RoutingJob] = []
        for edge in boundary:
            inside, outside = (edge.a, edge.b) if edge.a in selected else (edge.b, edge.a)
            goals = graph.net_of(outside) - selected
            jobs.append(RoutingJob(start=inside, goals=frozenset(goals), edge=edge.id))

        # Links by coincident position are severed by the move as well
        for vid in sorted(selected):
            for other in sorted(graph.vertices_at(graph.vertex(vid).position) - selected):
                goals = graph.net_of(other) - selected
                jobs.append(RoutingJob(start=vid, goals=frozenset(goals)))

        builder = BatchBuilder(graph)
        work = builder.work
        run = builder.add

        # Transform
        for ref in sorted(devices):
            device = work.device(ref)
            moved = device.moved_to(
                transform.apply(device.position), transform.apply_rotation(device.rotation)
            )
            if moved != device:
                run(MoveDevice(device, moved))
        for vid in sorted(selected):
            old = work.vertex(vid).position
            new = transform.apply(old)
            if new != old:
                run(MoveVertex(vid, old, new))
        for lid in sorted(selection.labels):
            old = work.label(lid).position
            new = transform.apply(old)
            if new != old:
                run(MoveLabel(lid, old, new))

        # Sever and prune
        for edge in boundary:
            run(RemoveEdge(edge))

        pruned: List[int] = []
        for vid in candidates:
            if not self._still_prunable(work, vid):
                logger.debug("Keeping vertex %d: essential after the move", vid)
                continue
            for edge in work.edges_of(vid):
                run(RemoveEdge(edge))
            run(RemoveVertex(work.vertex(vid)))
            pruned.append(vid)
        pruned_set = set(pruned)

        # Reconnect
        result = GrabResult(command=Batch.of(self.label, []), pruned=pruned)
        unrouted: List[UnroutedJob] = []
        pathfinder = Pathfinder(work, margin=self.margin, max_expansions=self.max_expansions)

        for job in jobs:
            live = frozenset(g for g in job.goals if g not in pruned_set and work.has_vertex(g))
            # Goals already joined to the start (by an earlier job) need no route
            goals = live - work.net_of(job.start)
            job = RoutingJob(start=job.start, goals=goals, edge=job.edge)
            result.jobs.append(job)

            if not goals:
                logger.debug("Job from vertex %d is already connected", job.start)
                result.skipped.append(job)
                continue

            owned: Set[int] = set(work.net_of(job.start))
            for goal in sorted(goals):
                if goal not in owned:
                    owned |= work.net_of(goal)

            path = pathfinder.find_path(job.start, goals, owned=owned, cancel_event=cancel_event)
            if isinstance(path, RoutingFailure):
                logger.info(
                    "Could not reroute vertex %d (%s); net left floating",
                    job.start,
                    path.reason.value,
                )
                result.failures.append(path)
                unrouted.append((job.start, goals))
                if path.reason == FailureReason.CANCELLED:
                    break
                continue

            for command in self._splice(work, path):
                run(command)
            result.routed.append(path)

        result.command = builder.build(self.label, unrouted)
        logger.debug(
            "Planned %s: %d step(s), %d job(s), %d routed, %d failed, %d pruned",
            self.label,
            len(builder),
            len(result.jobs),
            len(result.routed),
            len(result.failures),
            len(pruned),
        )
        return result

    def check_landing(
        self, graph: ConnectivityGraph, selection: Selection, transform: Transform
    ) -> None:
        """Refuse a move that drops selected vertices onto another net.

        A selected vertex may land on a vertex of its own net (taken before
        the move) but not on any other vertex, since coincident vertices are
        connected.

        Raises:
            GrabCollisionError: Listing every (selected, other, point) collision
        """
        selected, _ = selection.resolve(graph)
        collisions = self._collisions(graph, selected, transform)
        if collisions:
            raise GrabCollisionError(collisions)

    # ------------------------------------------------------------------
    # Planning helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _collisions(
        graph: ConnectivityGraph, selected: FrozenSet[int], transform: Transform
    ) -> List[Tuple[int, int, Point]]:
        found: List[Tuple[int, int, Point]] = []
        for vid in sorted(selected):
            point = transform.apply(graph.vertex(vid).position)
            others = graph.vertices_at(point) - selected
            if not others:
                continue
            for other in sorted(others - graph.net_of(vid)):
                found.append((vid, other, point))
        return found

    @staticmethod
    def _boundary_edges(graph: ConnectivityGraph, selected: FrozenSet[int]) -> List[Edge]:
        ids = {
            edge.id
            for vid in selected
            for edge in graph.edges_of(vid)
            if edge.other(vid) not in selected
        }
        return [graph.edge(eid) for eid in sorted(ids)]

    @staticmethod
    def _prune_candidates(
        graph: ConnectivityGraph, selected: FrozenSet[int], boundary: List[Edge]
    ) -> List[int]:
        hits = Counter(e.b if e.a in selected else e.a for e in boundary)
        candidates = []
        for vid in sorted(hits):
            vertex = graph.vertex(vid)
            if vertex.is_port or hits[vid] != 1:
                continue
            if graph.degree(vid) < 2 or len(graph.vertices_at(vertex.position)) > 1:
                continue
            if not graph.is_essential(vid) or _is_pass_through(graph, vid):
                candidates.append(vid)
        return candidates

    @staticmethod
    def _still_prunable(work: ConnectivityGraph, vertex_id: int) -> bool:
        vertex = work.vertex(vertex_id)
        if len(work.vertices_at(vertex.position)) > 1:
            return False
        return not work.is_essential(vertex_id)

    @staticmethod
    def _splice(work: ConnectivityGraph, path: RoutePath) -> List[Command]:
        """Commands that add a path's bends and wires to ``work``.

        Applied immediately to ``work`` by the caller, one at a time, so the
        ids read from ``work`` here must be allocated in order.
        """
        commands: List[Command] = []
        chain = [path.start]
        next_vertex = work.next_vertex_id
        for point in path.bend_points:
            commands.append(AddVertex(_wire_point(next_vertex, point)))
            chain.append(next_vertex)
            next_vertex += 1
        chain.append(path.goal)

        next_edge = work.next_edge_id
        for a, b in zip(chain, chain[1:]):
            commands.append(AddEdge(Edge(next_edge, a, b)))
            next_edge += 1
        return commands


def _wire_point(vertex_id: int, position: Point) -> Vertex:
    return Vertex(id=vertex_id, position=position, role=VertexRole.WIRE_POINT)
