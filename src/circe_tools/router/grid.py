"""
Obstacle grid for rerouting.

This module provides:
- ObstacleGrid: 2D occupancy grid over the canvas bounding box

Cells are integer canvas coordinates. A cell is blocked when a device body,
a wire that is not part of the job, or a foreign vertex occupies it. Cells
outside the grid count as blocked, which bounds every search.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AbstractSet, Iterable, List, Tuple

import numpy as np

from ..schematic.models import Point

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph


def rasterize_segment(p1: Point, p2: Point) -> List[Point]:
    """Grid cells covered by a segment, endpoints included."""
    steps = max(abs(p2[0] - p1[0]), abs(p2[1] - p1[1]))
    if steps == 0:
        return [(int(p1[0]), int(p1[1]))]
    xs = np.rint(np.linspace(p1[0], p2[0], steps + 1)).astype(np.int64)
    ys = np.rint(np.linspace(p1[1], p2[1], steps + 1)).astype(np.int64)
    return [(int(x), int(y)) for x, y in zip(xs, ys)]


class ObstacleGrid:
    """Boolean occupancy grid covering ``[min_x, max_x] x [min_y, max_y]``."""

    def __init__(self, min_x: int, min_y: int, max_x: int, max_y: int):
        if max_x < min_x or max_y < min_y:
            raise ValueError(f"Empty grid bounds ({min_x}, {min_y}) - ({max_x}, {max_y})")
        self.min_x = min_x
        self.min_y = min_y
        self.max_x = max_x
        self.max_y = max_y
        self.cols = max_x - min_x + 1
        self.rows = max_y - min_y + 1

        # Indexed [y][x] relative to the minimum corner
        self.blocked = np.zeros((self.rows, self.cols), dtype=bool)

    @classmethod
    def from_graph(
        cls,
        graph: ConnectivityGraph,
        owned: AbstractSet[int] = frozenset(),
        extra_points: Iterable[Point] = (),
        margin: int = 8,
    ) -> ObstacleGrid:
        """Build the obstacle field a routing job sees.

        Args:
            graph: Source of device bodies, wires and vertices
            owned: Vertex ids belonging to the job; their cells and the wires
                between them stay free
            extra_points: Points that must lie inside the grid
            margin: Free cells added on every side of the bounding box
        """
        library = graph.library
        points = [v.position for v in graph.vertices]
        points.extend(extra_points)
        for device in graph.devices:
            points.extend(library.body_bounds(device))
        if not points:
            points = [(0, 0)]

        xy = np.array(points, dtype=np.int64)
        lo = xy.min(axis=0) - margin
        hi = xy.max(axis=0) + margin
        grid = cls(int(lo[0]), int(lo[1]), int(hi[0]), int(hi[1]))

        for device in graph.devices:
            grid.block_cells(library.body_cells(device))

        for edge in graph.edges:
            if edge.a in owned and edge.b in owned:
                continue
            grid.block_segment(graph.vertex(edge.a).position, graph.vertex(edge.b).position)

        for vertex in graph.vertices:
            if vertex.id not in owned:
                grid.block(*vertex.position)

        # Owned cells win over anything stacked on them
        for vid in owned:
            if graph.has_vertex(vid):
                grid.unblock(*graph.vertex(vid).position)
        return grid

    def in_bounds(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def is_blocked(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return True
        return bool(self.blocked[y - self.min_y, x - self.min_x])

    def block(self, x: int, y: int) -> None:
        if self.in_bounds(x, y):
            self.blocked[y - self.min_y, x - self.min_x] = True

    def unblock(self, x: int, y: int) -> None:
        if self.in_bounds(x, y):
            self.blocked[y - self.min_y, x - self.min_x] = False

    def block_cells(self, cells: Iterable[Point]) -> None:
        for x, y in cells:
            self.block(x, y)

    def block_segment(self, p1: Point, p2: Point) -> None:
        self.block_cells(rasterize_segment(p1, p2))

    @property
    def area(self) -> int:
        return self.rows * self.cols

    @property
    def blocked_count(self) -> int:
        return int(np.count_nonzero(self.blocked))

    def free_fraction(self) -> float:
        """Share of cells a search may enter."""
        return 1.0 - self.blocked_count / self.area

    @property
    def bounds(self) -> Tuple[Point, Point]:
        return (self.min_x, self.min_y), (self.max_x, self.max_y)

    def __repr__(self) -> str:
        return (
            f"ObstacleGrid({self.cols}x{self.rows} at ({self.min_x}, {self.min_y}), "
            f"{self.blocked_count} blocked)"
        )
