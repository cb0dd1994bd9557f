"""Tests for background grab planning."""

import pytest

from circe_tools.exceptions import UnknownVertexError
from circe_tools.router import GrabRouter, RoutingWorker, Selection
from circe_tools.schematic.models import Transform


@pytest.fixture
def worker():
    with RoutingWorker(GrabRouter()) as w:
        yield w


class TestRoutingWorker:
    """Only the newest, still-valid plan is handed back."""

    def test_submit_and_collect(self, worker, corner_graph):
        ticket = worker.submit(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        assert ticket.generation == 1
        assert worker.pending is ticket

        result = worker.collect(ticket, corner_graph, timeout=10)
        assert result is not None
        assert result.routed[0].waypoints == ((7, 7), (5, 7), (5, 0))
        assert worker.pending is None

    def test_plan_runs_on_a_copy(self, worker, corner_graph, state_of):
        before = state_of(corner_graph)
        ticket = worker.submit(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        ticket.future.result(timeout=10)
        assert state_of(corner_graph) == before

    def test_newer_submit_supersedes(self, worker, corner_graph):
        first = worker.submit(corner_graph, Selection.of([2]), Transform(dx=2))
        second = worker.submit(corner_graph, Selection.of([2]), Transform(dx=3))
        assert first.cancelled
        assert second.generation == 2
        assert worker.collect(first, corner_graph, timeout=10) is None
        assert worker.collect(second, corner_graph, timeout=10) is not None

    def test_cancel(self, worker, corner_graph):
        ticket = worker.submit(corner_graph, Selection.of([2]), Transform(dy=1))
        worker.cancel()
        assert ticket.cancelled
        assert worker.pending is None
        assert worker.collect(ticket, corner_graph, timeout=10) is None

    def test_graph_changed_discards(self, worker, corner_graph):
        ticket = worker.submit(corner_graph, Selection.of([2]), Transform(dx=2, dy=2))
        ticket.future.result(timeout=10)
        corner_graph.add_vertex((20, 20))
        assert worker.collect(ticket, corner_graph, timeout=10) is None

    def test_planner_errors_propagate(self, worker, corner_graph):
        ticket = worker.submit(corner_graph, Selection.of([42]), Transform(dx=1))
        with pytest.raises(UnknownVertexError):
            worker.collect(ticket, corner_graph, timeout=10)
