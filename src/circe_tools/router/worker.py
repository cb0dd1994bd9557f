"""
Background grab planning with cancellation.

This module provides:
- RoutingTicket: handle for one submitted grab plan
- RoutingWorker: single-thread executor that only ever honors its newest job

Graph writes stay on the owning thread. The worker plans against a private
copy of the graph and hands back a GrabResult; the owner applies its Batch
only if the ticket is still the newest one and the graph revision has not
moved since the copy was taken.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..schematic.models import Transform
from .grab import GrabResult, GrabRouter, Selection

if TYPE_CHECKING:
    from ..schematic.graph import ConnectivityGraph

logger = logging.getLogger(__name__)


@dataclass
class RoutingTicket:
    """One submitted plan.

    Attributes:
        generation: Submission counter value when the job was queued
        revision: Graph revision the plan was computed against
        future: Resolves to the GrabResult
        cancel_event: Set when a newer gesture supersedes this one
    """

    generation: int
    revision: int
    future: Future
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def done(self) -> bool:
        return self.future.done()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
        self.future.cancel()


class RoutingWorker:
    """Runs GrabRouter.plan off the owning thread.

    Usage::

        with RoutingWorker(GrabRouter()) as worker:
            ticket = worker.submit(graph, selection, transform)
            result = worker.collect(ticket, graph)
            if result is not None:
                history.push(result.command)
    """

    def __init__(self, router: Optional[GrabRouter] = None):
        self.router = router or GrabRouter()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="circe-route")
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[RoutingTicket] = None

    @property
    def pending(self) -> Optional[RoutingTicket]:
        """The newest ticket, if it has not been collected or cancelled."""
        return self._current

    def submit(
        self, graph: ConnectivityGraph, selection: Selection, transform: Transform
    ) -> RoutingTicket:
        """Queue a plan, cancelling whatever was outstanding."""
        snapshot = graph.copy()
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            cancel_event = threading.Event()
            future = self._executor.submit(
                self.router.plan, snapshot, selection, transform, cancel_event
            )
            ticket = RoutingTicket(
                generation=self._generation,
                revision=graph.revision,
                future=future,
                cancel_event=cancel_event,
            )
            self._current = ticket
        logger.debug("Submitted routing job generation %d", ticket.generation)
        return ticket

    def cancel(self) -> None:
        """Cancel the outstanding job, if any."""
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._current is not None:
            logger.debug("Cancelling routing job generation %d", self._current.generation)
            self._current.cancel()
            self._current = None

    def is_current(self, ticket: RoutingTicket) -> bool:
        with self._lock:
            return self._current is ticket and not ticket.cancelled

    def collect(
        self,
        ticket: RoutingTicket,
        graph: ConnectivityGraph,
        timeout: Optional[float] = None,
    ) -> Optional[GrabResult]:
        """Wait for a ticket and return its result if it may still be applied.

        Returns None when the ticket was superseded or cancelled, or when the
        graph changed after the job was submitted. Errors raised by the planner
        propagate.
        """
        if not self.is_current(ticket):
            return None
        try:
            result = ticket.future.result(timeout=timeout)
        except CancelledError:
            return None
        with self._lock:
            if self._current is not ticket or ticket.cancelled:
                return None
            self._current = None
        if result.cancelled:
            return None
        if graph.revision != ticket.revision:
            logger.info(
                "Discarding routing result generation %d: graph changed (revision %d -> %d)",
                ticket.generation,
                ticket.revision,
                graph.revision,
            )
            return None
        return result

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> RoutingWorker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
