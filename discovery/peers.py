"""States shared by the iterative peer queries.

A query is driven by repeatedly calling its ``next`` method to learn whether
to contact a new peer or keep waiting, and by reporting each peer's outcome
through ``on_success`` or ``on_failure``. Once ``next`` reports a finished
state, no more peers are handed out.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from .keys import Key


@dataclass(frozen=True)
class QueryState:
    """What a query wants after a call to ``next``.

    ``WAITING`` with a ``peer`` means that peer should now be contacted;
    ``WAITING`` without one means there is nothing new to contact yet.
    ``WAITING_AT_CAPACITY`` means the permitted parallelism is used up.
    """

    kind: QueryState.Kind
    peer: Optional[Any] = None

    class Kind(enum.Enum):
        WAITING = "waiting"
        WAITING_AT_CAPACITY = "waiting_at_capacity"
        FINISHED = "finished"

    @classmethod
    def waiting(cls, peer: Optional[Any] = None) -> "QueryState":
        return cls(cls.Kind.WAITING, peer)

    @classmethod
    def waiting_at_capacity(cls) -> "QueryState":
        return cls(cls.Kind.WAITING_AT_CAPACITY)

    @classmethod
    def finished(cls) -> "QueryState":
        return cls(cls.Kind.FINISHED)

    @property
    def is_finished(self) -> bool:
        return self.kind is QueryState.Kind.FINISHED


@dataclass(frozen=True)
class QueryProgress:
    """The stage of a query: iterating, stalled or finished.

    While iterating, ``no_progress`` counts consecutive results that brought
    no closer peer; once it reaches the parallelism the query is stalled and
    may wait on up to ``num_results`` peers at once.
    """

    stage: QueryProgress.Stage
    no_progress: int = 0

    class Stage(enum.Enum):
        ITERATING = "iterating"
        STALLED = "stalled"
        FINISHED = "finished"

    @classmethod
    def iterating(cls, no_progress: int = 0) -> "QueryProgress":
        return cls(cls.Stage.ITERATING, no_progress)

    @classmethod
    def stalled(cls) -> "QueryProgress":
        return cls(cls.Stage.STALLED)

    @classmethod
    def finished(cls) -> "QueryProgress":
        return cls(cls.Stage.FINISHED)

    @property
    def is_finished(self) -> bool:
        return self.stage is QueryProgress.Stage.FINISHED

    def after_result(self, made_progress: bool, parallelism: int) -> "QueryProgress":
        """The stage after a successful result that did or did not make progress."""
        if self.stage is QueryProgress.Stage.ITERATING:
            no_progress = 0 if made_progress else self.no_progress + 1
            if no_progress >= parallelism:
                return QueryProgress.stalled()
            return QueryProgress.iterating(no_progress)
        if self.stage is QueryProgress.Stage.STALLED:
            return QueryProgress.iterating(0) if made_progress else self
        return self

    def at_capacity(self, num_waiting: int, parallelism: int, num_results: int) -> bool:
        """Whether no further peer may be contacted while ``num_waiting`` are pending."""
        if self.stage is QueryProgress.Stage.STALLED:
            return num_waiting >= num_results
        if self.stage is QueryProgress.Stage.ITERATING:
            return num_waiting >= parallelism
        return True


class QueryPeerState(enum.Enum):
    """The state of a single peer within a query."""

    NOT_CONTACTED = "not_contacted"
    WAITING = "waiting"
    UNRESPONSIVE = "unresponsive"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass
class QueryPeer:
    """A peer known to a query, with its state and, while waiting, its deadline."""

    key: Key
    state: QueryPeerState = QueryPeerState.NOT_CONTACTED
    timeout: Optional[float] = None
    iteration: int = 1
    peers_returned: int = 0
    predicate_match: bool = True

    def start_waiting(self, deadline: float) -> None:
        """Mark the peer as contacted, with a result due by ``deadline``."""
        self.state = QueryPeerState.WAITING
        self.timeout = deadline

    def timed_out(self, now: float) -> bool:
        """Whether the peer is waiting and its deadline has passed."""
        return (
            self.state is QueryPeerState.WAITING
            and self.timeout is not None
            and now >= self.timeout
        )