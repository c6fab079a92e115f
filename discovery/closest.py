"""Iterative search for the peers closest to a target key."""

from __future__ import annotations

import bisect
import itertools
from typing import Any, Iterable

from .config import FindNodeQueryConfig
from .keys import Key
from .peers import QueryPeer, QueryPeerState, QueryProgress, QueryState


class FindNodeQuery:
    """A query that walks towards the ``num_results`` peers closest to a target.

    Peers are held in ``closest_peers``, keyed by their XOR distance to the
    target. ``next`` hands out peers to contact, closest first, while
    ``on_success`` and ``on_failure`` report how each contacted peer answered.
    """

    # Whether ``on_failure`` may turn an unresponsive peer into a failed one.
    _unresponsive_can_fail = True

    def __init__(
        self,
        config: FindNodeQueryConfig,
        target_key: Any,
        known_closest_peers: Iterable[Any],
    ) -> None:
        self.config = config
        self.target_key = self._key_of(target_key)
        self.progress = QueryProgress.iterating()
        self.closest_peers: dict[int, QueryPeer] = {}
        self.num_waiting = 0
        self._distances: list[int] = []
        for item in itertools.islice(known_closest_peers, config.num_results):
            self._add_peer(self._initial_peer(item), replace=True)

    @staticmethod
    def _key_of(value: Any) -> Key:
        return value if isinstance(value, Key) else Key(value)

    def _initial_peer(self, item: Any) -> QueryPeer:
        return QueryPeer(self._key_of(item))

    def _add_peer(self, peer: QueryPeer, replace: bool = False) -> int:
        distance = peer.key.distance(self.target_key)
        if distance not in self.closest_peers:
            bisect.insort(self._distances, distance)
            self.closest_peers[distance] = peer
        elif replace:
            self.closest_peers[distance] = peer
        return distance

    def _peer_for(self, node_id: Any):
        return self.closest_peers.get(self._key_of(node_id).distance(self.target_key))

    def _mark_succeeded(self, node_id: Any, returned: int) -> bool:
        """Record a result from ``node_id``; False if it must be ignored."""
        if self.progress.is_finished:
            return False
        peer = self._peer_for(node_id)
        if peer is None:
            return False
        if peer.state is QueryPeerState.WAITING:
            self.num_waiting -= 1
        elif peer.state is not QueryPeerState.UNRESPONSIVE:
            return False
        peer.peers_returned += returned
        peer.state = QueryPeerState.SUCCEEDED
        peer.timeout = None
        return True

    def _incorporate(self, peers: list[QueryPeer]) -> None:
        num_closest = len(self.closest_peers)
        made_progress = False
        for peer in peers:
            distance = self._add_peer(peer)
            # Only the last reported peer decides whether progress was made.
            made_progress = (
                self._distances[0] == distance or num_closest < self.config.num_results
            )
        self.progress = self.progress.after_result(made_progress, self.config.parallelism)

    def on_success(self, node_id: Any, closer_peers: Iterable[Any]) -> None:
        """Deliver a successful result from ``node_id`` with the peers it returned.

        Has no effect if the query is finished or was not waiting on the peer.
        """
        closer_peers = list(closer_peers)
        if not self._mark_succeeded(node_id, len(closer_peers)):
            return
        self._incorporate([QueryPeer(self._key_of(peer)) for peer in closer_peers])

    def on_failure(self, peer: Any) -> None:
        """Report that the request to ``peer`` failed.

        Has no effect if the query is finished or was not waiting on the peer.
        """
        if self.progress.is_finished:
            return
        query_peer = self._peer_for(peer)
        if query_peer is None:
            return
        if query_peer.state is QueryPeerState.WAITING:
            self.num_waiting -= 1
            query_peer.state = QueryPeerState.FAILED
            query_peer.timeout = None
        elif query_peer.state is QueryPeerState.UNRESPONSIVE and self._unresponsive_can_fail:
            query_peer.state = QueryPeerState.FAILED

    def next(self, now: float) -> QueryState:
        """Advance the query at time ``now``, possibly handing out a peer to contact."""
        if self.progress.is_finished:
            return QueryState.finished()

        result_counter = 0
        at_capacity = self.at_capacity()

        for distance in self._distances:
            peer = self.closest_peers[distance]
            state = peer.state
            if state is QueryPeerState.NOT_CONTACTED:
                if at_capacity:
                    return QueryState.waiting_at_capacity()
                peer.start_waiting(now + self.config.peer_timeout)
                self.num_waiting += 1
                return QueryState.waiting(peer.key.preimage)
            if state is QueryPeerState.WAITING:
                if peer.timed_out(now):
                    self.num_waiting -= 1
                    peer.state = QueryPeerState.UNRESPONSIVE
                    peer.timeout = None
                elif at_capacity:
                    return QueryState.waiting_at_capacity()
                elif peer.predicate_match:
                    result_counter = None
            elif state is QueryPeerState.SUCCEEDED:
                if result_counter is not None and peer.predicate_match:
                    result_counter += 1
                    if result_counter >= self.config.num_results:
                        self.progress = QueryProgress.finished()
                        return QueryState.finished()

        if self.num_waiting > 0:
            return QueryState.waiting()
        self.progress = QueryProgress.finished()
        return QueryState.finished()

    def into_result(self) -> list:
        """The closest peers that answered successfully, closest first."""
        succeeded = (
            self.closest_peers[distance]
            for distance in self._distances
            if self.closest_peers[distance].state is QueryPeerState.SUCCEEDED
            and self.closest_peers[distance].predicate_match
        )
        return [peer.key.preimage for peer in itertools.islice(succeeded, self.config.num_results)]

    def at_capacity(self) -> bool:
        """Whether the permitted number of parallel requests is in use."""
        return self.progress.at_capacity(
            self.num_waiting, self.config.parallelism, self.config.num_results
        )