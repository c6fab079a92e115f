"""Iterative search for close peers whose records match a predicate."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from .closest import FindNodeQuery
from .config import PredicateQueryConfig
from .keys import PredicateKey
from .peers import QueryPeer


def _default_node_id(result: Any) -> Any:
    node_id = getattr(result, "node_id", None)
    return node_id() if callable(node_id) else result


class PredicateQuery(FindNodeQuery):
    """A query for close peers, counting only those whose record passes ``predicate``.

    Known peers are given as :class:`PredicateKey` values. Results reported
    through ``on_success`` are records; ``node_id_of`` turns a record into its
    node id (by default its ``node_id()`` method, or the record itself).
    """

    _unresponsive_can_fail = False

    def __init__(
        self,
        config: PredicateQueryConfig,
        target_key: Any,
        known_closest_peers: Iterable[Any],
        predicate: Callable[[Any], bool],
        node_id_of: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.predicate = predicate
        self.node_id_of = node_id_of or _default_node_id
        super().__init__(config, target_key, known_closest_peers)

    def _initial_peer(self, item: Any) -> QueryPeer:
        if isinstance(item, PredicateKey):
            return QueryPeer(self._key_of(item.key), predicate_match=item.predicate_match)
        return QueryPeer(self._key_of(item))

    def on_success(self, node_id: Any, closer_peers: Iterable[Any]) -> None:
        """Deliver a result from ``node_id`` with the records it returned.

        Each record is checked against the predicate as it joins the query.
        """
        closer_peers = list(closer_peers)
        if not self._mark_succeeded(node_id, len(closer_peers)):
            return
        self._incorporate(
            [
                QueryPeer(
                    self._key_of(self.node_id_of(result)),
                    predicate_match=bool(self.predicate(result)),
                )
                for result in closer_peers
            ]
        )

    def on_failure(self, peer: Any) -> None:
        """Mark a waited-on peer as failed; unresponsive peers are left alone."""
        super().on_failure(peer)

    def next(self, now: Any) -> Any:
        """Advance the query, counting only peers that match the predicate."""
        return super().next(now)

    def into_result(self) -> list:
        """Return the closest succeeded peers that matched the predicate."""
        return super().into_result()

    def at_capacity(self) -> bool:
        """Whether the query is waiting on as many peers as it may."""
        return super().at_capacity()