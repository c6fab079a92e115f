"""Configuration of the iterative peer queries."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PARALLELISM = 3
"""The Kademlia alpha parameter: peers waited on in parallel."""

MAX_NODES_PER_BUCKET = 16
"""The Kademlia k parameter: entries in one bucket, and results per query."""

DEFAULT_PEER_TIMEOUT = 10.0
"""Seconds before a contacted peer is considered unresponsive."""


@dataclass
class _QueryConfig:
    parallelism: int = DEFAULT_PARALLELISM
    num_results: int = MAX_NODES_PER_BUCKET
    peer_timeout: float = DEFAULT_PEER_TIMEOUT


@dataclass
class FindNodeQueryConfig(_QueryConfig):
    """Settings for a query that looks for the peers closest to a target.

    ``parallelism`` bounds how many peers are waited on at once,
    ``num_results`` is how many closest peers must answer before the query
    ends, and ``peer_timeout`` is how long, in seconds, a peer may take to
    answer before it counts as unresponsive.
    """


@dataclass
class PredicateQueryConfig(_QueryConfig):
    """Settings for a query that looks for close peers matching a predicate.

    The fields mean the same as for :class:`FindNodeQueryConfig`, except that
    ``num_results`` counts only peers whose record matched the predicate.
    """