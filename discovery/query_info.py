"""What a query is looking for, and the FINDNODE requests it sends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from .enr import Enr
from .keys import Key
from .messages import FindNode

DISTANCES_TO_REQUEST_PER_PEER = 3
"""The number of distances (buckets) requested from each peer at once."""

MAX_DISTANCES_TO_REQUEST = 127
MAX_LOG2_DISTANCE = 256


@dataclass
class QueryInfo:
    """A FINDNODE query for the peers closest to ``target`` (a 32-byte node id).

    ``untrusted_enrs`` holds records learned during the query that are used to
    reach peers; ``callback`` receives the resulting records when it ends.
    """

    target: bytes
    distances_to_request: int = DISTANCES_TO_REQUEST_PER_PEER
    untrusted_enrs: list[Enr] = field(default_factory=list)
    callback: Optional[Callable[[list[Enr]], None]] = None

    def __post_init__(self) -> None:
        self.target = bytes(self.target)

    def rpc_request(self, peer: bytes) -> FindNode:
        """The FINDNODE request to send to ``peer`` for this query.

        Raises ValueError if ``peer`` is the target itself.
        """
        distances = findnode_log2distance(self.target, peer, self.distances_to_request)
        if distances is None:
            raise ValueError("Requested a node find itself")
        return FindNode(distances=distances)

    def key(self) -> Key:
        """The routing key of the target."""
        return Key(self.target)


def findnode_log2distance(target: bytes, peer: bytes, size: int) -> Optional[list[int]]:
    """The ``size`` distances to ask ``peer`` for, to find nodes near ``target``.

    Starts at the exact distance between the two and moves outwards, above
    then below: for a distance of 12 this gives 12, 13, 11, 14, 10, ...
    Returns None if ``peer`` and ``target`` are the same node.
    """
    if size > MAX_DISTANCES_TO_REQUEST:
        raise ValueError(f"Iterations cannot be greater than {MAX_DISTANCES_TO_REQUEST}")

    distance = Key(bytes(peer)).log2_distance(Key(bytes(target)))
    if distance is None:
        return None

    result = [distance]
    difference = 1
    while len(result) < size:
        if distance + difference <= MAX_LOG2_DISTANCE:
            result.append(distance + difference)
        if len(result) < size and distance - difference >= 0:
            result.append(distance - difference)
        difference += 1
    return result[:size]