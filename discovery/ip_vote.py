"""Majority voting on our external socket address as reported by peers."""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, Hashable, Optional


class IpVote:
    """Collects (ip, port) votes from peers; each vote expires after a fixed time."""

    def __init__(
        self,
        minimum_threshold: int,
        vote_duration: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if minimum_threshold < 2:
            raise ValueError(
                "Setting enr_peer_update_min to a value less than 2 will cause "
                "issues with discovery with peers behind NAT"
            )
        self.minimum_threshold = minimum_threshold
        self.vote_duration = vote_duration
        self._clock = clock
        self._votes: dict[Hashable, tuple[Hashable, float]] = {}

    def insert(self, key: Hashable, socket: Hashable) -> None:
        """Record (or replace) the vote of peer ``key``."""
        self._votes[key] = (socket, self._clock() + self.vote_duration)

    def __len__(self) -> int:
        return len(self._votes)

    def majority(self) -> Optional[Hashable]:
        """Return the most voted socket meeting the threshold, or None."""
        now = self._clock()
        self._votes = {k: v for k, v in self._votes.items() if v[1] > now}
        counts = Counter(socket for socket, _ in self._votes.values())
        eligible = [(n, s) for s, n in counts.items() if n >= self.minimum_threshold]
        if not eligible:
            return None
        return max(eligible, key=lambda pair: pair[0])[1]