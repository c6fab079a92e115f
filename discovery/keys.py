"""Routing keys with XOR distance over 256-bit identifiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

KEY_LENGTH = 32


class Key:
    """A routing key: a preimage (usually a node id) and its 32-byte digest.

    Distances are computed between digests. When no digest is given the
    preimage itself must be 32 bytes and is used as the digest.
    """

    __slots__ = ("preimage", "digest")

    def __init__(self, preimage: Any, digest: Optional[bytes] = None) -> None:
        if digest is None:
            if not isinstance(preimage, (bytes, bytearray, memoryview)):
                raise TypeError("a digest is required for non-bytes preimages")
            digest = preimage
        digest = bytes(digest)
        if len(digest) != KEY_LENGTH:
            raise ValueError(f"key digest must be {KEY_LENGTH} bytes, got {len(digest)}")
        self.preimage = bytes(preimage) if isinstance(preimage, (bytearray, memoryview)) else preimage
        self.digest = digest

    def _as_int(self) -> int:
        return int.from_bytes(self.digest, "big")

    def distance(self, other: "Key") -> int:
        """The XOR distance between the two digests, as an integer."""
        return self._as_int() ^ other._as_int()

    def log2_distance(self, other: "Key") -> Optional[int]:
        """The bucket index (1..256) of ``other``, or None if the keys are equal."""
        distance = self.distance(other)
        return distance.bit_length() or None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return self.digest == other.digest

    def __hash__(self) -> int:
        return hash(self.digest)

    def __repr__(self) -> str:
        return f"Key({self.digest.hex()})"


@dataclass(frozen=True)
class PredicateKey:
    """A key paired with whether its record matched a query predicate."""

    key: Key
    predicate_match: bool