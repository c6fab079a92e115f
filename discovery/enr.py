"""Node records with the "v4" identity scheme (secp256k1 signatures)."""

from __future__ import annotations

import base64
import binascii
import ipaddress
from dataclasses import dataclass
from typing import Optional, Union

from Crypto.Hash import keccak
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, utils

from . import rlp
from .rlp import DecoderError

MAX_ENR_SIZE = 300
TEXT_PREFIX = "enr:"
IDENTITY_SCHEME = b"v4"

_CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_ECDSA = ec.ECDSA(utils.Prehashed(hashes.SHA256()))
_MAX_SEQ = 2**64 - 1

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def _uint_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _flatten(pairs) -> list:
    return [element for pair in pairs for element in pair]


def _check_port(name: str, port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"{name} port out of range: {port}")
    return port


def _as_private_key(private_key) -> ec.EllipticCurvePrivateKey:
    if isinstance(private_key, (bytes, bytearray)):
        if len(private_key) != 32:
            raise ValueError("a secp256k1 secret must be 32 bytes")
        return ec.derive_private_key(int.from_bytes(private_key, "big"), ec.SECP256K1())
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise TypeError("expected a secp256k1 private key")
    if not isinstance(private_key.curve, ec.SECP256K1):
        raise ValueError("only secp256k1 keys are supported")
    return private_key


@dataclass(frozen=True)
class Enr:
    """A signed node record: sequence number, sorted key/value pairs and signature."""

    seq: int
    pairs: tuple
    signature: bytes

    def __hash__(self) -> int:
        return hash((self.seq, self.signature, self.node_id()))

    # Construction

    @classmethod
    def from_text(cls, text: str) -> "Enr":
        """Parse the base64 text form, with or without the ``enr:`` prefix."""
        if text.startswith(TEXT_PREFIX):
            text = text[len(TEXT_PREFIX):]
        padded = text + "=" * (-len(text) % 4)
        try:
            data = base64.b64decode(padded, altchars=b"-_", validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecoderError(f"invalid base64 record: {exc}") from exc
        return cls.from_rlp(data)

    @classmethod
    def from_rlp(cls, data) -> "Enr":
        """Decode an RLP-encoded record and verify its signature."""
        data = bytes(data)
        if len(data) > MAX_ENR_SIZE:
            raise DecoderError("enr exceeds max size")
        item = rlp.decode(data)
        if not isinstance(item, list):
            raise DecoderError("enr must be an RLP list")
        if len(item) < 2 or len(item) % 2 != 0:
            raise DecoderError("invalid enr list length")
        signature, seq_bytes, *rest = item
        if not isinstance(signature, bytes):
            raise DecoderError("enr signature must be a string")
        seq = rlp.decode_uint(seq_bytes)
        if seq > _MAX_SEQ:
            raise DecoderError("enr sequence number too large")
        pairs = []
        previous: Optional[bytes] = None
        for key, value in zip(rest[::2], rest[1::2]):
            if not isinstance(key, bytes):
                raise DecoderError("enr keys must be strings")
            if previous is not None and key <= previous:
                raise DecoderError("enr keys are unsorted or duplicated")
            previous = key
            pairs.append((key, value))
        record = cls(seq, tuple(pairs), signature)
        record._verify()
        return record

    @classmethod
    def build(cls, private_key, seq=1, ip=None, udp=None, tcp=None) -> "Enr":
        """Create and sign a record for ``private_key`` (a key object or 32-byte secret)."""
        key = _as_private_key(private_key)
        if not 0 <= seq <= _MAX_SEQ:
            raise ValueError(f"sequence number out of range: {seq}")
        entries = {
            b"id": IDENTITY_SCHEME,
            b"secp256k1": key.public_key().public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
            ),
        }
        if ip is not None:
            address = ip if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else ipaddress.ip_address(ip)
            entries[b"ip" if address.version == 4 else b"ip6"] = address.packed
        if udp is not None:
            entries[b"udp"] = _uint_bytes(_check_port("udp", udp))
        if tcp is not None:
            entries[b"tcp"] = _uint_bytes(_check_port("tcp", tcp))
        pairs = tuple(sorted(entries.items()))
        digest = _keccak256(rlp.encode([seq, *_flatten(pairs)]))
        r, s = utils.decode_dss_signature(key.sign(digest, _ECDSA))
        if s > _CURVE_ORDER // 2:
            s = _CURVE_ORDER - s
        record = cls(seq, pairs, r.to_bytes(32, "big") + s.to_bytes(32, "big"))
        if len(record.encode()) > MAX_ENR_SIZE:
            raise ValueError("enr exceeds max size")
        return record

    # Encoding

    def encode(self) -> bytes:
        """The RLP encoding of the record."""
        return rlp.encode([self.signature, self.seq, *_flatten(self.pairs)])

    def to_base64(self) -> str:
        """The text form: ``enr:`` followed by unpadded URL-safe base64."""
        text = base64.urlsafe_b64encode(self.encode()).rstrip(b"=").decode("ascii")
        return TEXT_PREFIX + text

    def __str__(self) -> str:
        return self.to_base64()

    # Accessors

    def get(self, key: bytes):
        """The decoded value stored under ``key``, or None."""
        for stored_key, value in self.pairs:
            if stored_key == key:
                return value
        return None

    def _uint(self, key: bytes) -> Optional[int]:
        value = self.get(key)
        if not isinstance(value, bytes):
            return None
        try:
            return rlp.decode_uint(value)
        except DecoderError:
            return None

    @property
    def identity_scheme(self) -> Optional[bytes]:
        value = self.get(b"id")
        return value if isinstance(value, bytes) else None

    @property
    def ip(self) -> Optional[ipaddress.IPv4Address]:
        value = self.get(b"ip")
        if isinstance(value, bytes) and len(value) == 4:
            return ipaddress.IPv4Address(value)
        return None

    @property
    def ip6(self) -> Optional[ipaddress.IPv6Address]:
        value = self.get(b"ip6")
        if isinstance(value, bytes) and len(value) == 16:
            return ipaddress.IPv6Address(value)
        return None

    @property
    def udp(self) -> Optional[int]:
        return self._uint(b"udp")

    @property
    def udp6(self) -> Optional[int]:
        return self._uint(b"udp6")

    @property
    def tcp(self) -> Optional[int]:
        return self._uint(b"tcp")

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        value = self.get(b"secp256k1")
        if not isinstance(value, bytes) or len(value) != 33:
            raise DecoderError("enr has no valid secp256k1 public key")
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), value)
        except ValueError as exc:
            raise DecoderError("invalid secp256k1 public key") from exc

    def node_id(self) -> bytes:
        """The 32-byte node id: keccak256 of the uncompressed public key."""
        point = self.public_key.public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
        )
        return _keccak256(point[1:])

    def udp_socket(self) -> Optional[tuple[IpAddress, int]]:
        """The UDP (ip, port) this node is reachable on, if advertised."""
        if self.ip is not None and self.udp is not None:
            return self.ip, self.udp
        if self.ip6 is not None and self.udp6 is not None:
            return self.ip6, self.udp6
        return None

    def _verify(self) -> None:
        if self.identity_scheme != IDENTITY_SCHEME:
            raise DecoderError("Unsupported identity scheme")
        if len(self.signature) != 64:
            raise DecoderError("Invalid signature length")
        r = int.from_bytes(self.signature[:32], "big")
        s = int.from_bytes(self.signature[32:], "big")
        digest = _keccak256(rlp.encode([self.seq, *_flatten(self.pairs)]))
        try:
            self.public_key.verify(utils.encode_dss_signature(r, s), digest, _ECDSA)
        except (InvalidSignature, ValueError) as exc:
            raise DecoderError("Invalid signature") from exc