"""Encoding and decoding of whole discovery RPC messages."""

from __future__ import annotations

import ipaddress
import logging
from typing import Union

from . import rlp
from .enr import Enr
from .messages import (
    FindNode,
    Message,
    Nodes,
    Ping,
    Pong,
    Request,
    RequestId,
    Response,
    TalkRequest,
    TalkResponse,
)
from .rlp import DecoderError

log = logging.getLogger(__name__)

MAX_FINDNODE_DISTANCES = 10
MAX_DISTANCE = 256

_EXPECTED_LENGTHS = {
    1: ("Ping Request", 2),
    2: ("Ping Response", 4),
    3: ("FindNode Request", 2),
    4: ("Nodes Response", 3),
    5: ("Talk Request", 3),
    6: ("Talk Response", 2),
}


def encode_message(message: Message) -> bytes:
    """Encode a request or response to its wire form."""
    if not isinstance(message, (Request, Response)):
        raise TypeError(f"not a message: {type(message).__name__}")
    return message.encode()


def _field_bytes(item: list, index: int, name: str) -> bytes:
    value = item[index]
    if not isinstance(value, bytes):
        raise DecoderError(f"{name} must be an RLP string")
    return value


def _uint(value, name: str, bits: int) -> int:
    number = rlp.decode_uint(value)
    if number >= 1 << bits:
        raise DecoderError(f"{name} is too big")
    return number


def _decode_ip(data: bytes) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    if len(data) == 4:
        return ipaddress.IPv4Address(data)
    if len(data) == 16:
        # IPv4-compatible and IPv4-mapped addresses are reported as IPv4.
        if data[:10] == bytes(10) and data[10:12] in (b"\x00\x00", b"\xff\xff"):
            return ipaddress.IPv4Address(data[12:])
        return ipaddress.IPv6Address(data)
    log.debug("Ping Response has incorrect byte length for IP")
    raise DecoderError("RLP has an incorrect list length")


def _decode_distances(value) -> tuple:
    if not isinstance(value, list):
        raise DecoderError("RLP expected to be a list")
    distances = tuple(_uint(element, "distance", 64) for element in value)
    if len(distances) > MAX_FINDNODE_DISTANCES:
        log.warning(
            "Rejected FindNode request asking for too many buckets %d, maximum %d",
            len(distances),
            MAX_FINDNODE_DISTANCES,
        )
        raise DecoderError("FINDNODE request too large")
    for distance in distances:
        if distance > MAX_DISTANCE:
            log.warning(
                "Rejected FindNode request asking for unknown distance %d, maximum %d",
                distance,
                MAX_DISTANCE,
            )
            raise DecoderError("FINDNODE request distance invalid")
    return distances


def _decode_nodes(value) -> tuple:
    if value == b"" or value == []:
        return ()
    if not isinstance(value, list):
        raise DecoderError("RLP expected to be a list")
    return tuple(Enr.from_rlp(rlp.encode(record)) for record in value)


def decode_message(data) -> Message:
    """Decode the wire form of a request or response.

    Raises :class:`DecoderError` for malformed data, wrong field counts,
    oversized values and unsupported message types.
    """
    data = bytes(data)
    if len(data) < 3:
        raise DecoderError("RLP is too short")

    msg_type = data[0]
    item = rlp.decode(data[1:])
    if not isinstance(item, list):
        raise DecoderError("RLP expected to be a list")
    list_len = len(item)
    if list_len < 2:
        raise DecoderError("RLP has an incorrect list length")

    request_id = RequestId.decode(_field_bytes(item, 0, "request id"))

    if msg_type not in _EXPECTED_LENGTHS:
        raise DecoderError("Unknown RPC message type")
    label, expected = _EXPECTED_LENGTHS[msg_type]
    if list_len != expected:
        log.debug(
            "%s has an invalid RLP list length. Expected %d, found %d",
            label,
            expected,
            list_len,
        )
        raise DecoderError("RLP has an incorrect list length")

    if msg_type == 1:
        return Request(request_id, Ping(enr_seq=_uint(item[1], "enr_seq", 64)))
    if msg_type == 2:
        ip = _decode_ip(_field_bytes(item, 2, "ip"))
        port = _uint(item[3], "port", 16)
        enr_seq = _uint(item[1], "enr_seq", 64)
        return Response(request_id, Pong(enr_seq=enr_seq, ip=ip, port=port))
    if msg_type == 3:
        return Request(request_id, FindNode(distances=_decode_distances(item[1])))
    if msg_type == 4:
        nodes = _decode_nodes(item[2])
        total = _uint(item[1], "total", 64)
        return Response(request_id, Nodes(total=total, nodes=nodes))
    if msg_type == 5:
        protocol = _field_bytes(item, 1, "protocol")
        request = _field_bytes(item, 2, "request")
        return Request(request_id, TalkRequest(protocol=protocol, request=request))
    response = _field_bytes(item, 1, "response")
    return Response(request_id, TalkResponse(response=response))