"""Discovery RPC requests and responses and their wire encoding."""

from __future__ import annotations

import ipaddress
import secrets
from dataclasses import dataclass
from typing import ClassVar, Union

from . import rlp
from .enr import Enr
from .rlp import DecoderError

MAX_REQUEST_ID_LENGTH = 8


def _check_uint(name: str, value: int, bits: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} out of range: {value}")
    return value


def _freeze_bytes(instance, *names: str) -> None:
    for name in names:
        object.__setattr__(instance, name, bytes(getattr(instance, name)))


def _enr_item(enr: Enr):
    return rlp.decode(enr.encode())


@dataclass(frozen=True)
class RequestId:
    """An opaque request identifier of at most eight bytes."""

    value: bytes

    def __post_init__(self) -> None:
        _freeze_bytes(self, "value")

    @classmethod
    def decode(cls, data) -> "RequestId":
        """Build an id from raw bytes, rejecting ids longer than eight bytes."""
        data = bytes(data)
        if len(data) > MAX_REQUEST_ID_LENGTH:
            raise DecoderError("Invalid ID length")
        return cls(data)

    @classmethod
    def random(cls) -> "RequestId":
        """A fresh random eight-byte id."""
        return cls(secrets.token_bytes(MAX_REQUEST_ID_LENGTH))

    def __bytes__(self) -> bytes:
        return self.value

    def __str__(self) -> str:
        return self.value.hex()


# Request bodies


@dataclass(frozen=True)
class Ping:
    """PING: announces our current record sequence number."""

    enr_seq: int
    MSG_TYPE: ClassVar[int] = 1

    def __post_init__(self) -> None:
        _check_uint("enr_seq", self.enr_seq, 64)

    def _rlp_fields(self) -> list:
        return [self.enr_seq]

    def __str__(self) -> str:
        return f"PING: enr_seq: {self.enr_seq}"


@dataclass(frozen=True)
class FindNode:
    """FINDNODE: asks for nodes at the given log2 distances."""

    distances: tuple
    MSG_TYPE: ClassVar[int] = 3

    def __post_init__(self) -> None:
        distances = tuple(self.distances)
        for distance in distances:
            _check_uint("distance", distance, 64)
        object.__setattr__(self, "distances", distances)

    def _rlp_fields(self) -> list:
        return [list(self.distances)]

    def __str__(self) -> str:
        return f"FINDNODE Request: distance: {list(self.distances)}"


@dataclass(frozen=True)
class TalkRequest:
    """TALKREQ: an application-level request for ``protocol``."""

    protocol: bytes
    request: bytes
    MSG_TYPE: ClassVar[int] = 5

    def __post_init__(self) -> None:
        _freeze_bytes(self, "protocol", "request")

    def _rlp_fields(self) -> list:
        return [self.protocol, self.request]

    def __str__(self) -> str:
        return f"TALK: protocol: {self.protocol.hex()}, request: {self.request.hex()}"


@dataclass(frozen=True)
class RegisterTopic:
    """REGTOPIC: asks to be registered under ``topic``."""

    topic: bytes
    enr: Enr
    ticket: bytes
    MSG_TYPE: ClassVar[int] = 7

    def __post_init__(self) -> None:
        _freeze_bytes(self, "topic", "ticket")

    def _rlp_fields(self) -> list:
        return [self.topic, _enr_item(self.enr), self.ticket]

    def __str__(self) -> str:
        return (
            f"RegisterTopic: topic: {self.topic.hex()}, enr: {self.enr.to_base64()}, "
            f"ticket: {self.ticket.hex()}"
        )


@dataclass(frozen=True)
class TopicQuery:
    """TOPICQUERY: asks for nodes registered under a 32-byte topic hash."""

    topic: bytes
    MSG_TYPE: ClassVar[int] = 10

    def __post_init__(self) -> None:
        _freeze_bytes(self, "topic")
        if len(self.topic) != 32:
            raise ValueError("topic hash must be 32 bytes")

    def _rlp_fields(self) -> list:
        return [self.topic]

    def __str__(self) -> str:
        return f"TOPICQUERY: topic: {list(self.topic)}"


# Response bodies


@dataclass(frozen=True)
class Pong:
    """PONG: the responder's record sequence and our address as it sees it."""

    enr_seq: int
    ip: Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
    port: int
    MSG_TYPE: ClassVar[int] = 2

    def __post_init__(self) -> None:
        _check_uint("enr_seq", self.enr_seq, 64)
        _check_uint("port", self.port, 16)
        if not isinstance(self.ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            object.__setattr__(self, "ip", ipaddress.ip_address(self.ip))

    def _rlp_fields(self) -> list:
        return [self.enr_seq, self.ip.packed, self.port]

    def __str__(self) -> str:
        return f"PONG: Enr-seq: {self.enr_seq}, Ip: {self.ip},  Port: {self.port}"


@dataclass(frozen=True)
class Nodes:
    """NODES: one of ``total`` responses carrying node records."""

    total: int
    nodes: tuple
    MSG_TYPE: ClassVar[int] = 4

    def __post_init__(self) -> None:
        _check_uint("total", self.total, 64)
        object.__setattr__(self, "nodes", tuple(self.nodes))

    def _rlp_fields(self) -> list:
        return [self.total, [_enr_item(node) for node in self.nodes]]

    def __str__(self) -> str:
        nodes = ", ".join(str(node) for node in self.nodes)
        return f"NODES: total: {self.total}, Nodes: [{nodes}]"


@dataclass(frozen=True)
class TalkResponse:
    """TALKRESP: the application-level answer to a TALKREQ."""

    response: bytes
    MSG_TYPE: ClassVar[int] = 6

    def __post_init__(self) -> None:
        _freeze_bytes(self, "response")

    def _rlp_fields(self) -> list:
        return [self.response]

    def __str__(self) -> str:
        return f"Response: Response {self.response.hex()}"


@dataclass(frozen=True)
class Ticket:
    """TICKET: a registration ticket and the time to wait before using it."""

    ticket: bytes
    wait_time: int
    MSG_TYPE: ClassVar[int] = 8

    def __post_init__(self) -> None:
        _freeze_bytes(self, "ticket")
        _check_uint("wait_time", self.wait_time, 64)

    def _rlp_fields(self) -> list:
        return [self.ticket, self.wait_time]

    def __str__(self) -> str:
        return f"TICKET: Ticket: {list(self.ticket)}, Wait time: {self.wait_time}"


@dataclass(frozen=True)
class RegisterConfirmation:
    """REGCONFIRMATION: the node was registered under ``topic``."""

    topic: bytes
    MSG_TYPE: ClassVar[int] = 9

    def __post_init__(self) -> None:
        _freeze_bytes(self, "topic")

    def _rlp_fields(self) -> list:
        return [self.topic]

    def __str__(self) -> str:
        return f"REGTOPIC: Registered: {self.topic.hex()}"


RequestBody = Union[Ping, FindNode, TalkRequest, RegisterTopic, TopicQuery]
ResponseBody = Union[Pong, Nodes, TalkResponse, Ticket, RegisterConfirmation]

_REQUEST_BODIES = (Ping, FindNode, TalkRequest, RegisterTopic, TopicQuery)
_RESPONSE_BODIES = (Pong, Nodes, TalkResponse, Ticket, RegisterConfirmation)

_MATCHING_REQUESTS = {
    Pong: (Ping,),
    Nodes: (FindNode, TopicQuery),
    TalkResponse: (TalkRequest,),
    Ticket: (RegisterTopic,),
    RegisterConfirmation: (RegisterTopic,),
}


def _encode(msg_type: int, request_id: RequestId, fields: list) -> bytes:
    return bytes([msg_type]) + rlp.encode([request_id.value, *fields])


def _as_request_id(value) -> RequestId:
    return value if isinstance(value, RequestId) else RequestId(value)


@dataclass(frozen=True)
class Request:
    """A request sent between nodes."""

    id: RequestId
    body: RequestBody

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _as_request_id(self.id))
        if not isinstance(self.body, _REQUEST_BODIES):
            raise TypeError(f"not a request body: {type(self.body).__name__}")

    def msg_type(self) -> int:
        return self.body.MSG_TYPE

    def encode(self) -> bytes:
        """The message type byte followed by the RLP list of id and fields."""
        return _encode(self.msg_type(), self.id, self.body._rlp_fields())

    def __str__(self) -> str:
        return f"Request: id: {self.id}: {self.body}"


@dataclass(frozen=True)
class Response:
    """A response to a request with the same id."""

    id: RequestId
    body: ResponseBody

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _as_request_id(self.id))
        if not isinstance(self.body, _RESPONSE_BODIES):
            raise TypeError(f"not a response body: {type(self.body).__name__}")

    def msg_type(self) -> int:
        return self.body.MSG_TYPE

    def match_request(self, req) -> bool:
        """Whether this response is a valid answer to the request body ``req``."""
        if isinstance(req, Request):
            req = req.body
        return isinstance(req, _MATCHING_REQUESTS[type(self.body)])

    def encode(self) -> bytes:
        """The message type byte followed by the RLP list of id and fields."""
        return _encode(self.msg_type(), self.id, self.body._rlp_fields())

    def __str__(self) -> str:
        return f"Response: id: {self.id}: {self.body}"


Message = Union[Request, Response]