import ipaddress
import secrets

import pytest

from discovery import rlp
from discovery.codec import decode_message, encode_message
from discovery.enr import Enr
from discovery.messages import (
    FindNode,
    Nodes,
    Ping,
    Pong,
    Request,
    RequestId,
    Response,
    TalkRequest,
    TalkResponse,
)
from discovery.rlp import DecoderError

ENR_SINGLE = (
    "-HW4QCjfjuCfSmIJHxqLYfGKrSz-Pq3G81DVJwd_muvFYJiIOkf0bGtJu7kZVCOPnhSTMneyvR4MRbF3G5TNB4wy2ssB"
    "gmlkgnY0iXNlY3AyNTZrMaEDymNMrg1JrLQB2KTGtv6MVbcNEVv0AHacwUAPMljNMTg"
)
ENR_ONE = (
    "enr:-HW4QBzimRxkmT18hMKaAL3IcZF1UcfTMPyi3Q1pxwZZbcZVRI8DC5infUAB_UauARLOJtYTxaagKoGmIjzQxO2qUygB"
    "gmlkgnY0iXNlY3AyNTZrMaEDymNMrg1JrLQB2KTGtv6MVbcNEVv0AHacwUAPMljNMTg"
)
ENR_TWO = (
    "enr:-HW4QNfxw543Ypf4HXKXdYxkyzfcxcO-6p9X986WldfVpnVTQX1xlTnWrktEWUbeTZnmgOuAY_KUhbVV1Ft98WoYUBMB"
    "gmlkgnY0iXNlY3AyNTZrMaEDDiy3QkHAxPyOgWbxp5oF1bDdlYE6dLCUUp8xfVw50jU"
)

NODES_SINGLE_HEX = (
    "04f87b0101f877f875b84028df8ee09f4a62091f1a8b61f18aad2cfe3eadc6f350d527077f9aebc56098883a47f4"
    "6c6b49bbb91954238f9e14933277b2bd1e0c45b1771b94cd078c32dacb0182696482763489736563703235366b31"
    "a103ca634cae0d49acb401d8a4c6b6fe8c55b70d115bf400769cc1400f3258cd3138"
)
NODES_MULTIPLE_HEX = (
    "04f8f20101f8eef875b8401ce2991c64993d7c84c29a00bdc871917551c7d330fca2dd0d69c706596dc655448f03"
    "0b98a77d4001fd46ae0112ce26d613c5a6a02a81a6223cd0c4edaa53280182696482763489736563703235366b31"
    "a103ca634cae0d49acb401d8a4c6b6fe8c55b70d115bf400769cc1400f3258cd3138f875b840d7f1c39e376297f8"
    "1d7297758c64cb37dcc5c3beea9f57f7ce9695d7d5a67553417d719539d6ae4b445946de4d99e680eb8063f29485"
    "b555d45b7df16a1850130182696482763489736563703235366b31a1030e2cb74241c0c4fc8e8166f1a79a05d5b0"
    "dd95813a74b094529f317d5c39d235"
)

ID = RequestId(b"\x01")


def test_ref_encode_request_ping():
    message = Request(ID, Ping(enr_seq=1))
    assert encode_message(message) == bytes.fromhex("01c20101")


def test_ref_encode_request_findnode():
    message = Request(ID, FindNode(distances=[256]))
    assert encode_message(message) == bytes.fromhex("03c501c3820100")


def test_ref_encode_response_ping():
    message = Response(ID, Pong(enr_seq=1, ip=ipaddress.ip_address("127.0.0.1"), port=5000))
    assert encode_message(message) == bytes.fromhex("02ca0101847f000001821388")


def test_ref_encode_response_nodes_empty():
    message = Response(ID, Nodes(total=1, nodes=[]))
    assert encode_message(message) == bytes.fromhex("04c30101c0")


def test_ref_encode_response_nodes():
    enr = Enr.from_text(ENR_SINGLE)
    message = Response(ID, Nodes(total=1, nodes=[enr]))
    assert encode_message(message) == bytes.fromhex(NODES_SINGLE_HEX)


def test_ref_encode_response_nodes_multiple():
    nodes = [Enr.from_text(ENR_ONE), Enr.from_text(ENR_TWO)]
    message = Response(ID, Nodes(total=1, nodes=nodes))
    assert encode_message(message) == bytes.fromhex(NODES_MULTIPLE_HEX)


def test_ref_decode_response_nodes_multiple():
    decoded = decode_message(bytes.fromhex(NODES_MULTIPLE_HEX))
    assert isinstance(decoded, Response)
    assert isinstance(decoded.body, Nodes)
    assert decoded.body.total == 1
    assert decoded.body.nodes[0] == Enr.from_text(ENR_ONE)
    assert decoded.body.nodes[1] == Enr.from_text(ENR_TWO)


def test_encode_decode_ping_request():
    message = Request(ID, Ping(enr_seq=15))
    assert decode_message(encode_message(message)) == message


def test_encode_decode_ping_response():
    message = Response(ID, Pong(enr_seq=15, ip=ipaddress.ip_address("127.0.0.1"), port=80))
    assert decode_message(encode_message(message)) == message


def test_encode_decode_find_node_request():
    message = Request(ID, FindNode(distances=[12]))
    assert decode_message(encode_message(message)) == message


def test_encode_decode_nodes_response():
    private_key = secrets.token_bytes(32)
    enr1 = Enr.build(private_key, ip="127.0.0.1", udp=500)
    enr2 = Enr.build(private_key, ip="10.0.0.1", tcp=8080)
    enr3 = Enr.build(private_key, ip="10.4.5.6")
    message = Response(ID, Nodes(total=1, nodes=[enr1, enr2, enr3]))
    assert decode_message(encode_message(message)) == message


def test_encode_decode_talk_request():
    message = Request(ID, TalkRequest(protocol=bytes([17]) * 32, request=b"\x01\x02\x03"))
    assert decode_message(encode_message(message)) == message


def test_encode_decode_talk_response():
    message = Response(ID, TalkResponse(response=b"\x04\x05"))
    assert decode_message(encode_message(message)) == message


def test_decode_ipv4_mapped_address_becomes_ipv4():
    mapped = ipaddress.IPv6Address("::ffff:127.0.0.1").packed
    data = b"\x02" + rlp.encode([b"\x01", 1, mapped, 80])
    decoded = decode_message(data)
    assert decoded.body.ip == ipaddress.IPv4Address("127.0.0.1")


def test_decode_ipv6_address_kept():
    message = Response(ID, Pong(enr_seq=3, ip=ipaddress.ip_address("2001:db8::1"), port=9000))
    decoded = decode_message(encode_message(message))
    assert decoded.body.ip == ipaddress.IPv6Address("2001:db8::1")


def test_decode_invalid_ip_length():
    data = b"\x02" + rlp.encode([b"\x01", 1, b"\x01\x02\x03", 80])
    with pytest.raises(DecoderError):
        decode_message(data)


def test_decode_too_short():
    with pytest.raises(DecoderError):
        decode_message(b"\x01\xc1")


def test_decode_unknown_type():
    data = b"\x07" + rlp.encode([b"\x01", b"\x02"])
    with pytest.raises(DecoderError, match="Unknown RPC message type"):
        decode_message(data)


def test_decode_wrong_list_length():
    data = b"\x01" + rlp.encode([b"\x01", 1, 2])
    with pytest.raises(DecoderError):
        decode_message(data)


def test_decode_list_too_short():
    data = b"\x01" + rlp.encode([b"\x01"])
    with pytest.raises(DecoderError):
        decode_message(data)


def test_decode_request_id_too_long():
    data = b"\x01" + rlp.encode([bytes(9), 1])
    with pytest.raises(DecoderError, match="Invalid ID length"):
        decode_message(data)


def test_decode_findnode_too_many_distances():
    data = b"\x03" + rlp.encode([b"\x01", list(range(1, 12))])
    with pytest.raises(DecoderError, match="FINDNODE request too large"):
        decode_message(data)


def test_decode_findnode_distance_invalid():
    data = b"\x03" + rlp.encode([b"\x01", [257]])
    with pytest.raises(DecoderError, match="FINDNODE request distance invalid"):
        decode_message(data)


def test_decode_port_too_big():
    data = b"\x02" + rlp.encode([b"\x01", 1, bytes(4), 70000])
    with pytest.raises(DecoderError):
        decode_message(data)


def test_encode_message_rejects_non_message():
    with pytest.raises(TypeError):
        encode_message(Ping(enr_seq=1))