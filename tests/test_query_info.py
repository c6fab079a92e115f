import pytest

from discovery.keys import Key
from discovery.messages import FindNode
from discovery.query_info import (
    DISTANCES_TO_REQUEST_PER_PEER,
    QueryInfo,
    findnode_log2distance,
)

ZERO = bytes(32)


def node_with_byte(index, value):
    raw = bytearray(32)
    raw[index] = value
    return bytes(raw)


def test_log2distance():
    destination = node_with_byte(10, 1)
    expected = [169, 170, 168, 171, 167, 172, 166, 173, 165]
    assert findnode_log2distance(ZERO, destination, len(expected)) == expected


def test_log2distance_lower():
    destination = node_with_byte(31, 8)
    expected = [4, 5, 3, 6, 2, 7, 1, 8, 0, 9, 10]
    assert findnode_log2distance(ZERO, destination, len(expected)) == expected


def test_log2distance_upper():
    destination = node_with_byte(0, 8)
    expected = [252, 253, 251, 254, 250, 255, 249, 256, 248, 247, 246]
    assert findnode_log2distance(ZERO, destination, len(expected)) == expected


def test_log2distance_same_node_is_none():
    assert findnode_log2distance(ZERO, ZERO, 3) is None


def test_log2distance_rejects_too_many_iterations():
    with pytest.raises(ValueError):
        findnode_log2distance(ZERO, node_with_byte(10, 1), 128)


@pytest.mark.parametrize("size", [1, 5, 50, 127])
def test_log2distance_has_requested_size_and_no_duplicates(size):
    distances = findnode_log2distance(ZERO, node_with_byte(20, 3), size)
    assert len(distances) == size
    assert len(set(distances)) == size
    assert all(0 <= d <= 256 for d in distances)


def test_rpc_request_uses_default_distance_count():
    info = QueryInfo(target=ZERO)
    request = info.rpc_request(node_with_byte(10, 1))
    assert isinstance(request, FindNode)
    assert request.distances == (169, 170, 168)
    assert len(request.distances) == DISTANCES_TO_REQUEST_PER_PEER


def test_rpc_request_with_custom_distance_count():
    info = QueryInfo(target=ZERO, distances_to_request=5)
    request = info.rpc_request(node_with_byte(31, 8))
    assert request.distances == (4, 5, 3, 6, 2)


def test_rpc_request_to_target_itself_fails():
    info = QueryInfo(target=ZERO)
    with pytest.raises(ValueError, match="find itself"):
        info.rpc_request(ZERO)


def test_key_of_target():
    target = node_with_byte(5, 0x42)
    info = QueryInfo(target=target)
    key = info.key()
    assert key.preimage == target
    assert key == Key(target)
    assert key.log2_distance(Key(target)) is None


def test_key_distance_to_peer():
    info = QueryInfo(target=ZERO)
    assert info.key().log2_distance(Key(node_with_byte(10, 1))) == 169


def test_new_query_has_no_untrusted_records():
    first = QueryInfo(target=ZERO)
    second = QueryInfo(target=ZERO)
    first.untrusted_enrs.append("record")
    assert second.untrusted_enrs == []
    assert first.callback is None


def test_callback_receives_results():
    received = []
    info = QueryInfo(target=ZERO, callback=received.append)
    info.callback(["a", "b"])
    assert received == [["a", "b"]]


def test_invalid_target_length_fails_on_key():
    info = QueryInfo(target=b"\x01\x02")
    with pytest.raises(ValueError):
        info.key()