# discovery

This package provides the parts of a Kademlia-style peer discovery protocol that runs over UDP. It contains the encoding, the records, the messages and the lookup state machines. It does not contain a running node.

## Modules

- `discovery.rlp` handles Recursive Length Prefix encoding.
  - `encode` takes bytes, non-negative integers and nested lists.
  - `decode` returns `bytes` or `list`.
  - `encode_uint` and `decode_uint` convert integers.
  - `split_list` returns the raw encodings of the elements of a list.
  - Malformed input raises `DecoderError`, which is a `ValueError`.
- `discovery.enr` provides `Enr`, a signed node record that uses the "v4" (secp256k1) identity scheme.
  - `Enr.from_text` parses the `enr:` base64 form. `Enr.from_rlp` parses RLP bytes. Both verify the signature.
  - `Enr.build(private_key, seq, ip, udp, tcp)` creates and signs a record.
  - `encode` and `to_base64` serialise a record.
  - `node_id()` returns the 32-byte keccak256 of the public key.
  - `udp_socket()` returns `(ip, port)` or `None`.
  - Records larger than 300 bytes are rejected.
- `discovery.messages` defines the message bodies.
  - Request bodies: `Ping`, `FindNode`, `TalkRequest`, `RegisterTopic`, `TopicQuery`.
  - Response bodies: `Pong`, `Nodes`, `TalkResponse`, `Ticket`, `RegisterConfirmation`.
  - Bodies are wrapped in `Request` or `Response` together with a `RequestId` of at most 8 bytes.
  - `Response.match_request` checks whether a response answers a given request.
- `discovery.codec` converts messages to wire bytes and back.
  - `encode_message` encodes any request or response.
  - `decode_message` reads message types 1 to 6 (PING, PONG, FINDNODE, NODES, TALKREQ, TALKRESP). Any other type raises `DecoderError("Unknown RPC message type")`.
  - Decoding checks list lengths, the size of the id, the FINDNODE limits (at most 10 distances, each no greater than 256) and the length of the IP address.
  - An IPv4-mapped or IPv4-compatible IPv6 address in a PONG is returned as IPv4.
- `discovery.keys` provides `Key`, with XOR `distance` and `log2_distance` between 32-byte digests, and `PredicateKey`.
- `discovery.peers` holds the shared query states: `QueryState`, `QueryProgress`, `QueryPeerState` and `QueryPeer`.
- `discovery.closest` provides `FindNodeQuery`, which runs an iterative lookup for the closest peers.
- `discovery.predicate` provides `PredicateQuery`, which runs the same lookup but counts only peers that match a predicate.
- `discovery.config` holds the query settings, `FindNodeQueryConfig` and `PredicateQueryConfig`. Their defaults are parallelism 3, 16 results and a 10 second peer timeout.
- `discovery.query_info` provides two things:
  - `QueryInfo` builds the FINDNODE request sent to each peer.
  - `findnode_log2distance` picks the distances to ask for. It starts at the exact distance and moves outwards in both directions, so a distance of 12 gives 12, 13, 11, 14, 10, …
- `discovery.ip_vote` provides `IpVote`, which keeps a majority vote of the external address that peers report. Votes expire, and a threshold below 2 raises `ValueError`.
- `discovery.hashset_delay` provides `HashSetDelay`, a set whose keys expire.
  - `pop_expired()` removes expired keys and returns them.
  - `next_expiry()` gives the earliest deadline.

`IpVote` and `HashSetDelay` accept a `clock` callable. This lets tests control time.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Example: encoding a PING

```python
from discovery.messages import Request, RequestId, Ping
from discovery.codec import encode_message, decode_message

request = Request(RequestId(b"\x01"), Ping(enr_seq=1))
wire = encode_message(request)
assert wire.hex() == "01c20101"
assert decode_message(wire) == request
```

## Example: driving a lookup

```python
import time
from discovery.closest import FindNodeQuery
from discovery.config import FindNodeQueryConfig
from discovery.keys import Key

target = bytes(32)
known = [Key(bytes([i]) + bytes(31)) for i in range(1, 5)]
query = FindNodeQuery(FindNodeQueryConfig(), Key(target), known)

state = query.next(time.monotonic())
while not state.is_finished:
    if state.peer is not None:
        # Send a FINDNODE to state.peer here, then report the answer.
        query.on_success(state.peer, [])
    state = query.next(time.monotonic())

print(query.into_result())  # responsive peers, closest to the target first
```

When a request fails, report it with `query.on_failure(peer)`. A peer that does not answer within `peer_timeout` is marked unresponsive on a later call to `next`.

## Example: external address voting

```python
from discovery.ip_vote import IpVote

votes = IpVote(2, 10.0)
votes.insert(b"peer-a", ("203.0.113.5", 9000))
votes.insert(b"peer-b", ("203.0.113.5", 9000))
assert votes.majority() == ("203.0.113.5", 9000)
```

## What this package does not do

This package has no network service.

- It does not open sockets.
- It does not perform session handshakes or encrypt packets.
- It keeps no routing table or bucket store.
- It provides no command-line program.

Sending requests, collecting their responses and feeding them to the queries is left to the caller.