"""Peer discovery primitives: RLP, node records, RPC messages, lookup queries and IP voting."""

__version__ = "0.1.0"