"""Recursive Length Prefix encoding and decoding.

Items are byte strings, non-negative integers, or (possibly nested) lists of
items. Decoding yields ``bytes`` for strings and ``list`` for lists; integers
are read back from their byte payload with :func:`decode_uint`.
"""

from __future__ import annotations

from typing import Union

Item = Union[bytes, list]

_SHORT_STRING = 0x80
_LONG_STRING = 0xB7
_SHORT_LIST = 0xC0
_LONG_LIST = 0xF7
_SHORT_LIMIT = 55


class DecoderError(ValueError):
    """Raised when RLP data is malformed or does not have the expected shape."""


def _uint_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _length_prefix(length: int, offset: int) -> bytes:
    if length <= _SHORT_LIMIT:
        return bytes([offset + length])
    length_bytes = _uint_bytes(length)
    return bytes([offset + _SHORT_LIMIT + len(length_bytes)]) + length_bytes


def encode_uint(value: int) -> bytes:
    """Encode a non-negative integer as a minimal big-endian RLP string."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError("RLP cannot encode negative integers")
    return encode(_uint_bytes(value))


def encode(item) -> bytes:
    """Encode bytes, a non-negative integer or a nested list of those."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        data = bytes(item)
        if len(data) == 1 and data[0] < _SHORT_STRING:
            return data
        return _length_prefix(len(data), _SHORT_STRING) + data
    if isinstance(item, int) and not isinstance(item, bool):
        return encode_uint(item)
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(element) for element in item)
        return _length_prefix(len(payload), _SHORT_LIST) + payload
    raise TypeError(f"cannot RLP-encode value of type {type(item).__name__}")


def _long_length(data: bytes, pos: int, size: int, limit: int) -> tuple[int, int]:
    start = pos + 1 + size
    if start > limit:
        raise DecoderError("RLP is too short")
    length_bytes = data[pos + 1:start]
    if length_bytes[0] == 0:
        raise DecoderError("RLP length has leading zeros")
    length = int.from_bytes(length_bytes, "big")
    if length <= _SHORT_LIMIT:
        raise DecoderError("RLP long form used for a short payload")
    return length, start


def _header(data: bytes, pos: int, limit: int) -> tuple[bool, int, int]:
    """Return (is_list, payload_start, item_end) for the item at ``pos``."""
    if pos >= limit:
        raise DecoderError("RLP is too short")
    prefix = data[pos]
    if prefix < _SHORT_STRING:
        return False, pos, pos + 1
    if prefix <= _LONG_STRING:
        is_list, start, length = False, pos + 1, prefix - _SHORT_STRING
    elif prefix < _SHORT_LIST:
        is_list = False
        length, start = _long_length(data, pos, prefix - _LONG_STRING, limit)
    elif prefix <= _LONG_LIST:
        is_list, start, length = True, pos + 1, prefix - _SHORT_LIST
    else:
        is_list = True
        length, start = _long_length(data, pos, prefix - _LONG_LIST, limit)
    end = start + length
    if end > limit:
        raise DecoderError("RLP is too short")
    if not is_list and length == 1 and data[start] < _SHORT_STRING:
        raise DecoderError("RLP single byte should be encoded as itself")
    return is_list, start, end


def _decode_item(data: bytes, pos: int, limit: int) -> tuple[Item, int]:
    is_list, start, end = _header(data, pos, limit)
    if not is_list:
        return data[start:end], end
    items = []
    cursor = start
    while cursor < end:
        item, cursor = _decode_item(data, cursor, end)
        items.append(item)
    return items, end


def decode(data) -> Item:
    """Decode a single RLP item that must span all of ``data``."""
    data = bytes(data)
    item, end = _decode_item(data, 0, len(data))
    if end != len(data):
        raise DecoderError("RLP has trailing bytes")
    return item


def decode_uint(data) -> int:
    """Interpret a decoded RLP string payload as a non-negative integer."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecoderError("expected an RLP string, found a list")
    data = bytes(data)
    if data and data[0] == 0:
        raise DecoderError("RLP integer has leading zeros")
    return int.from_bytes(data, "big")


def split_list(data) -> list[bytes]:
    """Split an encoded RLP list into the raw encodings of its elements."""
    data = bytes(data)
    is_list, start, end = _header(data, 0, len(data))
    if not is_list:
        raise DecoderError("RLP expected to be a list")
    if end != len(data):
        raise DecoderError("RLP has trailing bytes")
    elements = []
    cursor = start
    while cursor < end:
        _, _, item_end = _header(data, cursor, end)
        elements.append(data[cursor:item_end])
        cursor = item_end
    return elements