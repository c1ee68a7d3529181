"""Protobuf wire-format primitives used by envelopes and payloads.

Recordings encode both the envelope and the message payloads with the
libcluon proto visitor, which writes plain protobuf wire format:

    key = (field_id << 3) | wire_type

    Wire type  Encoding              Used for
    ---------  --------              --------
    0          varint                int32 (zigzag), uint32, bool
    1          fixed64 little endian double
    2          varint length + bytes bytes, strings, nested messages
    5          fixed32 little endian float

Signed integers are zigzag-encoded (sint32 semantics).
"""

from __future__ import annotations

import struct
from typing import Iterator

from peakfix.errors import DecodeError

VARINT = 0
FIXED64 = 1
LENGTH_DELIMITED = 2
FIXED32 = 5

_FIXED_SIZES = {FIXED64: 8, FIXED32: 4}


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"varint must be non-negative, got {value}")
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: bytes, pos: int) -> tuple[int, int]:
    """Decode a varint at ``pos``; returns (value, next position)."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise DecodeError("Truncated varint", pos)
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise DecodeError("Varint too long", pos)


def zigzag_encode(value: int) -> int:
    return (value << 1) ^ (value >> 63)


def zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    """Yield (field_id, wire_type, value) for every field in a message.

    Varint values are returned as raw unsigned ints; every other wire type
    is returned as the raw bytes of its value.
    """
    pos = 0
    while pos < len(data):
        key, pos = decode_varint(data, pos)
        field_id, wire_type = key >> 3, key & 0x07
        if wire_type == VARINT:
            value, pos = decode_varint(data, pos)
        elif wire_type == LENGTH_DELIMITED:
            length, pos = decode_varint(data, pos)
            if pos + length > len(data):
                raise DecodeError(f"Field {field_id} overruns message", pos)
            value = data[pos : pos + length]
            pos += length
        elif wire_type in _FIXED_SIZES:
            size = _FIXED_SIZES[wire_type]
            if pos + size > len(data):
                raise DecodeError(f"Field {field_id} overruns message", pos)
            value = data[pos : pos + size]
            pos += size
        else:
            raise DecodeError(f"Unsupported wire type {wire_type} for field {field_id}", pos)
        yield field_id, wire_type, value


def encode_field(field_id: int, wire_type: int, value: int | bytes) -> bytes:
    """Encode one field; ``value`` takes the same form iter_fields yields."""
    key = encode_varint((field_id << 3) | wire_type)
    if wire_type == VARINT:
        return key + encode_varint(value)
    if wire_type == LENGTH_DELIMITED:
        return key + encode_varint(len(value)) + value
    return key + value


def encode_float(field_id: int, value: float) -> bytes:
    return encode_field(field_id, FIXED32, struct.pack("<f", value))


def decode_float(raw: bytes) -> float:
    return struct.unpack("<f", raw)[0]


def encode_sint32(field_id: int, value: int) -> bytes:
    return encode_field(field_id, VARINT, zigzag_encode(value) & 0xFFFFFFFF)
