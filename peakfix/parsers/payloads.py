"""Decoders and encoders for the reading payloads that get corrected.

    Reading                        Fields
    -------                        ------
    Acceleration (legacy/standard) 1..3  float  x, y, z
    MagneticFieldReading           1..3  float  x, y, z
    AngularVelocityReading         1..3  float  x, y, z
    AltitudeReading                1     float  altitude
    GroundSpeedReading             1     float  groundSpeed
    GeodeticHeadingReading         1     float  northHeading

Absent fields read as 0.0.  Encoding always writes every field in id order.
"""

from __future__ import annotations

import struct

from peakfix.errors import DecodeError
from peakfix.models.core import Record
from peakfix.parsers import wire


def _decode_floats(payload: bytes, count: int) -> tuple[float, ...]:
    values = [0.0] * count
    for field_id, wire_type, value in wire.iter_fields(payload):
        if 1 <= field_id <= count:
            if wire_type != wire.FIXED32:
                raise DecodeError(f"Field {field_id} is not a float (wire type {wire_type})")
            values[field_id - 1] = wire.decode_float(value)
    return tuple(values)


def _encode_floats(values: tuple[float, ...]) -> bytes:
    return b"".join(wire.encode_float(i + 1, v) for i, v in enumerate(values))


def decode_vector(record: Record) -> tuple[float, float, float]:
    """Decode a 3-axis reading into (x, y, z)."""
    try:
        return _decode_floats(record.payload, 3)
    except DecodeError as e:
        raise DecodeError(f"Malformed {record.record_type.value} payload: {e}", record.offset) from e


def encode_vector(values: tuple[float, float, float]) -> bytes:
    return _encode_floats(tuple(values))


def decode_scalar(record: Record) -> float:
    try:
        return _decode_floats(record.payload, 1)[0]
    except DecodeError as e:
        raise DecodeError(f"Malformed {record.record_type.value} payload: {e}", record.offset) from e


def encode_scalar(value: float) -> bytes:
    return _encode_floats((value,))


def float_bits(value: float) -> bytes:
    """The float32 bit pattern of ``value``, for exact-equality comparisons."""
    return struct.pack("<f", value)
