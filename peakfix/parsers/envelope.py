"""Reader and encoder for libcluon envelope frames (.rec recordings).

A recording is a plain sequence of frames with no file header:

    Offset  Size   Description
    ------  ----   -----------
    0       2      Magic bytes: 0x0D 0xA4
    2       3      Body length, 24-bit little endian
    5       N      Envelope body (protobuf wire format)

Envelope body fields:

    Id  Name             Type
    --  ----             ----
    1   dataType         int32 (zigzag)
    2   serializedData   bytes (message payload)
    3   sent             TimeStamp
    4   received         TimeStamp
    5   sampleTimeStamp  TimeStamp (used as the record timestamp)
    6   senderStamp      uint32

TimeStamp is {1: seconds int32, 2: microseconds int32}.
"""

from __future__ import annotations

from typing import BinaryIO, Iterator

from peakfix.errors import DecodeError
from peakfix.harmonize.calibration import Corrections
from peakfix.models.core import Record
from peakfix.parsers import wire

MAGIC = b"\x0d\xa4"
HEADER_SIZE = 5
MAX_BODY_SIZE = 0xFFFFFF

FIELD_DATA_TYPE = 1
FIELD_SERIALIZED_DATA = 2
FIELD_SAMPLE_TIME_STAMP = 5


def _decode_timestamp(raw: bytes) -> int:
    """Decode a TimeStamp message into microseconds."""
    seconds = 0
    microseconds = 0
    for field_id, wire_type, value in wire.iter_fields(raw):
        if wire_type != wire.VARINT:
            continue
        if field_id == 1:
            seconds = wire.zigzag_decode(value)
        elif field_id == 2:
            microseconds = wire.zigzag_decode(value)
    return seconds * 1_000_000 + microseconds


def encode_timestamp(microseconds: int) -> bytes:
    seconds, micros = divmod(microseconds, 1_000_000)
    return wire.encode_sint32(1, seconds) + wire.encode_sint32(2, micros)


def _decode_body(body: bytes, offset: int) -> tuple[int, bytes, int]:
    data_type = 0
    payload = b""
    timestamp = 0
    try:
        for field_id, wire_type, value in wire.iter_fields(body):
            if field_id == FIELD_DATA_TYPE and wire_type == wire.VARINT:
                data_type = wire.zigzag_decode(value)
            elif field_id == FIELD_SERIALIZED_DATA and wire_type == wire.LENGTH_DELIMITED:
                payload = value
            elif field_id == FIELD_SAMPLE_TIME_STAMP and wire_type == wire.LENGTH_DELIMITED:
                timestamp = _decode_timestamp(value)
    except DecodeError as e:
        raise DecodeError(f"Malformed envelope body: {e}", offset) from e
    return data_type, payload, timestamp


def read_frame(stream: BinaryIO) -> bytes | None:
    """Read one raw frame; None at a clean end of stream."""
    offset = stream.tell()
    header = stream.read(HEADER_SIZE)
    if not header:
        return None
    if len(header) < HEADER_SIZE:
        raise DecodeError(f"Truncated frame header ({len(header)} of {HEADER_SIZE} bytes)", offset)
    if header[:2] != MAGIC:
        raise DecodeError(f"Bad frame magic {header[:2].hex()}", offset)
    length = int.from_bytes(header[2:5], "little")
    body = stream.read(length)
    if len(body) < length:
        raise DecodeError(f"Truncated frame body ({len(body)} of {length} bytes)", offset)
    return header + body


def decode_next_record(stream: BinaryIO, corrections: Corrections) -> Record | None:
    """Read and decode the next record; None at a clean end of stream."""
    offset = stream.tell()
    frame = read_frame(stream)
    if frame is None:
        return None
    data_type, payload, timestamp = _decode_body(frame[HEADER_SIZE:], offset)
    return Record(
        data_type=data_type,
        record_type=corrections.record_type(data_type),
        timestamp=timestamp,
        payload=payload,
        frame=frame,
        offset=offset,
    )


def iter_records(stream: BinaryIO, corrections: Corrections) -> Iterator[Record]:
    """Yield every record of a stream in on-disk order."""
    while True:
        record = decode_next_record(stream, corrections)
        if record is None:
            return
        yield record


def _frame(body: bytes) -> bytes:
    if len(body) > MAX_BODY_SIZE:
        raise ValueError(f"Envelope body too large: {len(body)} bytes")
    return MAGIC + len(body).to_bytes(3, "little") + body


def encode_record(record: Record) -> bytes:
    """Serialize a record back into a frame.

    Unmodified records are written back byte-for-byte.  For a record with a
    replaced payload, the original envelope is re-encoded with only the
    serializedData field swapped; every other field keeps its bytes and order.
    """
    if not record.frame:
        return _frame(build_envelope(record))
    if not record.replaced:
        return record.frame
    return _frame(build_envelope(record, record.frame[HEADER_SIZE:]))


def build_envelope(record: Record, original_body: bytes | None = None) -> bytes:
    """Build an envelope body for ``record``, reusing ``original_body`` fields if given."""
    if original_body is None:
        return (
            wire.encode_sint32(FIELD_DATA_TYPE, record.data_type)
            + wire.encode_field(FIELD_SERIALIZED_DATA, wire.LENGTH_DELIMITED, record.payload)
            + wire.encode_field(FIELD_SAMPLE_TIME_STAMP, wire.LENGTH_DELIMITED, encode_timestamp(record.timestamp))
        )
    parts = []
    replaced = False
    for field_id, wire_type, value in wire.iter_fields(original_body):
        if field_id == FIELD_SERIALIZED_DATA and wire_type == wire.LENGTH_DELIMITED:
            value = record.payload
            replaced = True
        parts.append(wire.encode_field(field_id, wire_type, value))
    if not replaced:
        parts.append(wire.encode_field(FIELD_SERIALIZED_DATA, wire.LENGTH_DELIMITED, record.payload))
    return b"".join(parts)
