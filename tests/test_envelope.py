"""Tests for the envelope frame reader and encoder."""

from __future__ import annotations

import io

import pytest

from peakfix.errors import DecodeError
from peakfix.models.core import RecordType
from peakfix.parsers import wire
from peakfix.parsers.envelope import decode_next_record, encode_record, iter_records
from peakfix.parsers.payloads import decode_vector
from tests.recording_builder import ACCEL, GEODETIC_WGS84, frame, vector

# dataType 1030, empty payload, sampleTimeStamp 2 s + 500 us
HAND_FRAME = bytes.fromhex("0da40c0000" "088c10" "1200" "2a05" "0804" "10e807")


class TestDecode:
    def test_hand_encoded_frame(self, corrections):
        record = decode_next_record(io.BytesIO(HAND_FRAME), corrections)
        assert record.data_type == 1030
        assert record.record_type == RecordType.ACCELERATION_STANDARD
        assert record.timestamp == 2_000_500
        assert record.payload == b""
        assert record.frame == HAND_FRAME
        assert record.offset == 0

    def test_clean_end_of_stream(self, corrections):
        assert decode_next_record(io.BytesIO(b""), corrections) is None

    def test_offsets_and_types(self, corrections):
        data = frame(ACCEL, vector(1, 2, 3), 10) + frame(GEODETIC_WGS84, b"\x09" + bytes(8), 20)
        records = list(iter_records(io.BytesIO(data), corrections))
        assert [r.record_type for r in records] == [RecordType.ACCELERATION_STANDARD, RecordType.OTHER]
        assert records[1].offset == len(records[0].frame)
        assert decode_vector(records[0]) == (1.0, 2.0, 3.0)

    def test_truncated_header(self, corrections):
        with pytest.raises(DecodeError):
            decode_next_record(io.BytesIO(b"\x0d\xa4\x05"), corrections)

    def test_truncated_body(self, corrections):
        with pytest.raises(DecodeError):
            decode_next_record(io.BytesIO(HAND_FRAME[:-2]), corrections)

    def test_bad_magic(self, corrections):
        with pytest.raises(DecodeError, match="magic"):
            decode_next_record(io.BytesIO(b"\x00\x00" + HAND_FRAME[2:]), corrections)

    def test_error_reports_offset(self, corrections):
        data = frame(ACCEL, vector(1, 2, 3)) + b"\xff\xff\x00\x00\x00"
        with pytest.raises(DecodeError) as excinfo:
            list(iter_records(io.BytesIO(data), corrections))
        assert excinfo.value.offset == len(data) - 5


class TestEncode:
    def test_unmodified_record_is_byte_exact(self, corrections):
        original = frame(ACCEL, vector(1, 2, 3), 42, sender_stamp=7)
        record = decode_next_record(io.BytesIO(original), corrections)
        assert encode_record(record) == original

    def test_replaced_payload_keeps_other_fields(self, corrections):
        original = frame(ACCEL, vector(1, 2, 3), 42, sender_stamp=7)
        record = decode_next_record(io.BytesIO(original), corrections)
        encoded = encode_record(record.with_payload(vector(4, 5, 6)))

        again = decode_next_record(io.BytesIO(encoded), corrections)
        assert decode_vector(again) == (4.0, 5.0, 6.0)
        assert again.timestamp == 42
        assert again.data_type == ACCEL
        fields = dict((fid, value) for fid, _, value in wire.iter_fields(encoded[5:]))
        assert fields[6] == 7

    def test_same_payload_keeps_frame(self, corrections):
        original = frame(ACCEL, vector(1, 2, 3), 42)
        record = decode_next_record(io.BytesIO(original), corrections)
        assert record.with_payload(vector(1, 2, 3)) is record
