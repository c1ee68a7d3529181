"""Tests for the timestamp-ordered replay source."""

from __future__ import annotations

import pytest

from peakfix.errors import DecodeError, IoOpenError
from peakfix.repair.replay import OrderedReplaySource
from tests.recording_builder import GEODETIC_WGS84, frame, write_recording


def _marker(tag: str) -> bytes:
    return tag.encode()


def _replay(path, corrections):
    with OrderedReplaySource(path, corrections) as source:
        return [(r.timestamp, r.payload.decode()) for r in source]


class TestOrderedReplay:
    def test_out_of_order_records_sorted(self, tmp_path, corrections):
        path = write_recording(
            tmp_path / "a.rec",
            [frame(GEODETIC_WGS84, _marker(t), ts) for t, ts in [("c", 3), ("a", 1), ("b", 2)]],
        )
        assert _replay(path, corrections) == [(1, "a"), (2, "b"), (3, "c")]

    def test_in_order_unchanged(self, tmp_path, corrections):
        frames = [frame(GEODETIC_WGS84, _marker(str(i)), i * 1000) for i in range(5)]
        path = write_recording(tmp_path / "a.rec", frames)
        assert [p for _, p in _replay(path, corrections)] == ["0", "1", "2", "3", "4"]

    def test_stable_for_equal_timestamps(self, tmp_path, corrections):
        path = write_recording(
            tmp_path / "a.rec",
            [frame(GEODETIC_WGS84, _marker(t), ts) for t, ts in [("x", 2), ("y", 1), ("z", 2), ("w", 1)]],
        )
        assert [p for _, p in _replay(path, corrections)] == ["y", "w", "x", "z"]

    def test_has_next_and_next(self, tmp_path, corrections):
        path = write_recording(tmp_path / "a.rec", [frame(GEODETIC_WGS84, b"a", 5)])
        with OrderedReplaySource(path, corrections) as source:
            assert source.record_count == 1
            assert source.has_next()
            assert source.next().timestamp == 5
            assert not source.has_next()
            with pytest.raises(StopIteration):
                source.next()

    def test_records_keep_original_frames(self, tmp_path, corrections):
        frames = [frame(GEODETIC_WGS84, b"b", 2), frame(GEODETIC_WGS84, b"a", 1)]
        path = write_recording(tmp_path / "a.rec", frames)
        with OrderedReplaySource(path, corrections) as source:
            assert [r.frame for r in source] == [frames[1], frames[0]]

    def test_empty_recording(self, tmp_path, corrections):
        path = write_recording(tmp_path / "a.rec", [])
        assert _replay(path, corrections) == []

    def test_corrupt_recording(self, tmp_path, corrections):
        path = write_recording(tmp_path / "a.rec", [frame(GEODETIC_WGS84, b"a", 1), b"\x0d\xa4\x09"])
        with pytest.raises(DecodeError):
            OrderedReplaySource(path, corrections)

    def test_missing_recording(self, tmp_path, corrections):
        with pytest.raises(IoOpenError):
            OrderedReplaySource(tmp_path / "missing.rec", corrections)
