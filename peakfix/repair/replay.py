"""Second pass source: replay a recording in timestamp order.

Some recordings contain out-of-order records from concurrent capture.  The
replay source first scans the file and keeps only (timestamp, offset) pairs,
sorts them stably, then seeks to each frame in turn, so payloads are read
one at a time and never held for the whole file.
"""

from __future__ import annotations

from pathlib import Path

from peakfix.errors import DecodeError, IoOpenError
from peakfix.harmonize.calibration import Corrections
from peakfix.models.core import Record
from peakfix.parsers.envelope import decode_next_record, iter_records


class OrderedReplaySource:
    """Yields the records of a recording in non-decreasing timestamp order.

    Records with equal timestamps keep their on-disk relative order.

    Usage:
        with OrderedReplaySource(path, corrections) as source:
            while source.has_next():
                record = source.next()
    """

    def __init__(self, path: Path, corrections: Corrections):
        self.path = path
        self._corrections = corrections
        try:
            self._stream = open(path, "rb")
        except OSError as e:
            raise IoOpenError(f"Failed to open in file {path}: {e}") from e
        try:
            self._offsets = self._build_index()
        except DecodeError:
            self._stream.close()
            raise
        self._position = 0

    def _build_index(self) -> list[int]:
        index = [(record.timestamp, record.offset) for record in iter_records(self._stream, self._corrections)]
        index.sort(key=lambda entry: entry[0])
        return [offset for _, offset in index]

    @property
    def record_count(self) -> int:
        return len(self._offsets)

    def has_next(self) -> bool:
        return self._position < len(self._offsets)

    def next(self) -> Record:
        if not self.has_next():
            raise StopIteration
        offset = self._offsets[self._position]
        self._position += 1
        self._stream.seek(offset)
        record = decode_next_record(self._stream, self._corrections)
        if record is None:
            raise DecodeError(f"Record vanished from {self.path}", offset)
        return record

    def __iter__(self):
        return self

    def __next__(self) -> Record:
        return self.next()

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> OrderedReplaySource:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
