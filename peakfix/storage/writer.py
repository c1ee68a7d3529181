"""Write repaired recordings, byte-for-byte copies, and the repair index."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from peakfix.config import COPY_CHUNK_SIZE, RECORDING_SUFFIX
from peakfix.errors import IoOpenError
from peakfix.models.core import DEDUP_TYPES, Record, RepairResult
from peakfix.parsers.envelope import encode_record

logger = logging.getLogger(__name__)


def _open_destination(path: Path):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "wb")
    except OSError as e:
        raise IoOpenError(f"Failed to open out file {path}: {e}") from e


class RecordWriter:
    """Buffered sequential writer of record frames."""

    def __init__(self, path: Path):
        self.path = path
        self.records_written = 0
        self._stream = _open_destination(path)

    def write(self, record: Record) -> None:
        self._stream.write(encode_record(record))
        self.records_written += 1

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> RecordWriter:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def copy_through(source: Path, destination: Path) -> int:
    """Copy a recording unchanged; returns the number of bytes copied."""
    try:
        fin = open(source, "rb")
    except OSError as e:
        raise IoOpenError(f"Failed to open in file {source}: {e}") from e
    copied = 0
    with fin, _open_destination(destination) as fout:
        while True:
            chunk = fin.read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            fout.write(chunk)
            copied += len(chunk)
    return copied


def discover_recordings(raw_dir: Path) -> list[Path]:
    """Find all recordings in a directory tree."""
    return sorted(p for p in raw_dir.rglob(f"*{RECORDING_SUFFIX}") if p.is_file())


def result_to_dict(result: RepairResult) -> dict:
    """Flatten a RepairResult into one row of the repair index."""
    profile = result.profile
    row = {
        "source_path": str(result.source),
        "destination_path": str(result.destination),
        "outcome": result.outcome,
        "is_pre_si_units": profile.is_pre_si_units if profile else None,
        "is_from_broken_patch": profile.is_from_broken_patch if profile else None,
        "has_switch_state_noise": profile.has_switch_state_noise if profile else None,
        "records_read": result.records_read,
        "records_written": result.records_written,
        "records_dropped": result.records_dropped,
    }
    for record_type in DEDUP_TYPES:
        state = result.dedup.get(record_type)
        row[f"{record_type.value}_skipped"] = state.skipped_count if state else 0
    return row


def write_repair_index(index_path: Path, results: list[RepairResult]) -> Path:
    """Write the per-file repair results as a single Parquet file."""
    df = pd.DataFrame([result_to_dict(r) for r in results])
    try:
        index_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_parquet(index_path, engine="pyarrow", index=False)
    except OSError as e:
        raise IoOpenError(f"Failed to write repair index {index_path}: {e}") from e
    logger.info("Wrote repair index with %d rows to %s", len(df), index_path)
    return index_path
