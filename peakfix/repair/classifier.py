"""First pass: classify which firmware defects a recording exhibits.

Only AccelerationReading (standard) records are measured.  Their mere
presence marks the recording as coming from the firmware revision that also
miscategorizes switch-state data.  From the samples we derive:

- the mean vector magnitude, which sits near 1000-1060 when gravity was
  recorded in milli-g instead of m/s^2 (pre-SI units)
- the largest single-sample jump per axis, which exceeds 2500 only when the
  broken patch's constant offset toggles on and off (broken patch)

Broken-patch detection is checked first and rules out pre-SI detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import numpy as np

from peakfix.errors import IoOpenError
from peakfix.harmonize.calibration import Corrections
from peakfix.models.core import DefectProfile, Record, RecordType
from peakfix.parsers.envelope import iter_records
from peakfix.parsers.payloads import decode_vector

logger = logging.getLogger(__name__)


@dataclass
class RunningVectorStats:
    """Running magnitude sum and max per-axis delta over 3-axis samples.

    ``records_seen`` counts every record scanned, of any type.  A non-finite
    axis value is left out: the sample adds nothing to the magnitude mean,
    and the jump on that axis is measured from the last finite value.
    """

    records_seen: int = 0
    sample_count: int = 0
    length_sum: float = 0.0
    finite_count: int = 0
    prev_sample: np.ndarray | None = None
    max_abs_delta: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def update(self, sample: tuple[float, float, float]) -> None:
        current = np.asarray(sample, dtype=np.float64)
        finite = np.isfinite(current)
        if finite.all():
            self.length_sum += float(np.linalg.norm(current))
            self.finite_count += 1
        current = np.where(finite, current, np.nan)
        if self.prev_sample is not None:
            # fmax ignores the NaN deltas of masked axes
            self.max_abs_delta = np.fmax(self.max_abs_delta, np.abs(current - self.prev_sample))
            current = np.where(finite, current, self.prev_sample)
        self.prev_sample = current
        self.sample_count += 1

    @property
    def mean_magnitude(self) -> float:
        if self.finite_count == 0:
            return 0.0
        return self.length_sum / self.finite_count


def build_profile(stats: RunningVectorStats, corrections: Corrections) -> DefectProfile:
    """Decide the DefectProfile from finished acceleration statistics."""
    if stats.sample_count == 0:
        return DefectProfile()

    is_from_broken_patch = bool(np.any(stats.max_abs_delta > corrections.max_axis_delta))
    is_pre_si_units = False
    if not is_from_broken_patch:
        mean = stats.mean_magnitude
        is_pre_si_units = corrections.pre_si_magnitude_min < mean < corrections.pre_si_magnitude_max

    return DefectProfile(
        is_pre_si_units=is_pre_si_units,
        is_from_broken_patch=is_from_broken_patch,
        has_switch_state_noise=True,
    )


def accumulate(records: Iterable[Record]) -> RunningVectorStats:
    stats = RunningVectorStats()
    for record in records:
        stats.records_seen += 1
        if record.record_type is RecordType.ACCELERATION_STANDARD:
            stats.update(decode_vector(record))
    return stats


def classify_records(records: Iterable[Record], corrections: Corrections) -> DefectProfile:
    """Classify an in-order record sequence."""
    return build_profile(accumulate(records), corrections)


def classify_file(path: Path, corrections: Corrections) -> tuple[DefectProfile, RunningVectorStats]:
    """Stream a recording once and return its profile and acceleration stats.

    Raises:
        IoOpenError: if the file cannot be opened.
        DecodeError: if any frame or acceleration payload is malformed.
    """
    try:
        f = open(path, "rb")
    except OSError as e:
        raise IoOpenError(f"Failed to open in file {path}: {e}") from e
    with f:
        stats = accumulate(iter_records(f, corrections))

    profile = build_profile(stats, corrections)
    logger.debug(
        "%s: %d acceleration samples, mean |a|=%.3f, max delta=%s",
        path,
        stats.sample_count,
        stats.mean_magnitude,
        np.array2string(stats.max_abs_delta, precision=3),
    )
    return profile, stats
