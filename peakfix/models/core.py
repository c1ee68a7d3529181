"""Core data models for recordings, records, and repair results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path


class RecordType(Enum):
    ACCELERATION_LEGACY = "acceleration_legacy"
    ACCELERATION_STANDARD = "acceleration_standard"
    MAGNETIC_FIELD = "magnetic_field"
    ANGULAR_VELOCITY = "angular_velocity"
    ALTITUDE = "altitude"
    GROUND_SPEED = "ground_speed"
    GEODETIC_HEADING = "geodetic_heading"
    SWITCH_STATE = "switch_state"
    OTHER = "other"


# Record types whose consecutive duplicates are suppressed on rewrite
DEDUP_TYPES = (
    RecordType.MAGNETIC_FIELD,
    RecordType.ANGULAR_VELOCITY,
    RecordType.ALTITUDE,
    RecordType.GROUND_SPEED,
    RecordType.GEODETIC_HEADING,
)


@dataclass(frozen=True)
class Record:
    """One envelope read from a recording.

    ``frame`` holds the exact bytes the record was read from, so an untouched
    record can be written back byte-for-byte.  ``replaced`` is set once the
    payload has been swapped for a corrected encoding.  ``offset`` is the
    position of the frame within its source file.
    """

    data_type: int
    record_type: RecordType
    timestamp: int  # sample time, microseconds
    payload: bytes
    frame: bytes = b""
    offset: int = 0
    replaced: bool = False

    def with_payload(self, payload: bytes) -> Record:
        """Return a copy carrying a replacement payload."""
        if payload == self.payload:
            return self
        return replace(self, payload=payload, replaced=True)


@dataclass(frozen=True)
class DefectProfile:
    """Defects found in one recording by the classification pass."""

    is_pre_si_units: bool = False
    is_from_broken_patch: bool = False
    has_switch_state_noise: bool = False

    @property
    def is_fine(self) -> bool:
        return not (self.is_pre_si_units or self.is_from_broken_patch or self.has_switch_state_noise)

    def describe(self) -> str:
        """Short human-readable list of defects, e.g. 'pre-SI units, switch-state noise'."""
        found = []
        if self.is_pre_si_units:
            found.append("pre-SI units")
        if self.is_from_broken_patch:
            found.append("broken patch")
        if self.has_switch_state_noise:
            found.append("switch-state noise")
        return ", ".join(found) if found else "none"


@dataclass
class DedupState:
    """Last emitted value and drop counters for one deduplicated record type."""

    has_seen: bool = False
    last_value: tuple[float, ...] = ()
    duplicate_count: int = 0  # exact bit-equal repeats
    drop_ratio_count: int = 0  # near-total dropouts
    sentinel_count: int = 0  # invalid zero headings

    @property
    def skipped_count(self) -> int:
        return self.duplicate_count + self.drop_ratio_count + self.sentinel_count


def new_dedup_states() -> dict[RecordType, DedupState]:
    """Fresh per-file dedup state for every deduplicated record type."""
    return {record_type: DedupState() for record_type in DEDUP_TYPES}


@dataclass
class RepairResult:
    """Outcome of processing one recording."""

    source: Path
    destination: Path
    outcome: str  # "skipped" | "copied" | "rewritten"
    profile: DefectProfile | None = None
    records_read: int = 0
    records_written: int = 0
    dedup: dict[RecordType, DedupState] = field(default_factory=dict)

    @property
    def records_dropped(self) -> int:
        return self.records_read - self.records_written
