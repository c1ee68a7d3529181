"""Data models for records, defect profiles, and repair results."""

from peakfix.models.core import (
    DEDUP_TYPES,
    DedupState,
    DefectProfile,
    Record,
    RecordType,
    RepairResult,
    new_dedup_states,
)

__all__ = [
    "RecordType",
    "Record",
    "DefectProfile",
    "DedupState",
    "RepairResult",
    "DEDUP_TYPES",
    "new_dedup_states",
]
