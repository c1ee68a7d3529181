"""Per-record corrections applied while rewriting a recording.

``correct_record`` dispatches on RecordType and returns either the record to
emit (possibly with a re-encoded payload) or None when it must be dropped.
All decisions come from the file's DefectProfile, fixed before the rewrite
starts, and from the per-type DedupState that lives for one file.

Corrected values are computed in double precision and rounded to float32 only
when re-encoded, so they may differ by one ulp from a float32 computation.

    Type                   Correction
    ----                   ----------
    SwitchState            dropped when the file has switch-state noise
    Acceleration (both)    milli-g -> m/s^2; broken-patch offset removal
    MagneticField          exact dedup; uT -> T; broken-patch offset removal
    AngularVelocity        exact dedup; re-encoded
    Altitude, GroundSpeed  exact dedup + drop-ratio rejection
    GeodeticHeading        zero-heading sentinel, then as Altitude
    Other                  passed through untouched
"""

from __future__ import annotations

import logging
from typing import Callable

from peakfix.harmonize.calibration import Corrections
from peakfix.models.core import DedupState, DefectProfile, Record, RecordType
from peakfix.parsers.payloads import decode_scalar, decode_vector, encode_scalar, encode_vector, float_bits

logger = logging.getLogger(__name__)

Handler = Callable[[DefectProfile, dict[RecordType, DedupState], Record, Corrections], "Record | None"]


def _any_axis_repeats(state: DedupState, values: tuple[float, ...]) -> bool:
    """True if any axis is bit-identical to the last accepted value."""
    if not state.has_seen:
        return False
    return any(float_bits(old) == float_bits(new) for old, new in zip(state.last_value, values))


def _is_dropout(state: DedupState, value: float, ratio: float) -> bool:
    """True for a spurious near-total drop relative to the last accepted value."""
    if not state.has_seen:
        return False
    previous = state.last_value[0]
    return previous - value > ratio * abs(previous)


def _accept(state: DedupState, values: tuple[float, ...]) -> None:
    state.has_seen = True
    state.last_value = values


def _log_values(record: Record, values: tuple[float, ...]) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "%s @ %d -> %s",
            record.record_type.value,
            record.timestamp,
            ", ".join(f"{v:.6g}" for v in values),
        )


def _correct_switch_state(profile, dedup, record, corrections):
    if profile.has_switch_state_noise:
        return None
    return record


def _correct_acceleration(profile, dedup, record, corrections):
    values = decode_vector(record)
    if profile.is_pre_si_units:
        values = tuple(v * corrections.milli_g_to_mps2 for v in values)
    if profile.is_from_broken_patch:
        values = tuple(
            v - corrections.accel_offset if v > corrections.accel_offset_threshold else v for v in values
        )
    _log_values(record, values)
    return record.with_payload(encode_vector(values))


def _correct_magnetic_field(profile, dedup, record, corrections):
    state = dedup[RecordType.MAGNETIC_FIELD]
    values = decode_vector(record)
    if _any_axis_repeats(state, values):
        state.duplicate_count += 1
        return None
    _accept(state, values)

    if profile.is_pre_si_units:
        values = tuple(v * corrections.micro_tesla_to_tesla for v in values)
    if profile.is_from_broken_patch:
        values = tuple(
            v - corrections.magnetic_offset if v > corrections.magnetic_offset_threshold else v for v in values
        )
    _log_values(record, values)
    return record.with_payload(encode_vector(values))


def _correct_angular_velocity(profile, dedup, record, corrections):
    state = dedup[RecordType.ANGULAR_VELOCITY]
    values = decode_vector(record)
    if _any_axis_repeats(state, values):
        state.duplicate_count += 1
        return None
    _accept(state, values)
    return record.with_payload(encode_vector(values))


def _dedup_scalar(state: DedupState, record: Record, value: float, corrections: Corrections) -> Record | None:
    if _any_axis_repeats(state, (value,)):
        state.duplicate_count += 1
        return None
    if _is_dropout(state, value, corrections.drop_ratio):
        state.drop_ratio_count += 1
        return None
    _accept(state, (value,))
    return record.with_payload(encode_scalar(value))


def _correct_scalar(profile, dedup, record, corrections):
    return _dedup_scalar(dedup[record.record_type], record, decode_scalar(record), corrections)


def _correct_geodetic_heading(profile, dedup, record, corrections):
    state = dedup[RecordType.GEODETIC_HEADING]
    heading = decode_scalar(record)
    if abs(heading) < corrections.heading_sentinel:
        state.sentinel_count += 1
        return None
    return _dedup_scalar(state, record, heading, corrections)


def _pass_through(profile, dedup, record, corrections):
    return record


HANDLERS: dict[RecordType, Handler] = {
    RecordType.SWITCH_STATE: _correct_switch_state,
    RecordType.ACCELERATION_LEGACY: _correct_acceleration,
    RecordType.ACCELERATION_STANDARD: _correct_acceleration,
    RecordType.MAGNETIC_FIELD: _correct_magnetic_field,
    RecordType.ANGULAR_VELOCITY: _correct_angular_velocity,
    RecordType.ALTITUDE: _correct_scalar,
    RecordType.GROUND_SPEED: _correct_scalar,
    RecordType.GEODETIC_HEADING: _correct_geodetic_heading,
    RecordType.OTHER: _pass_through,
}


def correct_record(
    profile: DefectProfile,
    dedup: dict[RecordType, DedupState],
    record: Record,
    corrections: Corrections,
) -> Record | None:
    """Apply the corrections for ``record``'s type; None means drop it."""
    return HANDLERS.get(record.record_type, _pass_through)(profile, dedup, record, corrections)
