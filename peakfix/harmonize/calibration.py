"""Calibration constants for classifying and correcting recordings.

Loads corrections.yaml and provides:
- Classification fingerprints (broken-patch delta, pre-SI magnitude window)
- Unit conversion factors and firmware offsets per reading type
- Dedup thresholds (drop ratio, heading sentinel)
- The envelope dataType id -> RecordType table

A user file passed with --config is merged on top of the bundled defaults,
section by section, so it only needs to name the values it changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property, lru_cache
from pathlib import Path

import yaml

from peakfix.errors import ConfigError
from peakfix.models.core import RecordType

_CORRECTIONS_PATH = Path(__file__).parent / "corrections.yaml"

_NUMERIC_SECTIONS = ("classification", "acceleration", "magnetic_field", "dedup")


@dataclass(frozen=True)
class Corrections:
    """Validated calibration constants for one run."""

    max_axis_delta: float
    pre_si_magnitude_min: float
    pre_si_magnitude_max: float
    milli_g_to_mps2: float
    accel_offset_threshold: float
    accel_offset: float
    micro_tesla_to_tesla: float
    magnetic_offset_threshold: float
    magnetic_offset: float
    drop_ratio: float
    heading_sentinel: float
    message_ids: tuple[tuple[int, RecordType], ...]

    @cached_property
    def _id_table(self) -> dict[int, RecordType]:
        return dict(self.message_ids)

    def record_type(self, data_type: int) -> RecordType:
        """Map an envelope dataType id to its RecordType (OTHER if unknown)."""
        return self._id_table.get(data_type, RecordType.OTHER)


@lru_cache(maxsize=1)
def _load_default_yaml() -> dict:
    with open(_CORRECTIONS_PATH) as f:
        return yaml.safe_load(f)


def _read_override(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read corrections file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in corrections file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Corrections file {path} must contain a mapping")
    return data


def _merge(defaults: dict, override: dict) -> dict:
    merged = {key: dict(value) for key, value in defaults.items()}
    for section, values in override.items():
        if section not in merged:
            raise ConfigError(f"Unknown corrections section: '{section}'")
        if not isinstance(values, dict):
            raise ConfigError(f"Corrections section '{section}' must be a mapping")
        if section != "message_ids":
            unknown = set(values) - set(merged[section])
            if unknown:
                raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
        merged[section].update(values)
    return merged


def _number(data: dict, section: str, key: str) -> float:
    value = data[section][key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{section}.{key}' must be a number, got {value!r}")
    return float(value)


def _message_ids(raw: dict) -> tuple[tuple[int, RecordType], ...]:
    table = []
    for data_type, name in raw.items():
        try:
            table.append((int(data_type), RecordType(name)))
        except ValueError as e:
            raise ConfigError(f"Invalid message id entry {data_type}: {name!r}") from e
    return tuple(sorted(table, key=lambda item: item[0]))


def load_corrections(path: Path | None = None) -> Corrections:
    """Load the bundled constants, optionally overridden by a user YAML file."""
    data = _load_default_yaml()
    if path is not None:
        data = _merge(data, _read_override(path))

    for section in _NUMERIC_SECTIONS:
        for key in data[section]:
            _number(data, section, key)

    return Corrections(
        max_axis_delta=_number(data, "classification", "max_axis_delta"),
        pre_si_magnitude_min=_number(data, "classification", "pre_si_magnitude_min"),
        pre_si_magnitude_max=_number(data, "classification", "pre_si_magnitude_max"),
        milli_g_to_mps2=_number(data, "acceleration", "milli_g_to_mps2"),
        accel_offset_threshold=_number(data, "acceleration", "offset_threshold"),
        accel_offset=_number(data, "acceleration", "offset"),
        micro_tesla_to_tesla=_number(data, "magnetic_field", "micro_tesla_to_tesla"),
        magnetic_offset_threshold=_number(data, "magnetic_field", "offset_threshold"),
        magnetic_offset=_number(data, "magnetic_field", "offset"),
        drop_ratio=_number(data, "dedup", "drop_ratio"),
        heading_sentinel=_number(data, "dedup", "heading_sentinel"),
        message_ids=_message_ids(data["message_ids"]),
    )
