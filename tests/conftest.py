"""Shared fixtures for peakfix tests."""

from __future__ import annotations

import pytest

from peakfix.harmonize.calibration import load_corrections
from peakfix.models.core import new_dedup_states


@pytest.fixture
def corrections():
    return load_corrections()


@pytest.fixture
def dedup():
    return new_dedup_states()


@pytest.fixture
def raw_dir(tmp_path):
    path = tmp_path / "raw"
    path.mkdir()
    return path


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"
