"""Paths, constants, and configuration."""

from __future__ import annotations

# Only files with this suffix are picked up when --in is a directory
RECORDING_SUFFIX = ".rec"

# Buffer size for byte-for-byte copies
COPY_CHUNK_SIZE = 1024 * 1024
