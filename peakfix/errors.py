"""Exception hierarchy for recording repair.

Every failure while classifying or rewriting a recording is fatal for the
whole run, so these errors are raised and left to propagate to the CLI.
"""

from __future__ import annotations


class RepairError(Exception):
    """Base exception for all repair failures."""


class ConfigError(RepairError):
    """Raised for an invalid corrections file."""


class IoOpenError(RepairError):
    """Raised when a source or destination stream cannot be opened."""


class DecodeError(RepairError):
    """Raised for malformed record framing or payloads."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset
