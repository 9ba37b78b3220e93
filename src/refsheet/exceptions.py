"""Refsheet exception hierarchy.

All exceptions inherit from RefsheetError so callers can catch the base
class when they want to handle any refsheet failure uniformly. Errors that
callers need to branch on carry a closed ``kind`` enumeration.
"""

from __future__ import annotations

from enum import Enum


class RefsheetError(Exception):
    """Base exception for all refsheet errors."""


class ConfigError(RefsheetError):
    """Configuration-related errors (bad worker count, unknown log level, etc.)."""


class ScanError(RefsheetError):
    """Run-level traversal failures (missing or invalid root directory)."""


class ExtractionErrorKind(str, Enum):
    """Why a single file contributed nothing to the index."""

    PARSE_FAILURE = "parse_failure"
    UNREADABLE = "unreadable"


class ExtractionError(RefsheetError):
    """Per-file, recoverable failure while extracting declarations."""

    def __init__(self, kind: ExtractionErrorKind, path: str, detail: str) -> None:
        super().__init__(f"{path}: {detail}")
        self.kind = kind
        self.path = path
        self.detail = detail


class ReconciliationErrorKind(str, Enum):
    """Fatal failures of the load/merge/persist step."""

    CORRUPT_INDEX = "corrupt_index"
    OUTPUT_UNAVAILABLE = "output_unavailable"
    WRITE_FAILED = "write_failed"


class ReconciliationError(RefsheetError):
    """Run-level failure reading or writing the persisted index."""

    def __init__(self, kind: ReconciliationErrorKind, path: str, detail: str) -> None:
        super().__init__(f"{path}: {detail}")
        self.kind = kind
        self.path = path
        self.detail = detail
