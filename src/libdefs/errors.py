"""Fatal error type and error codes.

Validation problems found while scanning a definitions tree are *not*
exceptions: they are collected in :class:`libdefs.validation.ValidationErrors`
so a single pass reports everything. ``LibDefsError`` is reserved for contract
violations that must abort the current operation.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_VERSION = "INVALID_VERSION"
    INVALID_CHECKER_VERSION = "INVALID_CHECKER_VERSION"
    NON_CONTIGUOUS_RANGE = "NON_CONTIGUOUS_RANGE"
    UNKNOWN_FILTER = "UNKNOWN_FILTER"
    METADATA_MISSING = "METADATA_MISSING"
    METADATA_INVALID = "METADATA_INVALID"
    CLI_OUTDATED = "CLI_OUTDATED"
    MIRROR_CLONE_FAILED = "MIRROR_CLONE_FAILED"
    LOCAL_REPO_NOT_CONFIGURED = "LOCAL_REPO_NOT_CONFIGURED"


class LibDefsError(Exception):
    """Raised for fatal, non-validation failures.

    ``recoverable`` tells the caller whether retrying later can succeed
    (e.g. a clone that failed for lack of connectivity) or whether the
    input or installation itself must change.
    """

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __repr__(self) -> str:
        return f"LibDefsError(code={self.code.value!r}, message={self.message!r})"
