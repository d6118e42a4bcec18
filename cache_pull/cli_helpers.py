"""Shared CLI helpers for cache-pull."""

import sys
from typing import Optional

from cache_pull.constants import ExitCodes
from cache_pull.errors import (
    ArchiveFormatError,
    CachePullError,
    FallbackExtractionError,
    MetadataParseError,
    ReaderRestoreError,
    SourceError,
)


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to cache-pull exit codes."""
    if isinstance(exc, SourceError):
        return ExitCodes.SOURCE_ERROR
    if isinstance(exc, ArchiveFormatError):
        return ExitCodes.ARCHIVE_FORMAT_ERROR
    if isinstance(exc, MetadataParseError):
        return ExitCodes.METADATA_PARSE_ERROR
    if isinstance(exc, FallbackExtractionError):
        return ExitCodes.FALLBACK_FAILED
    if isinstance(exc, ReaderRestoreError):
        return ExitCodes.READER_MISUSE
    if isinstance(exc, CachePullError):
        return ExitCodes.UNEXPECTED_ERROR
    return None


def describe_failure(exc: Exception) -> str:
    """User facing message for a fatal pull error."""
    if isinstance(exc, SourceError):
        return f"Failed to get cache archive: {exc}"
    if isinstance(exc, ArchiveFormatError):
        return f"Failed to get first archive entry: {exc}"
    if isinstance(exc, MetadataParseError):
        return f"Failed to parse first archive entry: {exc}"
    return str(exc)
