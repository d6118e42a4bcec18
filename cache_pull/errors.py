"""
Custom exception classes for cache-pull.
"""

from typing import Optional


class CachePullError(Exception):
    """Base exception class for cache-pull errors."""
    pass


class SourceError(CachePullError):
    """Raised when the cache archive cannot be located, opened or downloaded."""
    pass


class CacheNotFoundError(SourceError):
    """Raised when the cache API reports that no cache exists for the build."""
    pass


class ReaderRestoreError(CachePullError):
    """Raised when a restorable reader is restored more than once."""
    pass


class ArchiveFormatError(CachePullError):
    """Raised when the start of the archive cannot be decoded."""
    pass


class ArchiveTooShortError(ArchiveFormatError):
    """Raised when the stream ends before the first entry header is complete."""
    pass


class InvalidArchiveError(ArchiveFormatError):
    """Raised when the first entry header is not a valid archive header."""
    pass


class MetadataParseError(CachePullError):
    """Raised when the archive metadata entry is not valid JSON."""
    pass


class StreamingExtractionError(CachePullError):
    """Raised when in-process streaming extraction fails."""
    pass


class UnsupportedEntryError(StreamingExtractionError):
    """Raised when an archive entry type cannot be written by the streaming extractor."""
    pass


class UnsafeEntryPathError(StreamingExtractionError):
    """Raised when an archive entry resolves outside the extraction root."""
    pass


class FallbackExtractionError(CachePullError):
    """Raised when the file based fallback extraction fails.

    ``streaming_error`` keeps the streaming failure that triggered the
    fallback so both causes reach the user.
    """

    def __init__(self, message: str, streaming_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.streaming_error = streaming_error
