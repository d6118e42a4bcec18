"""Cache pull pipeline: locate, check, and extract one cache archive.

`CachePuller.run()` never exits the process. Fatal problems surface as
`CachePullError` subclasses; a stack mismatch is a normal, successful
outcome.
"""

from __future__ import annotations

import enum
import http.client
import time
from dataclasses import dataclass
from typing import Optional

from .config import PullSettings
from .errors import FallbackExtractionError, SourceError, StreamingExtractionError
from .extractors import ArchiveExtractor, ExtractionResult, StreamingExtractor, TarToolExtractor
from .logging_config import get_logger
from .restore_reader import RestoreReader
from .sources import download_cache_archive, get_cache_download_url, open_cache_stream
from .stack_check import StackCheck, StackStatus, check_stack


class PullOutcome(enum.Enum):
    EXTRACTED = "extracted"
    EXTRACTED_FALLBACK = "extracted_fallback"
    SKIPPED_STACK_MISMATCH = "skipped_stack_mismatch"
    SKIPPED_NO_CACHE = "skipped_no_cache"


@dataclass
class PullResult:
    outcome: PullOutcome
    archive_uri: str = ""
    stack_check: Optional[StackCheck] = None
    extraction: Optional[ExtractionResult] = None
    elapsed: float = 0.0


class CachePuller:
    """Runs a single cache pull for the given settings."""

    def __init__(
        self,
        settings: PullSettings,
        *,
        streaming_extractor: Optional[ArchiveExtractor] = None,
        fallback_extractor: Optional[ArchiveExtractor] = None,
    ) -> None:
        self.settings = settings
        self.streaming_extractor = streaming_extractor or StreamingExtractor(settings.extract_root)
        self.fallback_extractor = fallback_extractor or TarToolExtractor(settings.extract_root)
        self._log = get_logger(__name__)

    def resolve_archive_uri(self) -> str:
        if self.settings.is_local_archive:
            self._log.info("Using local cache archive")
            return self.settings.cache_api_url

        self._log.info("Downloading remote cache archive")
        download_url = get_cache_download_url(self.settings.cache_api_url)
        self._log.info("%s", download_url)
        return download_url

    def run(self) -> PullResult:
        if not self.settings.cache_api_url:
            self._log.warning("No Cache API URL specified, there's no cache to use, exiting.")
            return PullResult(PullOutcome.SKIPPED_NO_CACHE)

        start = time.monotonic()
        archive_uri = self.resolve_archive_uri()

        streaming_error: Optional[StreamingExtractionError] = None
        with open_cache_stream(archive_uri) as source:
            reader = RestoreReader(source)
            try:
                stack = check_stack(reader, self.settings.current_stack_id)
            except (OSError, http.client.HTTPException) as exc:
                raise SourceError(f"Failed to read cache archive {archive_uri}: {exc}") from exc
            if stack.status is StackStatus.MISMATCH:
                return PullResult(
                    PullOutcome.SKIPPED_STACK_MISMATCH,
                    archive_uri=archive_uri,
                    stack_check=stack,
                    elapsed=time.monotonic() - start,
                )
            reader.restore()

            self._log.info("Extracting cache archive")
            try:
                extraction = self.streaming_extractor.extract(reader)
                outcome = PullOutcome.EXTRACTED
            except StreamingExtractionError as exc:
                streaming_error = exc

        if streaming_error is not None:
            extraction = self._extract_fallback(archive_uri, streaming_error)
            outcome = PullOutcome.EXTRACTED_FALLBACK

        elapsed = time.monotonic() - start
        self._log.info("Done")
        self._log.info("Took: %.2fs", elapsed)
        return PullResult(
            outcome,
            archive_uri=archive_uri,
            stack_check=stack,
            extraction=extraction,
            elapsed=elapsed,
        )

    def _extract_fallback(
        self, archive_uri: str, streaming_error: StreamingExtractionError
    ) -> ExtractionResult:
        self._log.warning("Failed to uncompress cache archive stream: %s", streaming_error)
        self._log.warning("Downloading the archive file and trying to uncompress using tar tool")

        try:
            archive_path = download_cache_archive(archive_uri, self.settings.staging_path)
        except SourceError as exc:
            raise FallbackExtractionError(
                f"Fallback failed, unable to download cache archive: {exc} "
                f"(streaming extraction failed with: {streaming_error})",
                streaming_error=streaming_error,
            ) from exc

        try:
            return self.fallback_extractor.extract(archive_path)
        except Exception as exc:
            raise FallbackExtractionError(
                f"Fallback failed, unable to uncompress cache archive file: {exc} "
                f"(streaming extraction failed with: {streaming_error})",
                streaming_error=streaming_error,
            ) from exc


__all__ = ["CachePuller", "PullOutcome", "PullResult"]
