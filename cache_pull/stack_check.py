"""Decide whether a cache archive was produced on a compatible stack."""

from __future__ import annotations

import enum
import lzma
import posixpath
import tarfile
import zlib
from dataclasses import dataclass

from .archive_prefix import open_first_entry
from .constants import METADATA_FILENAME
from .errors import ArchiveFormatError
from .logging_config import get_logger
from .metadata import read_stack_id
from .restore_reader import RestoreReader


class StackStatus(enum.Enum):
    NOT_REQUESTED = "not_requested"
    NO_METADATA = "no_metadata"
    MATCH = "match"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class StackCheck:
    status: StackStatus
    current_stack_id: str = ""
    archive_stack_id: str = ""

    @property
    def compatible(self) -> bool:
        return self.status is not StackStatus.MISMATCH


def is_metadata_entry(name: str) -> bool:
    """Whether an entry name's final path segment is the metadata file."""
    return posixpath.basename(name.rstrip("/")) == METADATA_FILENAME


def check_stack(reader: RestoreReader, current_stack_id: str) -> StackCheck:
    """Compare the archive's stack id against ``current_stack_id``.

    Only the first archive entry is read. The reader is left capturing; the
    caller restores it before extraction. A first entry that cannot be
    decoded, or a metadata entry that is not valid JSON, raises instead of
    being treated as missing metadata.
    """
    log = get_logger(__name__)
    current = current_stack_id.strip()
    if not current:
        log.debug("No stack id configured, skipping stack check")
        return StackCheck(StackStatus.NOT_REQUESTED)

    log.info("Checking archive and current stacks")
    log.info("current stack id: %s", current)

    with open_first_entry(reader) as entry:
        if not is_metadata_entry(entry.header.name):
            log.warning("cache archive does not contain stack information, skipping stack check")
            return StackCheck(StackStatus.NO_METADATA, current_stack_id=current)

        try:
            archive_stack_id = read_stack_id(entry.payload)
        except (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError) as exc:
            raise ArchiveFormatError(f"Failed to read first archive entry: {exc}") from exc

    log.info("archive stack id: %s", archive_stack_id)
    if archive_stack_id != current:
        log.warning("Cache was created on stack: %s, current stack: %s", archive_stack_id, current)
        log.warning("Skipping cache pull, because of the stack has changed")
        return StackCheck(StackStatus.MISMATCH, current, archive_stack_id)

    return StackCheck(StackStatus.MATCH, current, archive_stack_id)


__all__ = ["StackCheck", "StackStatus", "check_stack", "is_metadata_entry"]
