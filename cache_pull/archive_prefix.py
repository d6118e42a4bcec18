"""Decode the first entry of a tar stream without consuming the rest of it."""

from __future__ import annotations

import io
import lzma
import tarfile
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from .errors import ArchiveTooShortError, InvalidArchiveError
from .restore_reader import RestoreReader

ENTRY_FILE = "file"
ENTRY_DIRECTORY = "directory"
ENTRY_OTHER = "other"

# tarfile messages for a stream that ends (or hits the end-of-archive
# marker) before the first header is complete.
_SHORT_STREAM_MESSAGES = {"empty file", "truncated header", "end of file header"}

_DECODE_ERRORS = (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError)


@dataclass(frozen=True)
class EntryHeader:
    name: str
    type: str
    size: int

    @classmethod
    def from_tarinfo(cls, member: tarfile.TarInfo) -> "EntryHeader":
        if member.isreg():
            entry_type = ENTRY_FILE
        elif member.isdir():
            entry_type = ENTRY_DIRECTORY
        else:
            entry_type = ENTRY_OTHER
        return cls(name=member.name, type=entry_type, size=member.size)


@dataclass
class FirstEntry:
    """Header of the first archive entry plus a reader over its payload."""

    header: EntryHeader
    payload: BinaryIO


@contextmanager
def open_first_entry(reader: RestoreReader) -> Iterator[FirstEntry]:
    """Decode exactly one archive entry from ``reader``.

    The stream is read in 512 byte blocks so nothing past the entry's header
    and padded payload is pulled from the source. Everything read here is
    recorded by the reader and replayed after `RestoreReader.restore()`.

    Raises:
        ArchiveTooShortError: the stream ends before a full header.
        InvalidArchiveError: the header does not decode as a tar entry.
    """
    try:
        tar = tarfile.open(fileobj=reader, mode="r|*", bufsize=tarfile.BLOCKSIZE)
    except _DECODE_ERRORS as exc:
        raise _format_error(reader, exc) from exc

    with tar:
        try:
            member = tar.next()
        except _DECODE_ERRORS as exc:
            raise _format_error(reader, exc) from exc
        if member is None:
            raise ArchiveTooShortError("Archive does not contain any entry")

        payload = tar.extractfile(member) if member.isreg() else None
        yield FirstEntry(
            header=EntryHeader.from_tarinfo(member),
            payload=payload if payload is not None else io.BytesIO(b""),
        )


def _format_error(reader: RestoreReader, exc: BaseException) -> Exception:
    if reader.source_exhausted or str(exc) in _SHORT_STREAM_MESSAGES:
        return ArchiveTooShortError(f"Archive too short or corrupt: {exc}")
    return InvalidArchiveError(f"Not a valid archive: {exc}")


__all__ = [
    "ENTRY_DIRECTORY",
    "ENTRY_FILE",
    "ENTRY_OTHER",
    "EntryHeader",
    "FirstEntry",
    "open_first_entry",
]
