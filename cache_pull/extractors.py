"""Archive extraction strategies.

Two implementations of the same capability:

* `StreamingExtractor` decompresses and unpacks a byte stream in one pass,
  writing nothing but the extracted entries.
* `TarToolExtractor` hands an archive file on disk to the system ``tar``,
  which copes with archives the in-process reader rejects.

Neither decides what happens when it fails; the pipeline picks the order.
"""

from __future__ import annotations

import http.client
import lzma
import os
import shutil
import subprocess
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Set, Union

from .archive_utils import resolve_member_path
from .constants import COPY_CHUNK_SIZE
from .errors import FallbackExtractionError, StreamingExtractionError, UnsupportedEntryError
from .logging_config import get_logger

ArchiveSource = Union[BinaryIO, str, Path]

_STREAM_ERRORS = (
    tarfile.TarError,
    EOFError,
    OSError,
    zlib.error,
    lzma.LZMAError,
    http.client.HTTPException,
)


@dataclass(frozen=True)
class ExtractionResult:
    method: str
    files: Optional[int] = None
    directories: Optional[int] = None


class ArchiveExtractor:
    """Extract a cache archive below ``extract_root``."""

    method = "abstract"

    def __init__(self, extract_root: Union[str, Path] = "/") -> None:
        self.extract_root = Path(extract_root)
        self._log = get_logger(__name__)

    def extract(self, archive: ArchiveSource) -> ExtractionResult:
        if isinstance(archive, (str, Path)):
            with open(archive, "rb") as handle:
                return self.extract(handle)

        dest_root = self.extract_root.resolve()
        created: Set[Path] = set()
        dir_modes: Dict[Path, int] = {}
        files = 0
        directories = 0
        try:
            with tarfile.open(fileobj=archive, mode="r|*") as tar:
                for member in tar:
                    target = resolve_member_path(dest_root, member.name)
                    if member.isdir():
                        self._make_dirs(target, created)
                        if target in created:
                            dir_modes[target] = member.mode & 0o777
                        directories += 1
                    elif member.isreg():
                        self._make_dirs(target.parent, created)
                        self._write_file(tar, member, target)
                        files += 1
                    else:
                        raise UnsupportedEntryError(
                            f"Unsupported entry type {member.type!r} in {member.name}"
                        )
                    self._log.debug("Extracted %s", target)

            # Deepest first, so read-only parents do not block their children.
            for path, mode in sorted(dir_modes.items(), key=lambda item: len(item[0].parts), reverse=True):
                os.chmod(path, mode)
        except StreamingExtractionError:
            raise
        except _STREAM_ERRORS as exc:
            raise StreamingExtractionError(f"Failed to extract cache archive stream: {exc}") from exc

        return ExtractionResult(method=self.method, files=files, directories=directories)

    @staticmethod
    def _make_dirs(path: Path, created: Set[Path]) -> None:
        """mkdir -p that remembers every directory it had to create."""
        missing = []
        current = path
        while not current.is_dir():
            missing.append(current)
            current = current.parent
        if missing:
            path.mkdir(parents=True, exist_ok=True)
            created.update(missing)

    @staticmethod
    def _write_file(tar: tarfile.TarFile, member: tarfile.TarInfo, target: Path) -> None:
        mode = member.mode & 0o777
        payload = tar.extractfile(member)
        if payload is None:
            raise UnsupportedEntryError(f"No payload for regular file {member.name}")
        fd = os.open(target, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as out_file, payload:
            shutil.copyfileobj(payload, out_file, COPY_CHUNK_SIZE)
        os.chmod(target, mode)


class TarToolExtractor(ArchiveExtractor):
    """Extract an archive file with the system ``tar`` binary."""

    method = "tar"

    def __init__(self, extract_root: Union[str, Path] = "/", tar_binary: str = "tar") -> None:
        super().__init__(extract_root)
        self.tar_binary = tar_binary

    def build_command(self, archive_path: Union[str, Path]) -> List[str]:
        return [self.tar_binary, "-xf", str(archive_path), "-C", str(self.extract_root)]

    def extract(self, archive: ArchiveSource) -> ExtractionResult:
        if not isinstance(archive, (str, Path)):
            raise TypeError("TarToolExtractor needs an archive path, not a stream")

        self.extract_root.mkdir(parents=True, exist_ok=True)
        command = self.build_command(archive)
        self._log.debug("Running: %s", " ".join(command))
        try:
            completed = subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise FallbackExtractionError(f"tar binary not found: {self.tar_binary}") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
            raise FallbackExtractionError(f"tar failed to extract {archive}: {detail}") from exc

        if completed.stderr:
            self._log.debug("tar: %s", completed.stderr.strip())
        return ExtractionResult(method=self.method)


__all__ = [
    "ArchiveExtractor",
    "ExtractionResult",
    "StreamingExtractor",
    "TarToolExtractor",
]
