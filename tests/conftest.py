"""Shared fixtures: in-memory cache archives and a local archive server."""

from __future__ import annotations

import io
import os
import sys
import tarfile
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

# Ensure project root is on sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

_SETTINGS_ENV = (
    "cache_api_url",
    "CACHE_API_URL",
    "BITRISEIO_STACK_ID",
    "is_debug_mode",
    "CACHE_PULL_EXTRACT_ROOT",
    "CACHE_PULL_STAGING_PATH",
    "CACHE_PULL_LOG_LEVEL",
)
_PROXY_ENV = ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in _SETTINGS_ENV + _PROXY_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")


class CountingSource(io.BytesIO):
    """BytesIO that remembers how many bytes were handed out."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.consumed = 0

    def read(self, size=-1):
        chunk = super().read(size)
        self.consumed += len(chunk)
        return chunk


@pytest.fixture
def counting_source():
    return CountingSource


def build_archive(*entries: Tuple, compression: str = "gz") -> bytes:
    """Build a tar archive in memory.

    Entries are tuples:
    ``("file", name, data[, mode])``, ``("dir", name[, mode])`` or
    ``("symlink", name, target)``.
    """
    buffer = io.BytesIO()
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(fileobj=buffer, mode=mode, format=tarfile.GNU_FORMAT) as tar:
        for entry in entries:
            kind, name = entry[0], entry[1]
            info = tarfile.TarInfo(name)
            if kind == "file":
                data = entry[2]
                info.size = len(data)
                info.mode = entry[3] if len(entry) > 3 else 0o644
                tar.addfile(info, io.BytesIO(data))
            elif kind == "dir":
                info.type = tarfile.DIRTYPE
                info.mode = entry[2] if len(entry) > 2 else 0o755
                tar.addfile(info)
            elif kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = entry[2]
                info.mode = 0o777
                tar.addfile(info)
            else:
                raise ValueError(f"unknown entry kind {kind!r}")
    return buffer.getvalue()


@pytest.fixture
def archive_factory():
    return build_archive


@pytest.fixture
def write_archive(tmp_path):
    """Write archive bytes to disk and return the ``file://`` URI."""

    def _write(data: bytes, name: str = "cache.tar.gz") -> str:
        path = tmp_path / "archives" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"file://{path}"

    return _write


def snapshot_tree(root: Path) -> Dict[str, Tuple]:
    """Relative path -> (kind, content or link target, permission bits)."""
    snapshot: Dict[str, Tuple] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            relative = str(path.relative_to(root))
            mode = path.lstat().st_mode & 0o777
            if path.is_symlink():
                snapshot[relative] = ("symlink", os.readlink(path), None)
            elif path.is_dir():
                snapshot[relative] = ("dir", None, mode)
            else:
                snapshot[relative] = ("file", path.read_bytes(), mode)
    return snapshot


@pytest.fixture
def tree_snapshot():
    return snapshot_tree


class _ArchiveHandler(BaseHTTPRequestHandler):
    def do_GET(self):  # noqa: N802
        self.server.requests.append(self.path)
        status, body = self.server.routes.get(self.path, (404, b"not found"))
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):  # noqa: A002
        pass


class ArchiveServer:
    """Serves fixed responses for cache API and archive downloads."""

    def __init__(self) -> None:
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _ArchiveHandler)
        self._server.routes = {}
        self._server.requests = []
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def requests(self) -> List[str]:
        return self._server.requests

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self._server.server_address[1]}{path}"

    def serve(self, path: str, body: bytes, status: int = 200) -> str:
        self._server.routes[path] = (status, body)
        return self.url(path)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def archive_server():
    server = ArchiveServer()
    server.start()
    yield server
    server.stop()
