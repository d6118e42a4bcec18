"""Locating and opening cache archives.

A cache archive is addressed by a URI: either ``file://<path>`` for an
archive already on disk, or an HTTP(S) download URL handed out by the cache
API.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from pathlib import Path
from typing import BinaryIO, Union

from .constants import CACHE_API_TIMEOUT, COPY_CHUNK_SIZE, LOCAL_URI_PREFIX
from .errors import CacheNotFoundError, SourceError
from .logging_config import get_logger


def is_local_uri(uri: str) -> bool:
    return uri.startswith(LOCAL_URI_PREFIX)


def local_path(uri: str) -> Path:
    """Path of a ``file://`` URI."""
    return Path(uri[len(LOCAL_URI_PREFIX):])


def _read_error_body(response) -> str:
    try:
        return response.read().decode("utf-8", errors="replace")
    except (OSError, http.client.HTTPException):
        return ""


def get_cache_download_url(cache_api_url: str, timeout: float = CACHE_API_TIMEOUT) -> str:
    """Ask the cache API for the build's archive download URL.

    Raises:
        CacheNotFoundError: the API answered outside 200-202.
        SourceError: the request failed or the answer has no download URL.
    """
    request = urllib.request.Request(cache_api_url, method="GET")
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:  # noqa: S310
            status = response.status
            body = response.read()
    except urllib.error.HTTPError as exc:
        status = exc.code
        body = _read_error_body(exc).encode("utf-8")
    except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
        raise SourceError(f"failed to send request: {exc}") from exc

    if status < 200 or status > 202:
        raise CacheNotFoundError(
            "build cache not found: probably cache not initialised yet "
            "(first cache push initialises the cache), nothing to worry about ;)"
        )

    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise SourceError(f"failed to parse JSON response ({body!r}): {exc}") from exc

    download_url = payload.get("download_url") if isinstance(payload, dict) else None
    if not download_url:
        raise SourceError("download URL not included in the response")
    if not isinstance(download_url, str):
        raise SourceError(f"download URL in the response is not a string: {download_url!r}")
    return download_url


def open_cache_stream(uri: str) -> BinaryIO:
    """Open the archive at ``uri`` for sequential reading.

    The returned object is a context manager; the caller closes it.
    """
    if is_local_uri(uri):
        path = local_path(uri)
        try:
            return open(path, "rb")
        except OSError as exc:
            raise SourceError(f"Failed to open cache archive file {path}: {exc}") from exc

    # No timeout: archives can be large and the transfer is not bounded.
    try:
        response = urllib.request.urlopen(uri)  # noqa: S310
    except urllib.error.HTTPError as exc:
        body = _read_error_body(exc)
        exc.close()
        raise SourceError(f"non success response code: {exc.code}, body: {body}") from exc
    except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
        raise SourceError(f"Failed to download {uri}: {exc}") from exc

    if response.status != 200:
        with response:
            body = _read_error_body(response)
        raise SourceError(f"non success response code: {response.status}, body: {body}")
    return response


def download_cache_archive(uri: str, staging_path: Union[str, Path]) -> Path:
    """Make the archive available as a local file and return its path.

    Local archives are used in place. Remote archives are downloaded in full
    to ``staging_path``, replacing whatever is there.
    """
    if is_local_uri(uri):
        return local_path(uri)

    log = get_logger(__name__)
    destination = Path(staging_path)
    log.info("Downloading cache archive to %s", destination)
    with open_cache_stream(uri) as response:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            out_file = destination.open("wb")
        except OSError as exc:
            raise SourceError(f"failed to open the local cache file for write: {exc}") from exc
        with out_file:
            try:
                while True:
                    chunk = response.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    out_file.write(chunk)
            except (OSError, http.client.HTTPException) as exc:
                raise SourceError(f"Failed to download cache archive from {uri}: {exc}") from exc
    return destination


__all__ = [
    "download_cache_archive",
    "get_cache_download_url",
    "is_local_uri",
    "local_path",
    "open_cache_stream",
]
