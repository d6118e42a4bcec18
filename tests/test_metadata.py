from __future__ import annotations

import io

import pytest

from cache_pull.errors import MetadataParseError
from cache_pull.metadata import parse_stack_id, read_stack_id


def test_parse_stack_id():
    assert parse_stack_id(b'{"stack_id": "osx-xcode"}') == "osx-xcode"


def test_unknown_fields_are_ignored():
    assert parse_stack_id(b'{"stack_id": "linux-docker", "created": 12}') == "linux-docker"


@pytest.mark.parametrize("payload", [b"{}", b'{"stack_id": null}', b"null", b'{"other": "x"}'])
def test_missing_stack_id_is_empty(payload):
    assert parse_stack_id(payload) == ""


@pytest.mark.parametrize("payload", [b"", b"{not json", b"[1, 2]", b'"osx"', b'{"stack_id": 5}', b"\xff\xfe"])
def test_malformed_metadata_raises(payload):
    with pytest.raises(MetadataParseError):
        parse_stack_id(payload)


def test_read_stack_id_consumes_payload():
    payload = io.BytesIO(b'{"stack_id": "osx-xcode"}')

    assert read_stack_id(payload) == "osx-xcode"
    assert payload.read() == b""
