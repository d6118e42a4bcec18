"""Archive metadata (`archive_info.json`) parsing."""

from __future__ import annotations

import json
from typing import BinaryIO

from .errors import MetadataParseError


def parse_stack_id(data: bytes) -> str:
    """Return the ``stack_id`` stored in an archive info document.

    Unknown fields are ignored and a missing (or null) ``stack_id`` yields an
    empty string. Anything that is not a JSON object raises
    `MetadataParseError`.
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MetadataParseError(f"Invalid archive info JSON: {exc}") from exc

    if document is None:
        return ""
    if not isinstance(document, dict):
        raise MetadataParseError(
            f"Archive info must be a JSON object, got {type(document).__name__}"
        )

    stack_id = document.get("stack_id")
    if stack_id is None:
        return ""
    if not isinstance(stack_id, str):
        raise MetadataParseError(
            f"Archive info stack_id must be a string, got {type(stack_id).__name__}"
        )
    return stack_id


def read_stack_id(payload: BinaryIO) -> str:
    """Read an archive info payload to the end and parse its stack id."""
    return parse_stack_id(payload.read())
