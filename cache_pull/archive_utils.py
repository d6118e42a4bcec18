"""Archive member path helpers shared by the extractors."""

from __future__ import annotations

from pathlib import Path

from .errors import UnsafeEntryPathError


def resolve_member_path(dest_root: Path, name: str) -> Path:
    """Resolve an archive member name under ``dest_root``, preventing path traversal.

    Cache archives store absolute paths; the leading ``/`` is dropped so the
    default root of ``/`` puts every file back where it was saved.
    """
    relative = name.lstrip("/")
    target = (dest_root / relative).resolve()
    if target != dest_root and dest_root not in target.parents:
        raise UnsafeEntryPathError(f"Unsafe archive member path detected: {name!r}")
    return target
