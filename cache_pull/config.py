"""Settings for a cache-pull run.

Values come from the environment (the CI step inputs) and can be overridden
from the command line:

* `cache_api_url` / `CACHE_API_URL` - cache API endpoint or `file://` archive
* `BITRISEIO_STACK_ID` - identifier of the current machine image
* `is_debug_mode` - enable debug logging
* `CACHE_PULL_EXTRACT_ROOT` - directory archive paths are resolved against
* `CACHE_PULL_STAGING_PATH` - local path for the fallback download
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .constants import DEFAULT_EXTRACT_ROOT, DEFAULT_STAGING_PATH, LOCAL_URI_PREFIX


def env_bool(environ: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _first_set(environ: Mapping[str, str], *keys: str) -> str:
    for key in keys:
        value = environ.get(key)
        if value:
            return value
    return ""


@dataclass(frozen=True)
class PullSettings:
    """Typed settings for one cache pull."""

    cache_api_url: str = ""
    stack_id: str = ""
    debug_mode: bool = False
    extract_root: str = DEFAULT_EXTRACT_ROOT
    staging_path: str = DEFAULT_STAGING_PATH

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PullSettings":
        env = os.environ if environ is None else environ
        return cls(
            cache_api_url=_first_set(env, "cache_api_url", "CACHE_API_URL").strip(),
            stack_id=env.get("BITRISEIO_STACK_ID", ""),
            debug_mode=env_bool(env, "is_debug_mode", False),
            extract_root=env.get("CACHE_PULL_EXTRACT_ROOT") or DEFAULT_EXTRACT_ROOT,
            staging_path=env.get("CACHE_PULL_STAGING_PATH") or DEFAULT_STAGING_PATH,
        )

    def with_overrides(self, **overrides: object) -> "PullSettings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @property
    def current_stack_id(self) -> str:
        return self.stack_id.strip()

    @property
    def is_local_archive(self) -> bool:
        return self.cache_api_url.startswith(LOCAL_URI_PREFIX)

    def describe(self) -> dict:
        """Settings as printed at the start of a run."""
        return {
            "cache_api_url": self.cache_api_url,
            "stack_id": self.stack_id,
            "debug_mode": self.debug_mode,
            "extract_root": self.extract_root,
            "staging_path": self.staging_path,
        }
