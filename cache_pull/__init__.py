"""cache-pull - restore a build cache archive onto a CI worker.

Provides:
* A restorable reader for peeking at the start of a forward-only stream
* First-entry inspection and stack compatibility checks
* Streaming extraction with a ``tar`` based fallback
* Thin CLI wrapper (`cache-pull`)
"""

from ._version import __version__
from .config import PullSettings
from .logging_config import configure_logging  # noqa: F401
from .pipeline import CachePuller, PullOutcome, PullResult
from .restore_reader import ReaderMode, RestoreReader

__all__ = [
    "__version__",
    "configure_logging",
    "CachePuller",
    "PullOutcome",
    "PullResult",
    "PullSettings",
    "ReaderMode",
    "RestoreReader",
]
