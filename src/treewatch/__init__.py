"""Two-shot directory change detection.

Snapshot a directory with begin(), change it, then call end() to find out
which files were created, deleted, renamed, moved or rewritten.
"""

from .constants import TREEWATCH_VERSION as __version__
from .core import ChangeReport, RenamedFile, RewrittenFile, SessionState
from .errors import (
    DirectoryNotFoundError,
    SessionBusyError,
    SessionStateError,
    TickCollisionError,
    WatcherError,
)
from .session import WatchSession, begin, end
from .similarity import score

__all__ = [
    "ChangeReport",
    "DirectoryNotFoundError",
    "RenamedFile",
    "RewrittenFile",
    "SessionBusyError",
    "SessionState",
    "SessionStateError",
    "TickCollisionError",
    "WatchSession",
    "WatcherError",
    "begin",
    "end",
    "score",
]
