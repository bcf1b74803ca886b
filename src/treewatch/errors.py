"""Custom exceptions for treewatch.

This module defines typed exceptions for better error handling and clearer
error messages throughout the application.
"""

from pathlib import Path
from typing import Union


class WatcherError(RuntimeError):
    """Base class for all treewatch errors."""
    pass


class DirectoryNotFoundError(WatcherError, FileNotFoundError):
    """Watched directory does not exist."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        super().__init__(f"Directory not found: {directory}")


# Identity Errors
class TickCollisionError(WatcherError, PermissionError):
    """A tick write was refused and the requested tick is held by another file."""

    def __init__(self, path: Union[str, Path], tick: int, holder: Union[str, Path]):
        self.path = Path(path)
        self.tick = tick
        self.holder = Path(holder)
        super().__init__(
            f"Could not assign tick {tick} to {path}: "
            f"it is already held by {holder}. "
            f"Two tracked files would share one identity."
        )


# Session Errors
class SessionError(WatcherError):
    """Base class for session lifecycle errors."""
    pass


class SessionStateError(SessionError):
    """Operation not allowed in the session's current state."""
    pass


class SessionBusyError(SessionError):
    """Another begin/end holds the lock for this directory."""

    def __init__(self, directory: Union[str, Path], timeout: float):
        self.directory = Path(directory)
        self.timeout = timeout
        super().__init__(
            f"Directory {directory} is locked by another session "
            f"(waited {timeout:g}s)."
        )


class ManifestError(SessionError):
    """Snapshot manifest exists but cannot be read."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        super().__init__(f"Invalid snapshot manifest {path}: {reason}")
