"""Watch session lifecycle.

begin() snapshots a directory, end() reports what changed since. Both can
run in different processes: everything end() needs (ticks, the caller's
ignore patterns, the tick source name) is persisted in the snapshot
manifest.

Capture and detection on the same root are serialized with an advisory
portalocker lock on <root>/.initialstate.lock. Capture writes ticks back
into the live tree, so it must never overlap a detection.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import portalocker

from .config import WatchConfig, load_watch_config
from .constants import LOCK_FILE
from .core import ChangeReport, SessionState, SnapshotManifest
from .diffing import ChangeDetector
from .errors import DirectoryNotFoundError, ManifestError, SessionBusyError, SessionStateError
from .identity import TickSource, get_tick_source
from .ignore import IgnoreSpec, merge_patterns
from .snapshot import SnapshotBuilder, load_manifest, save_manifest, snapshot_dir_for
from .utils import get_iso_timestamp

logger = logging.getLogger(__name__)

TickSourceLike = Union[TickSource, str, None]


def _require_directory(directory: Union[str, Path]) -> Path:
    """Resolve a watched root, failing if it is not an existing directory."""
    root = Path(directory)
    if not root.is_dir():
        raise DirectoryNotFoundError(directory)
    return root.resolve()


@contextmanager
def session_lock(root: Path, timeout: float) -> Iterator[None]:
    """Hold the advisory lock of a watched root.

    Raises:
        SessionBusyError: If the lock is not acquired within timeout seconds
    """
    lock_path = root / LOCK_FILE
    try:
        lock = portalocker.Lock(str(lock_path), "w", timeout=timeout)
        lock.acquire()
    except portalocker.LockException as e:
        raise SessionBusyError(root, timeout) from e
    try:
        yield
    finally:
        lock.release()


class WatchSession:
    """
    Explicit handle for one watch of one directory.

    States: UNINITIALIZED -> begin() -> INITIALIZED -> end() -> UNINITIALIZED.
    Calling begin() twice or end() before begin() raises SessionStateError.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        ignore: Optional[Iterable[str]] = None,
        tick_source: TickSourceLike = None,
    ):
        """Create an unstarted session.

        Args:
            directory: Directory to watch
            ignore: Extra substring patterns, merged with the defaults and
                the directory's .treewatch.yaml
            tick_source: TickSource instance or name; defaults to the
                configured source
        """
        self.root = Path(directory)
        self.ignore = list(ignore or [])
        self._tick_source = tick_source
        self.state = SessionState.UNINITIALIZED
        self.manifest: Optional[SnapshotManifest] = None

    @classmethod
    def attach(
        cls,
        directory: Union[str, Path],
        tick_source: TickSourceLike = None,
    ) -> "WatchSession":
        """Re-open a session begun earlier, possibly by another process.

        The session is INITIALIZED when a snapshot manifest is found.
        """
        root = _require_directory(directory)
        manifest = load_manifest(root)
        session = cls(root, ignore=manifest.ignore if manifest else None, tick_source=tick_source)
        if manifest is not None:
            session.manifest = manifest
            session.state = SessionState.INITIALIZED
        return session

    @property
    def snapshot(self) -> Optional[Path]:
        """Snapshot location while INITIALIZED."""
        if self.state is SessionState.INITIALIZED:
            return snapshot_dir_for(self.root)
        return None

    def begin(self) -> Path:
        """Capture the snapshot.

        Returns:
            Snapshot directory

        Raises:
            SessionStateError: If the session was already begun
            DirectoryNotFoundError: If the directory does not exist
        """
        if self.state is SessionState.INITIALIZED:
            raise SessionStateError(f"Session for {self.root} already begun; call end() first")

        root = _require_directory(self.root)
        config = load_watch_config(root)
        self.ignore = merge_patterns(self.ignore, config.ignore)
        self.manifest = None
        source = self._resolve_tick_source(config)

        try:
            previous = load_manifest(root)
        except ManifestError as e:
            # capture() replaces the whole snapshot directory
            logger.warning("Discarding unreadable snapshot manifest: %s", e)
            previous = None
        if previous is not None and previous.is_active:
            logger.info("Replacing active snapshot of %s begun at %s", root, previous.created_at)

        with session_lock(root, config.lock_timeout):
            builder = SnapshotBuilder(root, IgnoreSpec(root, self.ignore), source)
            location = builder.capture()
            self.manifest = load_manifest(root)

        self.root = root
        self.state = SessionState.INITIALIZED
        logger.debug("Began watching %s (%d files)", root, len(self.manifest.files))
        return location

    def end(self) -> ChangeReport:
        """Report changes since begin() and return to UNINITIALIZED.

        The snapshot is kept on disk.

        Raises:
            SessionStateError: If the session was not begun
            DirectoryNotFoundError: If the directory no longer exists
        """
        if self.state is not SessionState.INITIALIZED:
            raise SessionStateError(f"Session for {self.root} not begun; call begin() first")

        report = self.report()
        self.state = SessionState.UNINITIALIZED
        return report

    def report(self) -> ChangeReport:
        """Compute the change report without changing the session state.

        Stamps ended_at in the manifest. Works without a snapshot, in which
        case every file is reported as created.
        """
        root = _require_directory(self.root)
        config = load_watch_config(root)
        source = self._resolve_tick_source(config)

        with session_lock(root, config.lock_timeout):
            detector = ChangeDetector(
                root,
                IgnoreSpec(root, self.ignore),
                source,
                manifest=self.manifest,
            )
            report = detector.detect()

            if self.manifest is not None and snapshot_dir_for(root).is_dir():
                self.manifest.ended_at = get_iso_timestamp()
                save_manifest(root, self.manifest)

        return report

    def _resolve_tick_source(self, config: WatchConfig) -> TickSource:
        """Pick the tick source: explicit argument, then manifest, then config."""
        source = self._tick_source
        if isinstance(source, TickSource):
            chosen = source
        elif source is not None:
            chosen = get_tick_source(source, self.root)
        elif self.manifest is not None:
            chosen = get_tick_source(self.manifest.tick_source)
        else:
            chosen = get_tick_source(config.tick_source, self.root)

        if self.manifest is not None and chosen.name != self.manifest.tick_source:
            logger.warning(
                "Snapshot was taken with %s ticks but %s ticks are in use; "
                "renames and rewrites will not be correlated",
                self.manifest.tick_source, chosen.name,
            )
        return chosen


# ============= Facade =============

def begin(
    directory: Union[str, Path],
    ignore: Optional[Iterable[str]] = None,
    *,
    tick_source: TickSourceLike = None,
) -> WatchSession:
    """Start watching a directory.

    Args:
        directory: Directory to watch
        ignore: Extra substring patterns merged with the built-in defaults
        tick_source: TickSource instance or name ("auto", "birthtime",
            "inode", "xattr")

    Returns:
        The INITIALIZED session

    Raises:
        DirectoryNotFoundError: If directory does not exist
        TickCollisionError: If identity repair would merge two files
        SessionBusyError: If another begin/end holds the directory

    Example:
        >>> import treewatch
        >>> treewatch.begin("project")
        >>> # ... modify files under project/ ...
        >>> report = treewatch.end("project")
        >>> report.has_changed
        True
    """
    session = WatchSession(directory, ignore=ignore, tick_source=tick_source)
    session.begin()
    return session


def end(
    directory: Union[str, Path],
    *,
    tick_source: TickSourceLike = None,
) -> ChangeReport:
    """Report what changed in a directory since begin().

    Uses the ignore patterns and tick source recorded by begin(). Without a
    snapshot every file is reported as created.

    Raises:
        DirectoryNotFoundError: If directory does not exist
    """
    session = WatchSession.attach(directory, tick_source=tick_source)
    return session.report()
