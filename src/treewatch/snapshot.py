"""Snapshot capture with identity bookkeeping."""

import json
import logging
import shutil
import time
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from .constants import MANIFEST_FILE, SNAPSHOT_DIR
from .core import SnapshotManifest
from .errors import DirectoryNotFoundError, ManifestError, TickCollisionError
from .identity import TickSource
from .ignore import IgnoreSpec
from .utils import atomic_write_text, copy_file, is_read_only, set_read_only, walk_tree

logger = logging.getLogger(__name__)


# ============= Manifest I/O =============

def snapshot_dir_for(root: Path) -> Path:
    """Get the snapshot directory of a watched root."""
    return root / SNAPSHOT_DIR


def load_manifest(root: Path) -> Optional[SnapshotManifest]:
    """Load the snapshot manifest, or None if no snapshot was taken."""
    path = snapshot_dir_for(root) / MANIFEST_FILE
    if not path.exists():
        return None
    try:
        return SnapshotManifest.model_validate_json(path.read_text())
    except ValidationError as e:
        raise ManifestError(path, str(e)) from e


def save_manifest(root: Path, manifest: SnapshotManifest) -> None:
    """Save the snapshot manifest atomically."""
    path = snapshot_dir_for(root) / MANIFEST_FILE
    atomic_write_text(path, json.dumps(manifest.model_dump(), indent=2))


# ============= Capture =============

class SnapshotBuilder:
    """
    Copies a watched tree into its hidden snapshot directory.

    Every copied file gets an entry in the manifest holding its tick, which
    is what ChangeDetector later uses to find the file again in the live
    tree. Ticks must be unique across tracked files. A source that assigns
    ticks gets a fresh one stamped on every file; otherwise colliding ticks
    are perturbed and the new values written back to the originals.
    """

    def __init__(self, root: Path, ignore: IgnoreSpec, tick_source: TickSource):
        self.root = root
        self.snapshot_dir = snapshot_dir_for(root)
        self.ignore = ignore
        self.tick_source = tick_source
        self.files: List[str] = []

    def capture(self) -> Path:
        """Take the snapshot and return its location.

        Raises:
            DirectoryNotFoundError: If the root directory does not exist
            TickCollisionError: If a tick repair would leave two files with
                the same identity
        """
        if not self.root.is_dir():
            raise DirectoryNotFoundError(self.root)

        self._reset_snapshot_dir()
        directories, self.files = walk_tree(self.root, self.ignore)
        logger.debug(
            "Capturing %d directories and %d files under %s",
            len(directories), len(self.files), self.root,
        )

        self._write_directories(directories)
        ticks = self._write_files()

        manifest = SnapshotManifest(
            root=str(self.root),
            tick_source=self.tick_source.name,
            ignore=self.ignore.extra,
            files=ticks,
        )
        save_manifest(self.root, manifest)
        return self.snapshot_dir

    def _reset_snapshot_dir(self) -> None:
        """Create an empty snapshot directory, dropping any stale one."""
        if self.snapshot_dir.exists():
            logger.debug("Removing stale snapshot %s", self.snapshot_dir)
            shutil.rmtree(self.snapshot_dir)
        self.snapshot_dir.mkdir(parents=True)

    def _write_directories(self, directories: List[str]) -> None:
        for relpath in directories:
            (self.snapshot_dir / relpath).mkdir(parents=True, exist_ok=True)

    def _write_files(self) -> Dict[str, int]:
        """Copy tracked files and return the tick recorded for each copy."""
        ticks, stamp = self._plan_ticks()

        recorded: Dict[str, int] = {}
        for relpath in self.files:
            source = self.root / relpath
            target = self.snapshot_dir / relpath

            # Originals may be re-stamped or rewritten below
            if is_read_only(source):
                logger.debug("Clearing read-only attribute on %s", source)
                set_read_only(source, False)

            copy_file(source, target)
            recorded[relpath] = ticks[relpath]

            if stamp:
                self._stamp(source, target, ticks[relpath])

        return recorded

    def _plan_ticks(self) -> Tuple[Dict[str, int], bool]:
        """Decide the tick of every tracked file.

        Returns:
            (relpath -> tick, whether the ticks must be written to the originals)
        """
        if self.tick_source.assigns:
            base = time.time_ns()
            logger.debug("Assigning fresh ticks from %d", base)
            return {relpath: base + offset for offset, relpath in enumerate(self.files)}, True

        original = {relpath: self.tick_source.read(self.root / relpath) for relpath in self.files}
        if len(set(original.values())) == len(original):
            return original, False

        if not self.tick_source.writable:
            # Perturbed values could never reach the originals; keep the
            # recorded ticks equal to what detection will read back
            logger.warning(
                "Tracked files share %s ticks and the source cannot reassign them",
                self.tick_source.name,
            )
            return original, False

        logger.info("Tracked files share ticks; assigning unique ticks by enumeration order")
        ticks: Dict[str, int] = {}
        taken: Set[int] = set()
        for offset, relpath in enumerate(self.files):
            tick = original[relpath] + offset
            # A perturbed value can land on a tick already handed out
            while tick in taken:
                tick += 1
            taken.add(tick)
            ticks[relpath] = tick
        return ticks, True

    def _stamp(self, source: Path, copy: Path, tick: int) -> None:
        """Write tick back to an original file, retrying once if it doesn't stick."""
        if not self._set_tick(source, tick):
            return
        if self.tick_source.read(source) == tick:
            return

        # Some filesystems only take the new value after the content is rewritten
        logger.debug("Tick %d did not stick on %s; rewriting content", tick, source)
        copy_file(copy, source)
        self._set_tick(source, tick)

    def _set_tick(self, path: Path, tick: int) -> bool:
        """Assign a tick, applying the escalation policy on refusal.

        Returns:
            True if the tick source accepted the write

        Raises:
            TickCollisionError: If the write was refused and another tracked
                file already holds tick
        """
        try:
            self.tick_source.write(path, tick)
            return True
        except PermissionError as e:
            holder = self._find_holder(tick, exclude=path)
            if holder is not None:
                raise TickCollisionError(path, tick, holder) from e
            logger.warning("Could not assign tick %d to %s: %s", tick, path, e)
            return False

    def _find_holder(self, tick: int, exclude: Path) -> Optional[Path]:
        """Find another tracked file currently holding tick."""
        for relpath in self.files:
            path = self.root / relpath
            if path == exclude:
                continue
            if self.tick_source.read(path) == tick:
                return path
        return None
