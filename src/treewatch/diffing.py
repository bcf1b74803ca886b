"""Change detection - compares a watched tree with its snapshot."""

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Set

from .core import ChangeReport, RenamedFile, RewrittenFile, SnapshotManifest
from .errors import DirectoryNotFoundError
from .identity import TickSource
from .ignore import IgnoreSpec
from .similarity import best_match, score
from .snapshot import load_manifest, snapshot_dir_for
from .utils import read_text, walk_tree

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Classifies the differences between a live tree and its snapshot.

    A rename or move shows up as a path that disappeared plus a path that
    appeared; the two are paired when the live file carries the tick the
    manifest recorded for the vanished one. Content is only read to choose
    between several candidates and to measure rewrites.

    Note:
        Pairing is keyed on ticks alone. A deleted file and an unrelated new
        file that happen to share a tick are reported as a rename, and the
        search runs from deleted to created only, so one created file can be
        paired with several deleted ones.
    """

    def __init__(
        self,
        root: Path,
        ignore: IgnoreSpec,
        tick_source: TickSource,
        manifest: Optional[SnapshotManifest] = None,
    ):
        self.root = root
        self.snapshot_dir = snapshot_dir_for(root)
        self.ignore = ignore
        self.tick_source = tick_source
        self.manifest = manifest
        self._live_ticks: Dict[str, int] = {}

    def detect(self) -> ChangeReport:
        """
        Compute the change report.

        Returns:
            ChangeReport with root-relative POSIX paths

        Raises:
            DirectoryNotFoundError: If the root directory does not exist

        Note:
            Without a snapshot directory every live file is reported as
            created.
        """
        if not self.root.is_dir():
            raise DirectoryNotFoundError(self.root)

        if self.manifest is None:
            self.manifest = load_manifest(self.root)
        recorded = self.manifest.files if self.manifest else {}

        _, live = walk_tree(self.root, self.ignore)
        snapshot = self._snapshot_files()

        live_set, snapshot_set = set(live), set(snapshot)
        created = [p for p in live if p not in snapshot_set]
        deleted = [p for p in snapshot if p not in live_set]
        logger.debug("Raw diff: %d created, %d deleted", len(created), len(deleted))

        renamed = self._find_renamed(created, deleted, recorded)

        # Filter correlated pairs out of created & deleted
        new_paths = {r.path for r in renamed}
        old_paths = {r.prev_path for r in renamed}
        created = [p for p in created if p not in new_paths]
        deleted = [p for p in deleted if p not in old_paths]

        rewritten = self._find_rewritten(live, set(created), recorded)

        report = ChangeReport(
            created=created,
            deleted=deleted,
            renamed=renamed,
            rewritten=rewritten,
        )
        logger.debug("Change summary for %s: %s", self.root, report.summary)
        return report

    def _snapshot_files(self) -> List[str]:
        """Enumerate snapshot copies as root-relative paths."""
        if not self.snapshot_dir.is_dir():
            logger.debug("No snapshot at %s; treating it as empty", self.snapshot_dir)
            return []
        _, files = walk_tree(self.snapshot_dir, self.ignore)
        return files

    def _tick(self, relpath: str) -> int:
        """Current tick of a live file (read once per detection)."""
        if relpath not in self._live_ticks:
            self._live_ticks[relpath] = self.tick_source.read(self.root / relpath)
        return self._live_ticks[relpath]

    def _find_renamed(
        self,
        created: List[str],
        deleted: List[str],
        recorded: Dict[str, int],
    ) -> List[RenamedFile]:
        """
        Pair deleted paths with created paths carrying the same tick.

        With several candidates the one whose content best matches the
        snapshot copy wins (first one on ties) and its score becomes the
        similarity; a single candidate is taken as-is with similarity 100.
        """
        renamed = []

        for prev_path in deleted:
            tick = recorded.get(prev_path)
            if tick is None:
                continue

            matches = [path for path in created if self._tick(path) == tick]
            if not matches:
                # Genuine deletion
                continue

            if len(matches) > 1:
                original = read_text(self.snapshot_dir / prev_path)
                index, similarity = best_match(original, [self.root / m for m in matches])
                path = matches[index]
                logger.debug(
                    "%s: %d candidates share tick %d, picked %s (%.0f%%)",
                    prev_path, len(matches), tick, path, similarity,
                )
            else:
                path, similarity = matches[0], 100.0

            if path == prev_path:
                continue

            renamed.append(RenamedFile(
                prev_path=prev_path,
                path=path,
                moved=PurePosixPath(prev_path).name == PurePosixPath(path).name,
                similarity=similarity,
            ))

        return renamed

    def _find_rewritten(
        self,
        live: List[str],
        created: Set[str],
        recorded: Dict[str, int],
    ) -> List[RewrittenFile]:
        """
        Measure content drift of every live file that has a snapshot copy.

        The copy is located by the live file's current tick, so renamed files
        are compared against their previous content too. Files whose tick is
        unknown to the manifest are skipped.
        """
        # First path recorded with each tick
        by_tick: Dict[int, str] = {}
        for path, tick in recorded.items():
            by_tick.setdefault(tick, path)

        rewritten = []
        for path in live:
            if path in created:
                continue

            snapshot_path = by_tick.get(self._tick(path))
            if snapshot_path is None:
                continue

            copy = self.snapshot_dir / snapshot_path
            if not copy.is_file():
                continue

            before, after = read_text(copy), read_text(self.root / path)
            if before == after:
                # Covers empty files, which score 0 against themselves
                continue

            match = score(before, after)
            if match < 100:
                rewritten.append(RewrittenFile(path=path, match=match))

        return rewritten
