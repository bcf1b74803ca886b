"""Ignore pattern matching for treewatch.

Two kinds of patterns are combined:

* substring patterns (the built-in DEFAULTS plus caller patterns): a path is
  ignored when its root-relative form, with a leading slash, contains any of
  them. "/bin" therefore matches "bin/tool" and "src/bin" but also
  "binaries/x"; that looseness is part of the matching contract.
* gitignore-style patterns read from a .treewatchignore file at the root.
"""

from pathlib import Path
from typing import Iterable, List

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern

from .constants import IGNORE_FILE, SNAPSHOT_DIR


# Default substrings to always ignore
DEFAULTS = [
    # Dependency caches
    "/node_modules",
    "/packages",

    # Compiled code
    ".pyc",
    ".o",
    ".class",

    # Build output
    "/bin",
    "/out",
    "/target",

    # Runtime files
    ".log",
    ".lock",
    ".tmp",

    # OS files
    ".DS_Store",
    "Thumbs.db",

    # IDE
    ".idea/workspace.xml",

    # Version control and watcher metadata
    ".git",
    ".watchmanconfig",
    SNAPSHOT_DIR,
    ".treewatch",
]


def merge_patterns(*groups: Iterable[str]) -> List[str]:
    """Union pattern groups, keeping first-seen order and dropping blanks."""
    merged: List[str] = []
    for group in groups:
        for pattern in group:
            if pattern and pattern not in merged:
                merged.append(pattern)
    return merged


class IgnoreSpec:
    """Decides which paths of a watched tree are excluded from scans."""

    def __init__(self, root: Path, extra: Iterable[str] = ()):
        """Initialize ignore spec with default and custom patterns.

        Args:
            root: Watched root directory
            extra: Additional substring patterns
        """
        self.root = root
        self.extra = merge_patterns(extra)
        self.patterns = merge_patterns(DEFAULTS, self.extra)

        # Load project-specific .treewatchignore if it exists
        lines = []
        ignore_file = root / IGNORE_FILE
        if ignore_file.exists():
            for line in ignore_file.read_text().splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    lines.append(line)

        # Compile patterns once for efficiency
        self.spec = PathSpec.from_lines(GitWildMatchPattern, lines) if lines else None

    def matches_substring(self, relpath: str) -> bool:
        """Check a root-relative POSIX path against the substring patterns."""
        candidate = "/" + relpath.lstrip("/")
        return any(pattern in candidate for pattern in self.patterns)

    def is_ignored(self, relpath: str) -> bool:
        """Check if a root-relative POSIX path should be ignored.

        Args:
            relpath: Root-relative path in POSIX format (forward slashes)

        Returns:
            True if the path matches any ignore pattern
        """
        if self.matches_substring(relpath):
            return True
        return self.spec is not None and self.spec.match_file(relpath)

    def should_traverse(self, dirpath: str) -> bool:
        """Check if a directory should be traversed during scanning.

        Args:
            dirpath: Root-relative directory path in POSIX format

        Returns:
            True if the directory should be traversed
        """
        dirpath = dirpath.rstrip("/")
        if self.matches_substring(dirpath):
            return False

        # Add trailing slash to match directory patterns
        return not (self.spec is not None and self.spec.match_file(dirpath + "/"))
