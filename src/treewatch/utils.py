"""Utility functions for treewatch."""

from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, List, Tuple
import os
import shutil
import stat
import tempfile

if TYPE_CHECKING:
    from .ignore import IgnoreSpec


# ============= File Attributes =============

def is_read_only(path: Path) -> bool:
    """Check if the owner lacks write permission on a file."""
    return not (path.stat().st_mode & stat.S_IWUSR)


def set_read_only(path: Path, read_only: bool) -> None:
    """Set or clear the read-only attribute of a file.

    On Windows os.chmod only toggles FILE_ATTRIBUTE_READONLY, which is
    exactly the attribute we care about.
    """
    mode = path.stat().st_mode
    if read_only:
        mode &= ~(stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)
    else:
        mode |= stat.S_IWUSR
    os.chmod(path, stat.S_IMODE(mode))


# ============= Copy & Read =============

def copy_file(src: Path, dst: Path) -> None:
    """Copy file content (not metadata) to dst, creating parents as needed."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


def read_text(path: Path) -> str:
    """Read a whole file as text. Undecodable bytes become U+FFFD."""
    return path.read_text(encoding="utf-8", errors="replace")


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically write text to file with crash safety.

    Writes to a temp file in the same directory, fsyncs it, then renames it
    over the target so readers never see a partial file.

    Args:
        path: Target file path
        text: Text content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix="",
        encoding="utf-8",
    ) as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
        tmp = Path(f.name)

    try:
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


# ============= Tree Enumeration =============

def walk_tree(root: Path, ignore: "IgnoreSpec") -> Tuple[List[str], List[str]]:
    """Enumerate a tree, skipping ignored paths.

    Ignored directories are pruned, so nothing below them is visited.

    Args:
        root: Directory to enumerate
        ignore: Ignore specification applied to root-relative paths

    Returns:
        (directories, files) as sorted root-relative POSIX paths
    """
    directories: List[str] = []
    files: List[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath).relative_to(root)

        kept = []
        for name in sorted(dirnames):
            relpath = (base / name).as_posix()
            if ignore.should_traverse(relpath):
                kept.append(name)
                directories.append(relpath)
        # Prune in place so os.walk skips ignored subtrees
        dirnames[:] = kept

        for name in filenames:
            relpath = (base / name).as_posix()
            if not ignore.is_ignored(relpath):
                files.append(relpath)

    return sorted(directories), sorted(files)


# ============= Display Helpers =============

def get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO 8601 format."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def format_timestamp(iso_string: str) -> str:
    """Format a manifest timestamp for display, e.g. "2026-10-18 09:30 UTC".

    Unparseable input is returned unchanged.
    """
    try:
        moment = datetime.fromisoformat(iso_string.rstrip("Z"))
    except (ValueError, AttributeError):
        return iso_string
    return moment.strftime("%Y-%m-%d %H:%M UTC")
