"""File identity ("tick") sources.

A tick is an integer that follows a file across renames, moves and in-place
rewrites, and that a newly created file does not share. Change detection
correlates snapshot files with live files by tick alone.

Which metadata can serve as a tick depends on the platform:

* BirthTimeTickSource: creation time in nanoseconds (macOS, BSD, Windows).
  Duplicating a file may copy it verbatim, which is why snapshot capture
  repairs collisions.
* InodeTickSource: the inode number. Available everywhere, survives rename
  and in-place writes within one filesystem. A freed inode can be handed to
  a new file, which then correlates like a colliding birth time would.
* XattrTickSource: a tick stored in a user extended attribute (Linux).
  Snapshot capture assigns a fresh tick to every tracked file, so identities
  are never recycled. The only source that can write ticks back.

Birth times and inode numbers cannot be assigned through a portable API, so
those sources refuse writes with PermissionError.
"""

import errno
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Type

logger = logging.getLogger(__name__)


class TickSource:
    """Reads (and optionally writes) the identity tick of a file."""

    name = "abstract"
    writable = False
    assigns = False  # capture stamps a fresh tick on every file

    def read(self, path: Path) -> int:
        """Return the current tick of path."""
        raise NotImplementedError

    def write(self, path: Path, tick: int) -> None:
        """Assign tick to path.

        Raises:
            PermissionError: If the tick cannot be assigned
        """
        raise PermissionError(
            errno.EPERM,
            f"{self.name} ticks cannot be assigned",
            str(path),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class BirthTimeTickSource(TickSource):
    """Creation time in nanoseconds."""

    name = "birthtime"

    @staticmethod
    def is_supported() -> bool:
        """Check whether os.stat reports a birth time on this platform."""
        st = os.stat(os.curdir)
        return hasattr(st, "st_birthtime_ns") or hasattr(st, "st_birthtime")

    def read(self, path: Path) -> int:
        st = os.stat(path)
        birth_ns = getattr(st, "st_birthtime_ns", None)
        if birth_ns is not None:
            return birth_ns
        return int(st.st_birthtime * 1_000_000_000)


class InodeTickSource(TickSource):
    """Inode number of the file."""

    name = "inode"

    def read(self, path: Path) -> int:
        return os.stat(path).st_ino


class XattrTickSource(TickSource):
    """Tick stored in the user.treewatch.tick extended attribute.

    Capture stamps a fresh tick on every tracked file. A file without the
    attribute reads as its negated inode number, which never equals an
    assigned tick, so a new file reusing a freed inode is not mistaken for
    a deleted one.
    """

    name = "xattr"
    writable = True
    assigns = True
    attribute = "user.treewatch.tick"
    probe_attribute = "user.treewatch.probe"

    # ENOATTR is the BSD spelling; Linux reports ENODATA
    _MISSING = {errno.ENODATA, getattr(errno, "ENOATTR", errno.ENODATA)}
    _REFUSED = {errno.ENOTSUP, errno.EPERM, errno.EACCES}

    @classmethod
    def is_supported(cls, root: Optional[Path] = None) -> bool:
        """Check whether extended attributes can be set.

        Args:
            root: Directory to probe. Without it only the os module is checked.
        """
        if not hasattr(os, "setxattr"):
            return False
        if root is None:
            return True
        try:
            os.setxattr(root, cls.probe_attribute, b"1")
            os.removexattr(root, cls.probe_attribute)
        except OSError as e:
            logger.debug("Extended attributes unavailable under %s: %s", root, e)
            return False
        return True

    def read(self, path: Path) -> int:
        try:
            return int(os.getxattr(path, self.attribute))
        except OSError as e:
            if e.errno not in self._MISSING | self._REFUSED:
                raise
        return -os.stat(path).st_ino

    def write(self, path: Path, tick: int) -> None:
        try:
            os.setxattr(path, self.attribute, str(tick).encode("ascii"))
        except OSError as e:
            if e.errno in self._REFUSED:
                raise PermissionError(e.errno, e.strerror, str(path)) from e
            raise


TICK_SOURCES: Dict[str, Type[TickSource]] = {
    BirthTimeTickSource.name: BirthTimeTickSource,
    InodeTickSource.name: InodeTickSource,
    XattrTickSource.name: XattrTickSource,
}


def get_tick_source(name: str = "auto", root: Optional[Path] = None) -> TickSource:
    """Create a tick source by name.

    Args:
        name: "birthtime", "inode", "xattr", or "auto"
        root: Watched directory, used by "auto" to probe extended attributes

    Returns:
        TickSource instance

    Note:
        "auto" picks birth times on macOS and Windows when reported. Elsewhere
        it picks extended attributes when root accepts them. Inode numbers
        are only picked when neither is available, because a freed inode is
        handed to the next new file.

    Raises:
        ValueError: If name is unknown or the source is unsupported here
    """
    if name == "auto":
        if sys.platform in ("darwin", "win32") and BirthTimeTickSource.is_supported():
            name = BirthTimeTickSource.name
        elif root is not None and XattrTickSource.is_supported(root):
            name = XattrTickSource.name
        else:
            name = InodeTickSource.name
            logger.warning(
                "Using inode numbers as file identity; a file created after a "
                "deletion may be reported as a rename"
            )
        logger.debug("Auto-selected %s tick source", name)

    try:
        source_cls = TICK_SOURCES[name]
    except KeyError:
        raise ValueError(
            f"Unknown tick source {name!r}. "
            f"Choose from: auto, {', '.join(sorted(TICK_SOURCES))}"
        ) from None

    if source_cls is BirthTimeTickSource and not BirthTimeTickSource.is_supported():
        raise ValueError("This platform does not report file birth times")
    if source_cls is XattrTickSource and not XattrTickSource.is_supported():
        raise ValueError("This platform does not support extended attributes")

    return source_cls()
