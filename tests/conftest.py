"""Shared test fixtures and utilities."""

import itertools
import os
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from treewatch.identity import TickSource


def _key(path) -> str:
    return os.path.realpath(path)


class FakeTickSource(TickSource):
    """In-memory tick source keyed by real path.

    Unknown files get fresh ticks spaced far apart, so perturbed values never
    collide by accident.

    Args:
        ticks: Initial path -> tick mapping
        sticky: If False, each path's first write is silently dropped
        refuse: If True, every write raises PermissionError
    """

    name = "fake"
    writable = True

    def __init__(self, ticks=None, sticky: bool = True, refuse: bool = False):
        self.ticks: Dict[str, int] = {_key(p): t for p, t in (ticks or {}).items()}
        self.sticky = sticky
        self.refuse = refuse
        self.writes: List[Tuple[str, int]] = []
        self._fresh = itertools.count(1_000_000, 1_000)
        self._dropped = set()

    def read(self, path: Path) -> int:
        key = _key(path)
        if key not in self.ticks:
            self.ticks[key] = next(self._fresh)
        return self.ticks[key]

    def write(self, path: Path, tick: int) -> None:
        key = _key(path)
        self.writes.append((key, tick))
        if self.refuse:
            raise PermissionError(1, "Operation not permitted", str(path))
        if not self.sticky and key not in self._dropped:
            self._dropped.add(key)
            return
        self.ticks[key] = tick

    def set(self, path, tick: int) -> None:
        self.ticks[_key(path)] = tick

    def rename(self, src: Path, dst: Path) -> None:
        """Rename a file and carry its tick along, like a real filesystem."""
        tick = self.read(src)
        dst.parent.mkdir(parents=True, exist_ok=True)
        src.rename(dst)
        del self.ticks[_key(src)]
        self.ticks[_key(dst)] = tick

    def writes_for(self, path) -> List[int]:
        key = _key(path)
        return [tick for written, tick in self.writes if written == key]


class ReadOnlyFakeTickSource(FakeTickSource):
    """Fake source that, like birth times and inodes, cannot be assigned."""

    writable = False


class StampingFakeTickSource(FakeTickSource):
    """Fake source that, like extended attributes, gets fresh ticks at capture."""

    assigns = True


@pytest.fixture
def fake_ticks():
    """Factory for FakeTickSource instances."""
    return FakeTickSource


@pytest.fixture
def readonly_ticks():
    """Factory for fake tick sources that cannot assign ticks."""
    return ReadOnlyFakeTickSource


@pytest.fixture
def stamping_ticks():
    """Factory for fake tick sources that are stamped on every capture."""
    return StampingFakeTickSource


@pytest.fixture
def write_file():
    """Factory fixture to write files, creating parent directories."""
    def _write(path: Path, content: str = "test content") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _write


@pytest.fixture
def project(tmp_path, write_file):
    """Create a small watched tree with nested directories."""
    root = tmp_path / "project"
    root.mkdir()

    write_file(root / "a.txt", "alpha beta gamma")
    write_file(root / "docs" / "readme.md", "read me first")
    write_file(root / "src" / "main.py", "print hello world")
    write_file(root / "src" / "util.py", "def helper return value")

    # Ignored by default
    write_file(root / "node_modules" / "dep" / "index.js", "module exports")
    write_file(root / ".git" / "HEAD", "ref: refs/heads/main")

    return root
