"""Tests for file identity tick sources."""

import errno
import os
import sys

import pytest

from treewatch.identity import (
    BirthTimeTickSource,
    InodeTickSource,
    TickSource,
    XattrTickSource,
    get_tick_source,
)


def _xattr_supported(path) -> bool:
    if not XattrTickSource.is_supported():
        return False
    try:
        os.setxattr(path, "user.treewatch.probe", b"1")
    except OSError:
        return False
    return True


class TestInodeTickSource:
    """Inode numbers as ticks."""

    def test_read_is_inode(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("content")

        assert InodeTickSource().read(path) == os.stat(path).st_ino

    def test_survives_rename_and_rewrite(self, tmp_path):
        source = InodeTickSource()
        path = tmp_path / "file.txt"
        path.write_text("content")
        tick = source.read(path)

        moved = tmp_path / "moved.txt"
        path.rename(moved)
        moved.write_text("new content")

        assert source.read(moved) == tick

    def test_write_refused(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("content")

        with pytest.raises(PermissionError) as exc_info:
            InodeTickSource().write(path, 42)
        assert exc_info.value.errno == errno.EPERM
        assert not InodeTickSource.writable


class TestXattrTickSource:
    """Extended attribute ticks."""

    def test_unstamped_file_never_matches(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("content")
        if not _xattr_supported(path):
            pytest.skip("Extended attributes not available here")

        tick = XattrTickSource().read(path)

        # Negative, so never equal to a tick assigned at capture
        assert tick == -os.stat(path).st_ino
        assert tick < 0

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("content")
        if not _xattr_supported(path):
            pytest.skip("Extended attributes not available here")

        source = XattrTickSource()
        source.write(path, 123456789)

        assert source.read(path) == 123456789


class TestGetTickSource:
    """Test tick source selection."""

    @pytest.mark.skipif(sys.platform in ("darwin", "win32"), reason="auto prefers birth times there")
    def test_auto_without_root_uses_inode(self):
        assert isinstance(get_tick_source("auto"), InodeTickSource)

    @pytest.mark.skipif(sys.platform in ("darwin", "win32"), reason="auto prefers birth times there")
    def test_auto_probes_root_for_xattrs(self, tmp_path):
        supported = XattrTickSource.is_supported(tmp_path)
        expected = XattrTickSource if supported else InodeTickSource

        assert isinstance(get_tick_source("auto", tmp_path), expected)
        if supported:
            assert XattrTickSource.probe_attribute not in os.listxattr(tmp_path)

    def test_by_name(self):
        assert isinstance(get_tick_source("inode"), InodeTickSource)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown tick source"):
            get_tick_source("bogus")

    def test_birthtime_availability(self):
        if BirthTimeTickSource.is_supported():
            assert isinstance(get_tick_source("birthtime"), BirthTimeTickSource)
        else:
            with pytest.raises(ValueError, match="birth times"):
                get_tick_source("birthtime")

    def test_base_class_is_abstract(self, tmp_path):
        with pytest.raises(NotImplementedError):
            TickSource().read(tmp_path)
