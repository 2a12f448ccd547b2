"""
Tests for file_utils - location resolution, path comparison and BOM-free writes.
"""

import codecs
import os
import stat

import pytest

from infrastructure.utils import file_utils


class TestLocations:
    """Remote/local classification and resolution."""

    @pytest.mark.parametrize("location", [
        "http://example.com/a.xml",
        "https://example.com/a.xml",
        "ftp://example.com/a.xml",
    ])
    def test_remote(self, location):
        assert file_utils.is_remote_location(location)
        assert not file_utils.is_local_location(location)
        assert file_utils.resolve_location(location) == location

    @pytest.mark.parametrize("location", ["a.xml", "/tmp/a.xml", "C:\\docs\\a.xml", "file:///tmp/a.xml"])
    def test_local(self, location):
        assert not file_utils.is_remote_location(location)
        assert file_utils.is_local_location(location)

    def test_empty_location(self):
        assert not file_utils.is_remote_location(None)
        assert not file_utils.is_local_location("")

    def test_relative_resolved_against_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert file_utils.resolve_location("sub/a.xml") == str(tmp_path / "sub" / "a.xml")

    def test_relative_resolved_against_base(self, tmp_path):
        assert file_utils.resolve_location("a.xml", str(tmp_path)) == str(tmp_path / "a.xml")

    def test_file_uri(self, tmp_path):
        uri = (tmp_path / "a b.xml").as_uri()
        assert file_utils.resolve_location(uri) == str(tmp_path / "a b.xml")


class TestSamePath:

    def test_case_insensitive(self):
        assert file_utils.is_same_path("/Docs/Sample.XML", "/docs/sample.xml")

    def test_normalized(self):
        assert file_utils.is_same_path("/docs/./a/../sample.xml", "/docs/sample.xml")

    def test_different(self):
        assert not file_utils.is_same_path("/docs/a.xml", "/docs/b.xml")

    def test_missing_side(self):
        assert not file_utils.is_same_path(None, "/docs/a.xml")
        assert not file_utils.is_same_path("/docs/a.xml", "")


class TestAttributes:

    def test_last_write_time(self, tmp_path):
        path = tmp_path / "a.xml"
        path.write_bytes(b"<a/>")
        os.utime(path, (1000, 1000))
        assert file_utils.get_last_write_time(str(path)) == 1000

    def test_last_write_time_missing(self, tmp_path):
        assert file_utils.get_last_write_time(str(tmp_path / "missing.xml")) == 0.0

    def test_can_open_shared(self, tmp_path):
        path = tmp_path / "a.xml"
        path.write_bytes(b"<a/>")
        assert file_utils.can_open_shared(str(path))
        assert not file_utils.can_open_shared(str(tmp_path / "missing.xml"))

    def test_read_only(self, tmp_path):
        path = tmp_path / "a.xml"
        path.write_bytes(b"<a/>")
        os.chmod(path, stat.S_IRUSR)
        try:
            assert file_utils.is_read_only(str(path))
            assert file_utils.make_read_write(str(path)) is True
            assert not file_utils.is_read_only(str(path))
        finally:
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)

    def test_missing_file_attributes(self, tmp_path):
        missing = str(tmp_path / "missing.xml")
        assert file_utils.is_read_only(missing) is False
        assert file_utils.make_read_write(missing) is False


class TestWrites:

    @pytest.mark.parametrize("bom", [
        codecs.BOM_UTF8,
        codecs.BOM_UTF16_LE,
        codecs.BOM_UTF16_BE,
        codecs.BOM_UTF32_LE,
        codecs.BOM_UTF32_BE,
    ])
    def test_strip_byte_order_mark(self, bom):
        assert file_utils.strip_byte_order_mark(bom + b"<") == b"<"

    def test_utf32_le_not_mistaken_for_utf16(self):
        data = codecs.BOM_UTF32_LE + "<".encode("utf-32-le")
        assert file_utils.strip_byte_order_mark(data) == "<".encode("utf-32-le")

    def test_write_without_bom(self, tmp_path):
        path = tmp_path / "out.xml"
        count = file_utils.write_file_without_bom(codecs.BOM_UTF8 + b"<a/>", path)
        assert path.read_bytes() == b"<a/>"
        assert count == 4

    def test_atomic_write_replaces_and_keeps_mode(self, tmp_path):
        path = tmp_path / "out.xml"
        path.write_bytes(b"old")
        os.chmod(path, 0o640)

        file_utils.write_bytes_atomic(path, b"new")

        assert path.read_bytes() == b"new"
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o640
        assert [p.name for p in tmp_path.iterdir()] == ["out.xml"]


class TestSymlinkedPaths:
    """Paths through a linked directory match their real counterparts."""

    @pytest.fixture
    def linked(self, tmp_path):
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        (real_dir / "doc.xml").write_bytes(b"<a/>")
        link_dir = tmp_path / "link"
        try:
            link_dir.symlink_to(real_dir, target_is_directory=True)
        except OSError:
            pytest.skip("symlinks unavailable")
        return real_dir, link_dir

    def test_link_and_real_path_match(self, linked):
        real_dir, link_dir = linked
        assert file_utils.is_same_path(str(link_dir / "doc.xml"), str(real_dir / "doc.xml"))

    def test_renamed_away_file_still_matches(self, linked):
        real_dir, link_dir = linked
        (real_dir / "doc.xml").rename(real_dir / "moved.xml")
        assert file_utils.is_same_path(str(link_dir / "doc.xml"), str(real_dir / "doc.xml"))
        assert not file_utils.is_same_path(str(link_dir / "doc.xml"), str(real_dir / "moved.xml"))
