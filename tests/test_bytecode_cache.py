"""Tests for the on-disk compiled template cache."""

from __future__ import annotations

import errno
import logging
import marshal
import tempfile

import pytest

from sigil.bytecode_cache import _HEADER, SUFFIX, BytecodeCache, CachedUnit


def sample_unit() -> CachedUnit:
    code = compile("x = 1", "<test>", "exec")
    return CachedUnit(code, {"pages.home": 123}, (("title", "Untitled"),))


class TestPaths:
    def test_dotted_name_maps_to_directories(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        assert cache.path_for("users.index") == tmp_path / "users" / f"index{SUFFIX}"

    def test_single_segment(self, tmp_path):
        assert BytecodeCache(tmp_path).path_for("home") == tmp_path / f"home{SUFFIX}"

    def test_malformed_names_are_hashed(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        path = cache.path_for("../escape")
        assert path.parent == tmp_path / "_hashed"
        assert path.suffix == SUFFIX
        assert cache.path_for("../escape") == path


class TestStoreAndLoad:
    def test_roundtrip(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        path = cache.store("pages.home", sample_unit())
        assert path.is_file()
        unit = cache.load("pages.home")
        assert unit.dependencies == {"pages.home": 123}
        assert unit.props == (("title", "Untitled"),)
        namespace: dict = {}
        exec(unit.code, namespace)
        assert namespace["x"] == 1

    def test_no_temporary_files_left(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        cache.store("pages.home", sample_unit())
        assert [p.name for p in (tmp_path / "pages").iterdir()] == [f"home{SUFFIX}"]

    def test_failed_write_removes_temporary_file(self, tmp_path, monkeypatch):
        real_temporary_file = tempfile.NamedTemporaryFile

        class FullDisk:
            def __init__(self, **kwargs):
                self._handle = real_temporary_file(**kwargs)
                self.name = self._handle.name

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self._handle.close()

            def write(self, data):
                raise OSError(errno.ENOSPC, "No space left on device")

            def close(self):
                self._handle.close()

        monkeypatch.setattr(tempfile, "NamedTemporaryFile", FullDisk)
        cache = BytecodeCache(tmp_path)
        with pytest.raises(OSError, match="No space left"):
            cache.store("pages.home", sample_unit())
        assert list((tmp_path / "pages").iterdir()) == []
        assert cache.load("pages.home") is None

    def test_missing(self, tmp_path):
        assert BytecodeCache(tmp_path).load("pages.none") is None

    def test_foreign_header_ignored(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        path = cache.path_for("pages.home")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"SIGILC\x00old" + marshal.dumps(({}, None, None)))
        assert cache.load("pages.home") is None

    def test_corrupt_payload_warns(self, tmp_path, caplog):
        cache = BytecodeCache(tmp_path)
        path = cache.path_for("pages.home")
        path.parent.mkdir(parents=True)
        path.write_bytes(_HEADER + marshal.dumps("text"))
        with caplog.at_level(logging.WARNING, logger="sigil.bytecode_cache"):
            assert cache.load("pages.home") is None
        assert "corrupt" in caplog.text

    def test_unexpected_contents(self, tmp_path):
        cache = BytecodeCache(tmp_path)
        path = cache.path_for("pages.home")
        path.parent.mkdir(parents=True)
        path.write_bytes(_HEADER + marshal.dumps(([], None, "not code")))
        assert cache.load("pages.home") is None


class TestClear:
    def test_clear_counts_artifacts(self, tmp_path):
        cache = BytecodeCache(tmp_path / "cache")
        cache.store("a", sample_unit())
        cache.store("pages.b", sample_unit())
        assert cache.clear() == 2
        assert cache.load("a") is None

    def test_clear_missing_directory(self, tmp_path):
        assert BytecodeCache(tmp_path / "nowhere").clear() == 0
