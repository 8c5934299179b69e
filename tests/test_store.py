"""Tests for the run stores and the persistence factory."""

import json

import pytest

from specharness.config import Settings
from specharness.errors import InvalidPathError, StoreDisabledError
from specharness.store import (
    DisabledRunStore,
    FileRunStore,
    InMemoryRunStore,
    get_run_store,
    normalize_content,
    safe_filename,
    safe_run_id,
)


def _meta(created_at):
    return json.dumps({"runId": "x", "createdAt": created_at})


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    if request.param == "file":
        return FileRunStore(tmp_path / "runs")
    return InMemoryRunStore()


class TestPaths:

    @pytest.mark.parametrize("bad", ["", "  ", "..", "../up", "a/b", "/abs", "..\\up", "C:\\x"])
    def test_bad_run_ids(self, bad):
        with pytest.raises(InvalidPathError):
            safe_run_id(bad)

    @pytest.mark.parametrize("bad", ["", "../x", "a/../../x", "/etc/passwd", "..\\..\\x", "a/.."])
    def test_bad_filenames(self, bad):
        with pytest.raises(InvalidPathError):
            safe_filename(bad)

    def test_subfolders_allowed(self):
        assert safe_filename("assets\\img/logo.png") == "assets/img/logo.png"
        assert safe_filename("./report.html") == "report.html"

    def test_invalid_path_is_value_error(self):
        assert issubclass(InvalidPathError, ValueError)


class TestNormalizeContent:

    def test_kinds(self):
        assert normalize_content(b"\x00\x01") == b"\x00\x01"
        assert normalize_content("héllo") == "héllo".encode("utf-8")
        assert normalize_content(None) == b""
        assert json.loads(normalize_content({"a": 1})) == {"a": 1}
        assert b'\n  "a"' in normalize_content({"a": 1})


class TestStoreContract:

    def test_write_read(self, store):
        store.write("run-1", "report.html", "<html></html>")
        store.write("run-1", "nested/data.bin", b"\x01\x02")
        assert store.read("run-1", "report.html") == b"<html></html>"
        assert store.read("run-1", "nested/data.bin") == b"\x01\x02"
        assert store.exists("run-1")
        assert store.enabled is True

    def test_overwrite(self, store):
        store.write("run-1", "meta.json", "one")
        store.write("run-1", "meta.json", "two")
        assert store.read("run-1", "meta.json") == b"two"

    def test_read_missing(self, store):
        with pytest.raises(FileNotFoundError):
            store.read("nope", "report.html")

    def test_traversal_rejected(self, store):
        with pytest.raises(InvalidPathError):
            store.write("run-1", "../../escape.txt", "x")
        with pytest.raises(InvalidPathError):
            store.read("..", "meta.json")

    def test_list_newest_first(self, store):
        store.write("old", "meta.json", _meta("2024-01-01T00:00:00.000Z"))
        store.write("new", "meta.json", _meta("2025-06-01T00:00:00.000Z"))
        store.write("broken", "meta.json", "{not json")
        summaries = store.list()
        assert [s.run_id for s in summaries] == ["new", "old", "broken"]
        assert summaries[-1].created_at == ""
        assert summaries[0].model_dump(by_alias=True) == {
            "runId": "new", "createdAt": "2025-06-01T00:00:00.000Z",
        }

    def test_delete(self, store):
        store.write("run-1", "meta.json", "{}")
        assert store.delete("run-1") is True
        assert store.exists("run-1") is False
        assert store.delete("run-1") is False


class TestFileStore:

    def test_no_temp_files_left(self, tmp_path):
        store = FileRunStore(tmp_path)
        store.write("run-1", "report.pdf", b"%PDF-1.4")
        assert sorted(p.name for p in (tmp_path / "run-1").iterdir()) == ["report.pdf"]

    def test_files_stay_under_root(self, tmp_path):
        store = FileRunStore(tmp_path / "runs")
        store.write("run-1", "a/b.txt", "x")
        assert (tmp_path / "runs" / "run-1" / "a" / "b.txt").read_text() == "x"
        assert not (tmp_path / "escape.txt").exists()

    def test_list_missing_root(self, tmp_path):
        assert FileRunStore(tmp_path / "missing").list() == []


class TestDisabledStore:

    def test_contract(self):
        store = DisabledRunStore()
        store.write("run-1", "meta.json", "{}")
        assert store.enabled is False
        assert store.list() == []
        assert store.exists("run-1") is False
        assert store.delete("run-1") is False
        with pytest.raises(StoreDisabledError):
            store.read("run-1", "meta.json")


class TestFactory:

    def _settings(self, tmp_path, **flags):
        base = {"disable_runs_persist": None, "force_runs_persist": None, "vercel": None}
        base.update(flags)
        return Settings(specharness_runs_dir=str(tmp_path / "runs"), **base)

    def test_default_is_file_store(self, tmp_path):
        store = get_run_store(self._settings(tmp_path))
        assert isinstance(store, FileRunStore)
        assert store.root == (tmp_path / "runs").resolve()

    def test_disable_flag(self, tmp_path):
        assert isinstance(get_run_store(self._settings(tmp_path, disable_runs_persist="1")), DisabledRunStore)

    def test_vercel_disables_unless_forced(self, tmp_path):
        assert isinstance(get_run_store(self._settings(tmp_path, vercel="1")), DisabledRunStore)
        forced = get_run_store(self._settings(tmp_path, vercel="1", force_runs_persist="1"))
        assert isinstance(forced, FileRunStore)

    def test_disable_beats_force(self, tmp_path):
        store = get_run_store(self._settings(tmp_path, disable_runs_persist="1", force_runs_persist="1"))
        assert isinstance(store, DisabledRunStore)
