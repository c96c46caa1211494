"""Tests for taskflow.data.storage — KeyValueStore (SQLite JSON blobs)."""

import sqlite3

import pytest

from taskflow.data.storage import KeyValueStore, StorageCorruptError


class TestKeyValueStore:
    def test_read_missing_returns_default(self, kv):
        assert kv.read("nothing", []) == []
        assert kv.read("nothing") is None

    def test_write_then_read(self, kv):
        kv.write("users", [{"id": "1", "name": "A"}])
        assert kv.read("users", []) == [{"id": "1", "name": "A"}]

    def test_write_overwrites(self, kv):
        kv.write("k", 1)
        kv.write("k", {"nested": [1, 2]})
        assert kv.read("k") == {"nested": [1, 2]}

    def test_contains_and_remove(self, kv):
        assert kv.contains("k") is False
        kv.write("k", [])
        assert kv.contains("k") is True
        assert kv.remove("k") is True
        assert kv.contains("k") is False
        assert kv.remove("k") is False

    def test_empty_list_still_counts_as_written(self, kv):
        kv.write("users", [])
        assert kv.contains("users") is True

    def test_persists_across_instances(self, tmp_db_path):
        KeyValueStore(db_path=tmp_db_path).write("k", "v")
        assert KeyValueStore(db_path=tmp_db_path).read("k") == "v"

    def test_malformed_value_raises(self, kv, tmp_db_path):
        conn = sqlite3.connect(tmp_db_path)
        conn.execute("INSERT INTO kv (key, value) VALUES (?, ?)", ("events", "{not json"))
        conn.commit()
        conn.close()
        with pytest.raises(StorageCorruptError):
            kv.read("events", [])

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "db.sqlite"
        KeyValueStore(db_path=str(path)).write("k", 1)
        assert path.exists()
