"""Tests for storage module."""
import json
import logging

import pytest

from grocery_ledger import storage
from grocery_ledger.ledger import Entry, Ledger, LedgerError


class TestJsonStore:
    """Tests for the directory-backed store."""

    def test_get_missing_returns_none(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        assert store.get("tableData") is None

    def test_set_and_get(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        store.set("tableData", [{"item": "Melk", "brand": "Tine", "available": 2}])

        assert store.get("tableData") == [{"item": "Melk", "brand": "Tine", "available": 2}]
        assert (tmp_path / "tableData.json").exists()

    def test_set_creates_directory(self, tmp_path):
        data_dir = tmp_path / "nested" / "data"
        storage.JsonStore(data_dir).set("tableData", [])

        assert (data_dir / "tableData.json").exists()

    def test_set_writes_utf8_readable_json(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        store.set("tableData", [{"item": "Brød", "brand": "Bakeriet", "available": 1}])

        content = (tmp_path / "tableData.json").read_text(encoding="utf-8")
        assert "Brød" in content

    def test_set_leaves_no_temp_files(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        store.set("tableData", [])
        store.set("tableData", [{"item": "Milk", "brand": "", "available": 1}])

        assert [p.name for p in tmp_path.iterdir()] == ["tableData.json"]

    def test_delete(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        store.set("tableData", [])
        store.delete("tableData")

        assert not (tmp_path / "tableData.json").exists()
        assert store.get("tableData") is None

    def test_delete_missing_is_ok(self, tmp_path):
        storage.JsonStore(tmp_path).delete("tableData")

    def test_undecodable_file_returns_none(self, tmp_path, caplog):
        (tmp_path / "tableData.json").write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="grocery_ledger.storage"):
            assert storage.JsonStore(tmp_path).get("tableData") is None
        assert "Failed to read" in caplog.text

    def test_key_is_made_filename_safe(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        assert store.path_for("../evil key") == tmp_path / "___evil_key.json"

    def test_default_directory(self):
        assert storage.JsonStore().directory == storage.DEFAULT_DATA_DIR


class TestMemoryStore:
    """Tests for the in-process store."""

    def test_set_get_delete(self):
        store = storage.MemoryStore()
        store.set("k", [1, 2])
        assert store.get("k") == [1, 2]
        assert "k" in store

        store.delete("k")
        assert store.get("k") is None
        assert "k" not in store

    def test_get_returns_independent_copy(self):
        store = storage.MemoryStore()
        store.set("k", [{"a": 1}])
        store.get("k")[0]["a"] = 2

        assert store.get("k") == [{"a": 1}]

    def test_undecodable_raw_value(self):
        store = storage.MemoryStore()
        store.set_raw("k", "[{")
        assert store.get("k") is None


class TestEncodeDecode:
    """Tests for entry snapshot encoding."""

    def test_decode_entries(self):
        data = [
            {"item": "Milk", "brand": "A", "available": 2},
            {"item": "Eggs", "brand": "B", "available": -1},
        ]
        assert storage.decode_entries(data) == [Entry("Milk", "A", 2), Entry("Eggs", "B", -1)]

    def test_decode_not_a_list(self):
        with pytest.raises(LedgerError):
            storage.decode_entries({"item": "Milk"})

    def test_decode_not_objects(self):
        with pytest.raises(LedgerError):
            storage.decode_entries(["Milk"])

    def test_encode_entries(self):
        assert storage.encode_entries([Entry("Milk", "A", 2)]) == [
            {"item": "Milk", "brand": "A", "available": 2}
        ]


class TestLoadEntries:
    """Tests for load_entries and save_entries."""

    def test_absent_snapshot_is_empty(self, tmp_path):
        assert storage.load_entries(storage.JsonStore(tmp_path)) == []

    @pytest.mark.parametrize("content", [
        '"just a string"',
        '{"item": "Milk"}',
        '[{"item": "Milk", "brand": "A", "available": "many"}]',
        '[{"item": "Milk", "brand": "A", "available": null}]',
        '[{"item": "", "brand": "A", "available": 1}]',
        '[42]',
    ])
    def test_malformed_snapshot_is_empty(self, tmp_path, caplog, content):
        """Snapshots that don't decode to entries are treated as no data."""
        (tmp_path / "tableData.json").write_text(content, encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="grocery_ledger.storage"):
            assert storage.load_entries(storage.JsonStore(tmp_path)) == []
        assert "Ignoring stored snapshot" in caplog.text

    def test_save_then_load(self, tmp_path):
        store = storage.JsonStore(tmp_path)
        entries = [Entry("Milk", "A", 2), Entry("Eggs", "", 12)]
        storage.save_entries(store, entries)

        assert storage.load_entries(store) == entries
        assert json.loads((tmp_path / "tableData.json").read_text(encoding="utf-8")) == [
            {"item": "Milk", "brand": "A", "available": 2},
            {"item": "Eggs", "brand": "", "available": 12},
        ]

    def test_ledger_survives_restart(self, tmp_path):
        """A ledger written by one session is read back by the next."""
        first = Ledger.load(storage.JsonStore(tmp_path))
        first.add_or_merge(Entry("Milk", "A", 2))
        first.add_or_merge(Entry("Milk", "A", 3))

        second = Ledger.load(storage.JsonStore(tmp_path))
        assert second.entries == [Entry("Milk", "A", 5)]
