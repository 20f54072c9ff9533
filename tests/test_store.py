"""Document store backends."""

import json
import os

import pytest

from familyhub.store import FAMILIES, PLANNERS, USERS, JsonFileStore, MemoryStore, SqlDocumentStore, create_store


def test_memory_store_copies_in_and_out():
    store = MemoryStore()
    doc = {"username": "ana", "tags": ["a"]}
    store.put(USERS, "ana", doc)
    doc["tags"].append("b")

    loaded = store.get(USERS, "ana")
    assert loaded == {"username": "ana", "tags": ["a"]}
    loaded["tags"].append("c")
    assert store.get(USERS, "ana")["tags"] == ["a"]


def test_memory_store_miss_and_list():
    store = MemoryStore()
    assert store.get(FAMILIES, "nope") is None
    store.put(FAMILIES, "f1", {"id": "f1"})
    store.put(FAMILIES, "f2", {"id": "f2"})
    assert sorted(d["id"] for d in store.list(FAMILIES)) == ["f1", "f2"]
    assert store.list(PLANNERS) == []


def test_unknown_collection_rejected():
    with pytest.raises(KeyError):
        MemoryStore().get("widgets", "x")


def test_json_store_persists_across_reopen(tmp_path):
    path = tmp_path / "data" / "store.json"
    store = JsonFileStore(path)
    store.open()
    store.put(USERS, "ana", {"username": "ana"})
    store.put(PLANNERS, "ana", {"entries": []})
    store.close()

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["users"]["ana"] == {"username": "ana"}
    assert raw["families"] == {}

    reopened = JsonFileStore(path)
    reopened.open()
    assert reopened.get(USERS, "ana") == {"username": "ana"}
    assert reopened.get(PLANNERS, "ana") == {"entries": []}


def test_json_store_bad_file_falls_back_to_memory(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)
    store.open()
    assert not store.persistent

    store.put(USERS, "ana", {"username": "ana"})
    assert store.get(USERS, "ana") == {"username": "ana"}
    assert path.read_text(encoding="utf-8") == "{not json"


def test_json_store_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "store.json"
    store = JsonFileStore(path)
    store.open()

    def refuse(src, dst):
        raise PermissionError("read-only")

    monkeypatch.setattr(os, "replace", refuse)
    store.put(USERS, "ana", {"username": "ana"})

    assert not store.persistent
    assert store.get(USERS, "ana") == {"username": "ana"}
    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


def test_json_store_unserializable_document_cleans_up(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileStore(path)
    store.open()

    with pytest.raises(TypeError):
        store.put(USERS, "ana", {"tags": {"a"}})
    assert store.persistent
    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


def test_sql_store_roundtrip(tmp_path):
    store = SqlDocumentStore(tmp_path / "familyhub.db")
    store.open()
    try:
        store.put(FAMILIES, "fam_1", {"id": "fam_1", "name": "Smiths"})
        store.put(FAMILIES, "fam_1", {"id": "fam_1", "name": "Smith family"})
        store.put(USERS, "ana", {"username": "ana"})

        assert store.get(FAMILIES, "fam_1") == {"id": "fam_1", "name": "Smith family"}
        assert store.get(FAMILIES, "missing") is None
        assert store.list(FAMILIES) == [{"id": "fam_1", "name": "Smith family"}]
        assert len(store.list(USERS)) == 1
    finally:
        store.close()


def test_sql_store_requires_open(tmp_path):
    store = SqlDocumentStore(tmp_path / "x.db")
    with pytest.raises(RuntimeError):
        store.get(USERS, "ana")


def test_create_store_backends(tmp_path):
    assert isinstance(create_store("memory"), MemoryStore)
    assert isinstance(create_store("json", path=tmp_path / "s.json"), JsonFileStore)
    assert isinstance(create_store("sqlite", db_path=tmp_path / "s.db"), SqlDocumentStore)
    with pytest.raises(ValueError):
        create_store("redis")
