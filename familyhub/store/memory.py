"""In-memory document store."""

import copy
import threading

from familyhub.store.base import COLLECTIONS, DocumentStore


class MemoryStore(DocumentStore):
    """Dict-backed store. Documents are deep-copied in and out."""

    def __init__(self, initial: dict[str, dict[str, dict]] | None = None):
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        for name, docs in (initial or {}).items():
            self._check_collection(name)
            self._data[name] = copy.deepcopy(docs)

    def get(self, collection: str, key: str) -> dict | None:
        self._check_collection(collection)
        with self._lock:
            doc = self._data[collection].get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def put(self, collection: str, key: str, document: dict) -> dict:
        self._check_collection(collection)
        with self._lock:
            self._data[collection][key] = copy.deepcopy(document)
            self._on_write()
            return copy.deepcopy(document)

    def list(self, collection: str) -> list[dict]:
        self._check_collection(collection)
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._data[collection].values()]

    def snapshot(self) -> dict[str, dict[str, dict]]:
        """Copy of the whole store, for persistence and debugging."""
        with self._lock:
            return copy.deepcopy(self._data)

    def _on_write(self) -> None:
        """Hook run after every write, with the lock held."""
