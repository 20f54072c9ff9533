"""Document store backends."""

from familyhub.store.base import COLLECTIONS, FAMILIES, PLANNERS, USERS, DocumentStore
from familyhub.store.json_file import JsonFileStore
from familyhub.store.memory import MemoryStore
from familyhub.store.sql import SqlDocumentStore

__all__ = [
    "COLLECTIONS",
    "FAMILIES",
    "PLANNERS",
    "USERS",
    "DocumentStore",
    "JsonFileStore",
    "MemoryStore",
    "SqlDocumentStore",
    "create_store",
]


def create_store(backend: str, **kwargs) -> DocumentStore:
    """Build a store for a configured backend name."""
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JsonFileStore(kwargs["path"])
    if backend == "sqlite":
        return SqlDocumentStore(kwargs["db_path"])
    raise ValueError(f"Unknown store backend: {backend}")
