"""Document store interface.

Three collections of JSON documents keyed by a string. Each `put` replaces
one whole document; there are no cross-collection transactions.
"""

from abc import ABC, abstractmethod

USERS = "users"
FAMILIES = "families"
PLANNERS = "planners"

COLLECTIONS = (USERS, FAMILIES, PLANNERS)


class DocumentStore(ABC):
    """Key/document persistence with an explicit open/close lifecycle."""

    def open(self) -> None:
        """Prepare the backend. Called once at process start."""

    def close(self) -> None:
        """Flush and release resources. Called once at shutdown."""

    @abstractmethod
    def get(self, collection: str, key: str) -> dict | None:
        """Return a copy of the document, or None."""

    @abstractmethod
    def put(self, collection: str, key: str, document: dict) -> dict:
        """Replace the document stored under key and return a copy of it."""

    @abstractmethod
    def list(self, collection: str) -> list[dict]:
        """Return copies of every document in the collection."""

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")
