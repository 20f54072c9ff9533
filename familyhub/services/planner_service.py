"""Per-user planner documents."""

import logging
import threading

from familyhub.errors import Conflict, NotFound
from familyhub.schemas.planner import PlannerEntry
from familyhub.services.directory_service import DirectoryService
from familyhub.store import PLANNERS, DocumentStore
from familyhub.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


class PlannerService:
    def __init__(self, store: DocumentStore, directory: DirectoryService):
        self._store = store
        self._directory = directory
        self._locks = KeyedLock()
        # Share codes are unique across every planner
        self._share_lock = threading.Lock()

    def _load(self, username: str) -> list[PlannerEntry]:
        doc = self._store.get(PLANNERS, username) or {}
        return [PlannerEntry.model_validate(e) for e in doc.get("entries", [])]

    def get_planner(self, username: str) -> list[PlannerEntry]:
        self._directory.get_user(username)
        return self._load(username)

    def replace_planner(self, username: str, entries: list[PlannerEntry]) -> list[PlannerEntry]:
        """Overwrite the user's whole entry list."""
        self._directory.get_user(username)

        ids = [e.id for e in entries]
        if len(ids) != len(set(ids)):
            raise Conflict("Duplicate entry id in planner")
        codes = [e.share_code for e in entries if e.share_code]
        if len(codes) != len(set(codes)):
            raise Conflict("Duplicate share code in planner")

        with self._locks.hold(username), self._share_lock:
            if codes:
                taken = self._share_codes(exclude=username)
                clash = next((c for c in codes if c in taken), None)
                if clash:
                    raise Conflict(f"Share code {clash} is already in use")

            payload = {"entries": [e.model_dump(mode="json") for e in entries]}
            stored = self._store.put(PLANNERS, username, payload)

        logger.info("Planner replaced for %s: %d entries", username, len(entries))
        return [PlannerEntry.model_validate(e) for e in stored["entries"]]

    def find_by_share_code(self, code: str) -> tuple[str, PlannerEntry]:
        """Return (owner username, entry) for a share code."""
        for username, entries in self._all_entries():
            for entry in entries:
                if entry.share_code == code:
                    return username, entry
        raise NotFound("We could not find an entry with that code")

    def _share_codes(self, exclude: str | None = None) -> set[str]:
        return {
            entry.share_code
            for username, entries in self._all_entries()
            if username != exclude
            for entry in entries
            if entry.share_code
        }

    def _all_entries(self):
        for user in self._directory.list_users():
            yield user.username, self._load(user.username)
