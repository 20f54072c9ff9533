"""Single-file JSON document store."""

import json
import logging
import os
import tempfile
from pathlib import Path

from familyhub.store.base import COLLECTIONS
from familyhub.store.memory import MemoryStore

logger = logging.getLogger(__name__)


class JsonFileStore(MemoryStore):
    """Keeps the store in memory and rewrites one JSON file on every write.

    If the file cannot be written (read-only deployment), persistence is
    switched off and the store keeps serving from memory.
    """

    def __init__(self, path: Path):
        super().__init__()
        self._path = Path(path)
        self._can_persist = True

    @property
    def path(self) -> Path:
        return self._path

    @property
    def persistent(self) -> bool:
        return self._can_persist

    def open(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not self._path.exists():
                self._write_file()
                return
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning("Failed to read store file %s, using empty store: %s", self._path, e)
            self._can_persist = False
            return

        with self._lock:
            for name in COLLECTIONS:
                docs = raw.get(name)
                self._data[name] = docs if isinstance(docs, dict) else {}
        logger.info(
            "Store loaded from %s: %s",
            self._path,
            ", ".join(f"{name}={len(self._data[name])}" for name in COLLECTIONS),
        )

    def close(self) -> None:
        with self._lock:
            self._write_file()

    def _on_write(self) -> None:
        self._write_file()

    def _write_file(self) -> None:
        if not self._can_persist:
            return
        try:
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".store-", suffix=".json")
        except OSError as e:
            self._disable_persistence(e)
            return
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except OSError as e:
            self._remove_temp(tmp)
            self._disable_persistence(e)
        except Exception:
            self._remove_temp(tmp)
            raise

    def _disable_persistence(self, error: OSError) -> None:
        self._can_persist = False
        logger.warning("Store persistence disabled (read-only environment?): %s", error)

    @staticmethod
    def _remove_temp(tmp: str) -> None:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temp store file %s: %s", tmp, e)
