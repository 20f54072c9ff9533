"""SQLite-backed document store (one row per document)."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlmodel import select

from familyhub.database import create_db_engine, init_db, session_for
from familyhub.models.document import StoredDocument
from familyhub.store.base import DocumentStore

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    def __init__(self, db_path: Path):
        self._db_path = Path(db_path)
        self._engine = None

    def open(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_db_engine(self._db_path)
        init_db(self._engine)
        logger.info("SQLite document store opened: %s", self._db_path)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def get(self, collection: str, key: str) -> dict | None:
        self._check_collection(collection)
        with session_for(self._require_engine()) as session:
            row = session.get(StoredDocument, (collection, key))
            return json.loads(row.body) if row else None

    def put(self, collection: str, key: str, document: dict) -> dict:
        self._check_collection(collection)
        body = json.dumps(document, ensure_ascii=False)
        with session_for(self._require_engine()) as session:
            row = session.get(StoredDocument, (collection, key))
            if row is None:
                row = StoredDocument(collection=collection, key=key, body=body)
            else:
                row.body = body
                row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
        return json.loads(body)

    def list(self, collection: str) -> list[dict]:
        self._check_collection(collection)
        with session_for(self._require_engine()) as session:
            rows = session.exec(
                select(StoredDocument).where(StoredDocument.collection == collection)
            ).all()
            return [json.loads(row.body) for row in rows]

    def _require_engine(self):
        if self._engine is None:
            raise RuntimeError("Store is not open")
        return self._engine
