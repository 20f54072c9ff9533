"""Document row model for the SQLite store backend."""

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class StoredDocument(SQLModel, table=True):
    __tablename__ = "documents"

    collection: str = Field(primary_key=True)  # 'users' | 'families' | 'planners'
    key: str = Field(primary_key=True)
    body: str  # JSON text
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
