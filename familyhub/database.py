"""Database connection and initialization for the SQLite store backend."""

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from familyhub.config import settings

# Import all models so SQLModel registers them
import familyhub.models  # noqa: F401


def create_db_engine(db_path: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_path}",
        echo=settings.debug,
        connect_args={"check_same_thread": False},
    )


def init_db(engine: Engine) -> None:
    """Create all tables and enable WAL mode."""
    SQLModel.metadata.create_all(engine)

    # Enable WAL mode for better concurrent read performance
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.exec_driver_sql("PRAGMA synchronous=NORMAL")
        conn.commit()


def session_for(engine: Engine) -> Session:
    return Session(engine)
