from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import inspect, text
from sqlmodel import Field, SQLModel, create_engine, Session

from . import config


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookStatus(str, Enum):
    DRAFT = "DRAFT"
    READY = "READY"
    FAILED = "FAILED"


class GiftBook(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True)
    source_csv: str
    part_index: Optional[int] = None
    total_parts: Optional[int] = None
    part_size: Optional[int] = None
    status: BookStatus = Field(default=BookStatus.DRAFT)
    fail_code: Optional[str] = None
    fail_detail: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Artifact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    book_id: int = Field(foreign_key="giftbook.id")
    type: str
    path: str
    created_at: datetime = Field(default_factory=_utcnow)


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)
    _migrate_db()


def _migrate_db() -> None:
    """Add part columns to databases created before multi-part books existed."""
    inspector = inspect(engine)
    if "giftbook" not in inspector.get_table_names():
        return
    columns = {col["name"] for col in inspector.get_columns("giftbook")}
    for column in ("part_index", "total_parts", "part_size"):
        if column not in columns:
            with engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE giftbook ADD COLUMN {column} INTEGER"))


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
