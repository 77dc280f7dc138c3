"""SQLite key/value store on SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session, sessionmaker

from storage.schemas import Base, KeyValueRecord, utc_now

logger = logging.getLogger("st.kv")

_MISSING = object()


class KeyValueStore:
    """String-keyed JSON values persisted in a single SQLite table.

    Reads raise ``ValueError`` when a stored cell is not valid JSON; callers
    decide how to degrade.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        self._session_factory = sessionmaker(bind=self.engine, future=True)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """One transaction per call; committed on exit, rolled back on error."""
        with self._session_factory.begin() as sess:
            yield sess

    def get(self, key: str, default: Any = None) -> Any:
        with self.session() as sess:
            row = sess.execute(
                select(KeyValueRecord.key, KeyValueRecord.value).where(KeyValueRecord.key == key)
            ).first()
            if row is None:
                return default
            return row.value

    def contains(self, key: str) -> bool:
        with self.session() as sess:
            found = sess.scalar(select(KeyValueRecord.key).where(KeyValueRecord.key == key))
        return found is not None

    def set(self, key: str, value: Any) -> None:
        # Upsert without loading the old cell, so a corrupt value can be overwritten.
        stmt = insert(KeyValueRecord).values(key=key, value=value, updated_at=utc_now())
        stmt = stmt.on_conflict_do_update(
            index_elements=[KeyValueRecord.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        with self.session() as sess:
            sess.execute(stmt)
        logger.debug("Stored key %s", key)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        with self.session() as sess:
            sess.execute(delete(KeyValueRecord).where(KeyValueRecord.key.in_(keys)))

    def keys(self, prefix: str = "") -> list[str]:
        with self.session() as sess:
            stmt = select(KeyValueRecord.key).order_by(KeyValueRecord.key)
            if prefix:
                stmt = stmt.where(KeyValueRecord.key.startswith(prefix, autoescape=True))
            return list(sess.scalars(stmt))
