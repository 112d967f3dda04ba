"""Key-value preference stores.

The credential blob and the app settings both live in a generic store that
maps a string key to raw bytes.  ``InMemoryPreferenceStore`` backs tests;
``SqlPreferenceStore`` persists to any SQLAlchemy database (SQLite by
default for the desktop app).
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, DateTime, LargeBinary, MetaData, String, Table, create_engine, delete, insert, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from mfa.core.time import utc_now
from mfa.otp.domain.exceptions import StorageIOError

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Get/set raw bytes by key."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryPreferenceStore:
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._data)


metadata = MetaData()

preference_table = Table(
    "preference",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", LargeBinary, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class SqlPreferenceStore:
    """Preference store backed by a single SQLAlchemy table.

    ``set`` deletes and inserts inside one transaction, so readers see either
    the previous value or the new one.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StorageIOError(f"could not initialise preference table: {exc}") from exc

    @classmethod
    def from_url(cls, url: str) -> "SqlPreferenceStore":
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite":
            database = parsed.database
            if not database or database == ":memory:":
                engine = create_engine(
                    url,
                    future=True,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
                return cls(engine)
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return cls(create_engine(url, future=True))

    def get(self, key: str) -> Optional[bytes]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(preference_table.c.value).where(preference_table.c.key == key)
                ).first()
        except SQLAlchemyError as exc:
            logger.error(
                "Preference read failed",
                extra={"event": "preferences.read.failed", "key": key},
            )
            raise StorageIOError(f"could not read preference {key!r}") from exc
        if row is None:
            return None
        return bytes(row[0])

    def set(self, key: str, value: bytes) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(preference_table).where(preference_table.c.key == key))
                conn.execute(
                    insert(preference_table).values(key=key, value=bytes(value), updated_at=utc_now())
                )
        except SQLAlchemyError as exc:
            logger.error(
                "Preference write failed",
                extra={"event": "preferences.write.failed", "key": key},
            )
            raise StorageIOError(f"could not write preference {key!r}") from exc

    def delete(self, key: str) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(preference_table).where(preference_table.c.key == key))
        except SQLAlchemyError as exc:
            raise StorageIOError(f"could not delete preference {key!r}") from exc
