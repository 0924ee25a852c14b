"""
Record store handle. Opened once at startup, closed at shutdown, passed to
the lifecycle manager and ledger. Any SQLAlchemy URL works; SQLite is the default.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from autotrade.core.errors import PersistenceError
from autotrade.storage.records import Base

logger = logging.getLogger("autotrade.storage")

DEFAULT_DATABASE_URL = "sqlite:///autotrade.db"


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


class Database:
    """Engine + session factory. Every unit of work goes through session()."""

    def __init__(self, url: str = DEFAULT_DATABASE_URL, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        kwargs = {}
        if self.url.startswith("sqlite"):
            # Writers wait up to `timeout` seconds on the SQLite file lock
            kwargs["connect_args"] = {"timeout": self.timeout, "check_same_thread": False}
            if _is_memory_sqlite(self.url):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_timeout"] = self.timeout
        try:
            self._engine = create_engine(self.url, **kwargs)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            self._engine = None
            raise PersistenceError(f"failed to open database: {e}") from e
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("Database opened: %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database closed")
        self._engine = None
        self._sessions = None

    def ping(self) -> bool:
        """True when the store answers a trivial query."""
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
        except PersistenceError as e:
            logger.warning("Database ping failed: %s", e.message)
            return False
        return True

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional scope: commit on success, rollback on error. SQLAlchemy errors become PersistenceError."""
        if self._sessions is None:
            raise PersistenceError("database is not open")
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"database error: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
