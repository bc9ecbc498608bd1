"""
Database engine and session helpers.

The engine is created lazily so importing app modules never opens a connection.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings

SessionFactory = Callable[[], ContextManager[Session]]


class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None) -> None:
        self._database_url = database_url
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            settings = get_settings()
            url = self._database_url or settings.database_url
            self._engine = create_engine(
                url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
                pool_recycle=300,
            )
        return self._engine

    @property
    def session_local(self) -> sessionmaker:
        if self._sessionmaker is None:
            self._sessionmaker = sessionmaker(
                autocommit=False, autoflush=False, bind=self.engine
            )
        return self._sessionmaker

    @contextmanager
    def db_session(self) -> Iterator[Session]:
        """Session for work outside a request (tasks, per-event processing)."""
        db = self.session_local()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


db_manager = DatabaseManager()


def get_db():
    db = db_manager.session_local()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> SessionFactory:
    """FastAPI dependency: factory of independent sessions for concurrent event work."""
    return db_manager.db_session
