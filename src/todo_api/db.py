from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _prepare_sqlite_path(url: str) -> dict:
    """
    Create the parent directory of a file-backed SQLite database and return
    the connect_args needed to share connections across FastAPI's threadpool.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {}
    database = parsed.database
    if database and database != ":memory:" and not database.startswith("file:"):
        os.makedirs(os.path.dirname(database) or ".", exist_ok=True)
    return {"check_same_thread": False}


# PUBLIC_INTERFACE
class Database:
    """
    Store connection owned by the application.

    Wraps a SQLAlchemy engine (and its connection pool) plus a session
    factory. One instance is created per application and handed to request
    handlers through the get_session dependency.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        connect_args = _prepare_sqlite_path(url)
        self.engine: Engine = create_engine(url, echo=echo, future=True, connect_args=connect_args)
        self._sessionmaker = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        session = self._sessionmaker()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        logger.debug("Disposing engine for %s", self.engine.url.render_as_string(hide_password=True))
        self.engine.dispose()


# PUBLIC_INTERFACE
def get_database(request: Request) -> Database:
    """Return the Database attached to the running application."""
    return request.app.state.database


# PUBLIC_INTERFACE
def get_session(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a request-scoped SQLAlchemy session.
    """
    with get_database(request).session() as session:
        yield session
