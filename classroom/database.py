"""Engine, session factory and the storage error boundary."""
from __future__ import annotations

import functools
import logging
import sqlite3
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")


def _build_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    # SQLite ignores ON DELETE CASCADE unless this is set per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db() -> Generator[Session, None, None]:
    """Provide a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def storage_boundary(action: str, fallback: Callable[[], T]) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Turn SQLAlchemy failures inside ``func(db, ...)`` into ``fallback()``.

    The session passed as the first argument is rolled back so it stays usable
    for the caller.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(db: Session, *args, **kwargs) -> T:
            try:
                return func(db, *args, **kwargs)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Storage failure while trying to %s", action)
                return fallback()

        return wrapper

    return decorator
