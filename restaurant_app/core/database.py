from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from restaurant_app.core.config import DATABASE_URL
from restaurant_app.core.errors import StorageError

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is on for each connection
    if not type(dbapi_connection).__module__.startswith("sqlite3"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run the block as one unit of work: commit on success, rollback on any error.

    Store failures surface as ``StorageError``; domain errors propagate untouched.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Transaction rolled back after storage failure")
        raise StorageError() from exc
    except Exception:
        db.rollback()
        raise


@contextmanager
def reading(db: Session) -> Iterator[Session]:
    """Read-only counterpart of ``transaction``: nothing to commit, but store
    failures still roll the session back and surface as ``StorageError``."""
    try:
        yield db
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Read aborted after storage failure")
        raise StorageError() from exc
