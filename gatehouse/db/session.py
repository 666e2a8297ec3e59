from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from gatehouse.db.base import Base

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBRuntime:
    engine: Engine
    SessionLocal: sessionmaker

    def create_schema(self) -> None:
        # Importing models registers the tables on Base.metadata.
        from gatehouse.db import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def create_engine_and_sessionmaker(database_url: str, *, echo: bool = False) -> DBRuntime:
    """Create the SQLAlchemy engine + sessionmaker used for the lifetime of the app.

    Notes:
      - SQLite needs check_same_thread=False because FastAPI runs sync handlers on a threadpool.
      - SQLite file DBs use NullPool; pooled connections there mostly produce "database is locked".
    """
    is_sqlite = database_url.startswith("sqlite")

    connect_args: dict = {}
    if is_sqlite:
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 5

    engine_kwargs = dict(
        echo=echo,
        future=True,
        connect_args=connect_args,
        pool_pre_ping=True,
    )
    if is_sqlite:
        engine_kwargs["poolclass"] = NullPool

    engine = create_engine(database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=5000")
            except Exception:
                logger.warning("Could not apply SQLite pragmas", exc_info=True)
            finally:
                cursor.close()

    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return DBRuntime(engine=engine, SessionLocal=SessionLocal)
