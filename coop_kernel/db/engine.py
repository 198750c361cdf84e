"""
Module: coop_kernel.db.engine
Responsibility: The process-wide SQLAlchemy engine behind the SQL dataset
    store, plus the transaction helper every store operation runs in.
Architecture position: Kernel > DB.  Imports db/base.py and, lazily, the
    ORM models when creating or dropping tables.  Nothing from domain/ or
    the outer layers.

Invariants enforced:
    - session_scope() commits only when its block finishes cleanly and
      always closes the session.
    - An in-memory SQLite database lives on a single shared connection.

Failure modes:
    - RuntimeError from get_engine/get_session_factory/session_scope when no
      URL has been configured with init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from coop_kernel.db.base import Base
from coop_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_READY = "No database configured; call init_engine_from_url() first."

_engine: Engine | None = None
_factory: sessionmaker[Session] | None = None


def _engine_options(database_url: str, echo: bool) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # A fresh connection would see a fresh, empty database
        return {
            "echo": echo,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {"echo": echo, "pool_pre_ping": True}


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """
    Point the module at ``database_url`` (``sqlite:///coop_ledger.db``,
    ``sqlite://`` or any other SQLAlchemy URL).  Calling it again disposes
    the previous engine.
    """
    global _engine, _factory

    reset_engine()
    _engine = create_engine(database_url, **_engine_options(database_url, echo))
    _factory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "database": make_url(database_url).database},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _factory is None:
        raise RuntimeError(_NOT_READY)
    return _factory


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Iterator[Session]:
    """
    One unit of work::

        with session_scope(factory) as session:
            session.add(row)

    The session commits when the block exits normally.  If the block (or
    the commit) raises, the session is rolled back and the error propagates.
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _registered_metadata():
    import coop_kernel.models  # noqa: F401  registers coop_year_datasets

    return Base.metadata


def create_tables(engine: Engine | None = None) -> None:
    """Create any missing tables.  Existing tables and rows are left alone."""
    _registered_metadata().create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every ledger table, data included."""
    _registered_metadata().drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose of the engine and forget the configured URL."""
    global _engine, _factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _factory = None


atexit.register(reset_engine)
