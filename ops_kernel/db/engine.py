"""
Module: ops_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, the session factory and
    the transactional scope helper.  The single place where the database
    connection is configured.
Architecture position: Kernel > DB.  May import from db/ only, except
    create_tables(), which imports the ORM registry so every module table
    is created.

Invariants enforced:
    - SQLite is the supported backend.  Every connection runs
      ``PRAGMA foreign_keys=ON`` so history rows cannot point at missing
      entities.
    - In-memory databases use a single shared connection (StaticPool) so
      every session sees the same schema and data.
    - Initializing an engine registers the ORM immutability listeners, so
      no session it hands out can rewrite history or sticky audit flags.
    - Sessions do not expire objects on commit; services hand out DTOs built
      from rows that were just committed.

Failure modes:
    - RuntimeError if get_engine/get_session is called before
      init_engine_from_url().

Audit relevance:
    An entity update and its history row share one session transaction, so
    they are written together or not at all.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ops_kernel.db.immutability import register_immutability_listeners
from ops_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_url(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in database_url


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """
    Initialize the engine for a SQLite URL.

    ``sqlite:///path.db`` opens a file database, ``sqlite://`` a private
    in-memory one.  Calling again replaces the current engine without
    disposing it; use reset_engine() for that.
    """
    global _engine, _SessionFactory

    in_memory = _is_memory_url(database_url)
    options: dict = {"echo": echo}
    if in_memory:
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})

    engine = create_engine(database_url, **options)
    event.listen(engine, "connect", _enable_foreign_keys)
    register_immutability_listeners()

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "in_memory": in_memory, "echo": echo},
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session bound to the current engine.  The caller closes it."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

    Usage:
        with session_scope() as session:
            SettingsService(session, "requests").seed_defaults(defaults)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_triggers: bool = True) -> None:
    """
    Create every mapped table, then (by default) the immutability triggers.

    Idempotent: existing tables and triggers are left as they are.
    """
    from ops_kernel.db.base import Base
    from ops_modules._orm_registry import import_all_orm_models

    engine = get_engine()
    import_all_orm_models()
    Base.metadata.create_all(engine)

    if install_triggers:
        from ops_kernel.db.triggers import install_immutability_triggers

        install_immutability_triggers(engine)


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()


atexit.register(_dispose_at_exit)
