"""
Module: rental_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  Single point of database connection
    configuration for the kernel, the batch jobs and the CLI.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT
    import from services/, selectors/ or domain/ (create_tables imports
    models lazily so every table is registered on Base.metadata).

Invariants enforced:
    - PostgreSQL is the production backend.  Sessions run at READ COMMITTED
      with explicit row-level locking (SELECT ... FOR UPDATE) on lease
      accounts and sequence counters where lost updates must be prevented.
    - SQLite (tests, local runs) uses a single shared connection and emits
      its own BEGIN so that SAVEPOINTs behave as on PostgreSQL.
    - Ledger entries are append-only from the first session on: both
      init_engine_from_url() and create_tables() register the immutability
      listeners before any session can be opened.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url().
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from rental_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _install_sqlite_transaction_hooks(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN on pysqlite so SAVEPOINT works."""

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an Engine for ``database_url`` without touching module state.

    PostgreSQL URLs get a QueuePool at READ COMMITTED.  SQLite URLs get a
    StaticPool (one shared connection, so ``sqlite://`` in-memory databases
    survive across sessions) plus the transaction hooks above.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        _install_sqlite_transaction_hooks(engine)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Initialize the module-level engine and session factory.

    A second call overwrites the first.  All later get_engine/get_session
    calls use this engine.

    Args:
        database_url: SQLAlchemy URL (postgresql://... or sqlite://...).
        echo: If True, log all SQL statements.
        pool_options: Forwarded to build_engine() (pool_size, max_overflow, ...).

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)
    _register_model_listeners()

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory.

    The batch scheduler opens one session per landlord through this factory.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    On normal exit the session is committed and closed.  On exception it is
    rolled back and closed, and the exception is re-raised.

    Usage:
        with session_scope() as session:
            session.add(entity)
    """
    session = session_factory() if session_factory is not None else get_session()
    logger.debug("transaction_started")
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


def create_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined by the rental models.

    Args:
        engine: Engine to create tables on (defaults to the module engine).
    """
    from rental_kernel.db.base import Base
    import rental_kernel.models  # noqa: F401
    import rental_kernel.services.sequence_service  # noqa: F401

    target = engine or get_engine()
    Base.metadata.create_all(target)
    _register_model_listeners()


def _register_model_listeners() -> None:
    from rental_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)
