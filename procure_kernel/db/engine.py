"""
Module: procure_kernel.db.engine
Responsibility: One process-wide SQLAlchemy engine and session factory for
    the document repository, plus a commit-or-rollback session scope.
Architecture position: Kernel > DB.  ``create_tables`` is the only function
    that reaches outward, to register ``procure_services.orm`` on the
    metadata.

Dialects:
    - PostgreSQL (``postgresql+psycopg://``): pooled, READ COMMITTED.  The
      document row's version column is what serializes writers, so nothing
      stronger is needed.
    - SQLite: a single shared connection (StaticPool) so ``sqlite://``
      in-memory databases outlive individual sessions.

Calling any accessor before ``init_engine_from_url`` raises RuntimeError.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from procure_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Create the engine for ``database_url``, replacing any previous one.

    ``pool_options`` (pool_size, max_overflow, pool_timeout, ...) are passed
    to ``create_engine`` for server databases and ignored for SQLite.
    """
    global _engine, _sessions

    reset_engine()
    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        options = {"pool_pre_ping": True, "pool_recycle": 1800, **pool_options}
        _engine = create_engine(
            database_url,
            echo=echo,
            isolation_level="READ COMMITTED",
            **options,
        )
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """A new session bound to the current engine."""
    if _sessions is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

        with session_scope() as session:
            service = DocumentService(SqlDocumentRepository(session))
            service.transition("invoice", invoice_id, "submit", seller_org_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from procure_kernel.db.base import Base

    import procure_services.orm  # noqa: F401  (registers the document tables)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    from procure_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None
