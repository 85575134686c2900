"""
Module: payroll_store.db
Responsibility: SQLAlchemy engine initialization, session factory management
    and transactional scope for the SQL document backend.
Architecture position: Store > DB.  Imports only the ORM base; never services.

Invariants enforced:
    - One module-level engine and session factory per process.
    - In-memory SQLite URLs share a single connection (StaticPool) so every
      session sees the same database.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url().

Audit relevance:
    session_scope() gives commit-or-rollback semantics to every document
    write, so a failed save never leaves a half-written partition row.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from payroll_kernel.logging_config import get_logger

logger = get_logger("store.db")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the engine and session factory from a database URL.

    A second call replaces the first.  SQLite URLs skip the QueuePool
    options, which SQLite's pools do not accept.
    """
    global _engine, _SessionFactory

    backend = make_url(database_url).get_backend_name()
    if _is_memory_sqlite(database_url):
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    elif backend == "sqlite":
        _engine = create_engine(database_url, echo=echo)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={"dialect": backend, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    return get_session_factory()()


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    session_factory: Callable[[], Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Commits on normal exit; rolls back and re-raises on exception; always
    closes the session.
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


def create_tables() -> None:
    """Create the document table on the initialized engine."""
    from payroll_store.orm import Base

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from payroll_store.orm import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory. Used by tests."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None
