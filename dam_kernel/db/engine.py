"""
Module: dam_kernel.db.engine
Responsibility: Process-wide engine and session factory for the repository
    adapter, plus a transactional scope helper.
Architecture position: Kernel > DB.  create_tables/drop_tables import the
    models lazily so that the tables are registered on Base.metadata.

Invariants enforced:
    - Sessions use expire_on_commit=False; renditions read before a commit
      stay readable after it.
    - Server databases run at READ COMMITTED on a pre-pinging QueuePool.
      SQLite allows cross-thread use (batch workers) and pins in-memory
      databases to one StaticPool connection so every session sees the
      same schema.

Failure modes:
    - RuntimeError from any accessor called before init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from dam_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _engine_options(url: URL, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the engine and session factory (a second call replaces both).

    ``pool_size`` should cover the runner's ``max_workers``; it is ignored
    for SQLite.

    Args:
        database_url: e.g. ``postgresql://dam:secret@db/dam`` or ``sqlite://``.
        echo: Log every SQL statement.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    _engine = create_engine(
        url, echo=echo, **_engine_options(url, pool_size, max_overflow),
    )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "database": url.database, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Session factory for hosts that open one session per item.

    Wrap it with ``RepositorySession.factory()`` for ``ActionRunner``.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit; roll back and re-raise on error; always close.

    Usage:
        with session_scope() as session:
            session.add(AssetModel(path="/content/dam/a.jpg"))
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
    from dam_kernel.db.base import Base
    import dam_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    from dam_kernel.db.base import Base
    import dam_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())
    logger.info("tables_dropped")


def reset_engine() -> None:
    """Dispose the engine and forget the session factory. FOR TESTING ONLY."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
