"""Database engine and session management."""
from contextlib import contextmanager
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base

# Base class for declarative models
Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a database engine.

    SQLite connections are shared across the worker threads used for
    storage calls, so the same-thread check is disabled for them.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine: SQLAlchemy engine
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        connect_args=connect_args,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(engine: Engine) -> None:
    """
    Create all tables that do not exist yet.

    Args:
        engine: SQLAlchemy engine
    """
    # Register models with Base before creating tables
    from fairshares.models.address import PoolAddress  # noqa: F401
    from fairshares.models.stats import Balance, WorkerChartPoint  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Yield a session that is always closed afterwards.

    Yields:
        Session: SQLAlchemy database session
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
