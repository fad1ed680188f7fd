"""
Database Configuration and Session Management.

This module sets up the database engine, the session factory and the
declarative base shared by all ORM models of the booking service.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from tablebook.config import settings

# Create declarative base for all models
Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite needs ``check_same_thread`` disabled because request handlers and
    the expiration sweeper use the engine from different threads. An
    in-memory SQLite database is pinned to a single connection so every
    session sees the same data.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: Configured engine
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    connect_args = {"check_same_thread": False, "timeout": 15}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = make_engine(settings.database_url)

# Create session factory
SessionLocal = make_session_factory(engine)


def create_tables(bind: Engine = engine) -> None:
    """Create all tables known to the declarative base."""
    # models must be imported so their tables are registered on Base
    import tablebook.models  # noqa: F401

    Base.metadata.create_all(bind=bind)

