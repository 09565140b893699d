"""
Database configuration and session management.

The engine treats each find-then-write as its own unit of work, so
repositories open short-lived sessions from the factory returned here rather
than holding one session for a whole sync run.
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine suited to the URL.

    SQLite connections are shared across threads because repository work
    runs in a worker thread; in-memory SQLite additionally needs a single
    static connection so every session sees the same database.
    """
    echo = os.getenv("SQL_ECHO", "false").lower() == "true"

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        echo=echo
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose instances stay readable after commit."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_engine() -> Engine:
    """Get or create the process-wide database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from frcsync.core.config import get_settings
        _engine = create_db_engine(get_settings().DATABASE_URL)
        _SessionLocal = create_session_factory(_engine)

    return _engine


def get_session_factory() -> sessionmaker:
    """Get the process-wide session factory."""
    get_engine()
    return _SessionLocal


def init_db(engine: Optional[Engine] = None) -> None:
    """Create tables that do not exist yet."""
    from frcsync.models.models import Base
    Base.metadata.create_all(bind=engine or get_engine(), checkfirst=True)
