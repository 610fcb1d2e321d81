"""Database session factory and configuration.

Provides database connectivity and session management for the user limit
service. The engine points at the host database that owns the users table.
"""

from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings
from .models.base import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine for the given URL.

    Pool settings only apply to server databases (not SQLite).
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL query logging
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_engine(database_url, **engine_kwargs)


engine = build_engine(get_settings().DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

SessionFactory = Callable[[], Session]


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """Context manager for sessions created by an arbitrary factory.

    Automatically commits on success, rolls back on exception.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.get("/health")
        def health_check(request: Request, db: Session = Depends(get_db)):
            return check_database_health(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_plugin_tables(bind: Engine) -> None:
    """Create the tables owned by this service if they are missing.

    The users table belongs to the host and is only created when absent,
    which is the case for fresh development databases and tests.
    """
    Base.metadata.create_all(bind=bind, checkfirst=True)
