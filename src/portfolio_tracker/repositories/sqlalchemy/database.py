"""Database connection and session management."""

from contextlib import AbstractContextManager, contextmanager
from typing import Callable, Iterator

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base

Base = declarative_base()

# A callable that opens one unit of work: commit on success, rollback on error
SessionFactory = Callable[[], AbstractContextManager[Session]]


def create_db_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections may be used from any thread."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, connect_args=connect_args, echo=False)


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_session_factory(factory: sessionmaker) -> SessionFactory:
    """Bind ``session_scope`` to a sessionmaker for injection into services."""

    def _scope() -> AbstractContextManager[Session]:
        return session_scope(factory)

    return _scope


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    from portfolio_tracker.repositories.sqlalchemy import orm_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
