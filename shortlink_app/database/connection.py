"""
Database engine and session setup.

One engine per process, built from settings.database_url. Routes get a
session per request through get_db(); background code opens its own
sessions from SessionLocal.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shortlink_app.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared between the request thread pool
    # and the status checker
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory=SessionLocal) -> Iterator[Session]:
    """Session for background code: commit on success, roll back on error"""
    session: Session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
