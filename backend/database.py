"""
SQLAlchemy engine, session factory, declarative base, and the FastAPI
dependency that provides a DB session per request.

The database only backs the key-value namespace (see ``store/kv.py``); no
other table is read or written by the application.
"""

from pathlib import Path

from sqlalchemy import create_engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from core.config import settings


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        # pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
        return {"pool_pre_ping": True, "pool_timeout": 10}
    # sqlite: bounded wait on the file lock, shared connection for :memory:
    kwargs = {"connect_args": {"check_same_thread": False, "timeout": 10}}
    path = make_url(url).database
    if not path or path == ":memory:":
        kwargs["poolclass"] = StaticPool
    else:
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return kwargs


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency.  Yields a session for the duration of the request,
    then closes it.  Use with Depends(get_db).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
