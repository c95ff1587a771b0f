"""
Database connection and session management.
"""
from __future__ import annotations

from typing import Any, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings


def build_engine(database_url: str, **overrides: Any) -> Engine:
    """
    Create an engine for the configured backend.

    SQLite does not take pool sizing options and needs cross-thread access
    because sync runs touch the session from a worker thread.
    """
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
    if database_url.lower().startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    options.update(overrides)
    return create_engine(database_url, **options)


engine: Engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting a database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """
    Create the workflows table when it does not exist yet.
    """
    from app.models import Base

    Base.metadata.create_all(bind=bind or engine)


def database_health(bind: Engine | None = None) -> dict[str, Any]:
    """
    Return structured database health details.
    """
    target = bind or engine
    try:
        with target.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {
            "ok": True,
            "dialect": target.dialect.name,
            "database": target.url.database,
        }
    except SQLAlchemyError as exc:
        return {
            "ok": False,
            "error": str(exc),
        }
