"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)

# PostgreSQL: statement_timeout caps runaway queries so a stuck admission
# cannot hold its slot lock for long; connect_timeout fails fast when the
# store is unreachable.
_POSTGRES_CONNECT_ARGS: dict[str, Any] = {
    "connect_timeout": 5,
    "options": "-c statement_timeout=15000",
    "application_name": "reservation_api",
}

_POSTGRES_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Return engine keyword arguments appropriate for the URL's dialect."""

    if db_url.startswith("sqlite"):
        # Requests run on a thread pool; each gets its own connection.
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    kwargs = dict(_POSTGRES_POOL_KWARGS)
    kwargs["connect_args"] = dict(_POSTGRES_CONNECT_ARGS)
    return kwargs


def create_app_engine(db_url: str) -> Engine:
    return create_engine(db_url, **build_engine_kwargs(db_url))


engine: Engine = create_app_engine(settings.database_url)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables. Schema migrations are managed outside the service."""
    from .. import models  # noqa: F401  registers every mapper on Base

    Base.metadata.create_all(bind=bind or engine)


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine_kwargs",
    "create_app_engine",
    "engine",
    "get_db",
    "init_db",
]
