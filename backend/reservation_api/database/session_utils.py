"""
Dialect helpers for code paths that differ between PostgreSQL and SQLite.
"""

from __future__ import annotations

from sqlalchemy.orm import Session


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return the SQLAlchemy dialect name of the engine bound to ``session``.

    Falls back to ``default`` when the bind cannot be resolved.
    """
    try:
        bind = session.get_bind()
    except Exception:
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", None) or default


def is_postgres(session: Session) -> bool:
    return get_dialect_name(session) == "postgresql"
